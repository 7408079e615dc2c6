"""Editorial core configuration parameters."""

from os import environ

LOGLEVEL = int(environ.get('LOGLEVEL', '20'))
"""
Logging verbosity.

See `https://docs.python.org/3/library/logging.html#levels`_.
"""

# --- DATABASE CONFIGURATION ---

EDITORIAL_DATABASE_URI = environ.get('EDITORIAL_DATABASE_URI', 'sqlite://')
"""Full database URI for the editorial store."""

SQLALCHEMY_DATABASE_URI = EDITORIAL_DATABASE_URI
"""Full database URI for the editorial store."""

SQLALCHEMY_TRACK_MODIFICATIONS = False
"""Track modifications feature should always be disabled."""

# --- CONTENT PUBLICATION ---

SLUG_MAX_LENGTH = int(environ.get('SLUG_MAX_LENGTH', '60'))
"""Derived slugs are truncated to this many characters."""

SLUG_MAX_PROBES = int(environ.get('SLUG_MAX_PROBES', '1000'))
"""
Number of numbered suffixes to try before giving up on a slug.

Each probe is a single indexed lookup; reaching this bound raises
:class:`.exceptions.SlugExhausted`.
"""

META_TITLE_MAX_LENGTH = int(environ.get('META_TITLE_MAX_LENGTH', '70'))
"""Upper bound on the SEO meta title."""

META_DESCRIPTION_MAX_LENGTH = \
    int(environ.get('META_DESCRIPTION_MAX_LENGTH', '160'))
"""Upper bound on the SEO meta description, including the ellipsis."""

# --- REVIEWS ---

RATING_MIN = int(environ.get('RATING_MIN', '1'))
"""Lowest rating a reviewer may give."""

RATING_MAX = int(environ.get('RATING_MAX', '5'))
"""Highest rating a reviewer may give."""

REVIEW_NOTES_MAX_LENGTH = int(environ.get('REVIEW_NOTES_MAX_LENGTH', '1000'))
"""Upper bound on review notes."""

# --- PURGE ---

PURGE_MAX_BATCH_SIZE = int(environ.get('PURGE_MAX_BATCH_SIZE', '100'))
"""Maximum number of submissions that can be purged in a single call."""

PURGE_CHUNK_SIZE = int(environ.get('PURGE_CHUNK_SIZE', '25'))
"""Number of submissions purged between progress checkpoints."""

PURGE_STALE_AFTER_DAYS = int(environ.get('PURGE_STALE_AFTER_DAYS', '120'))
"""Drafts and revision requests untouched this long are stale."""

PURGE_REJECTED_AFTER_DAYS = \
    int(environ.get('PURGE_REJECTED_AFTER_DAYS', '30'))
"""Rejected submissions untouched this long are high-priority purge targets."""

# --- TAGS ---

BACKFILL_BATCH_SIZE = int(environ.get('BACKFILL_BATCH_SIZE', '500'))
"""Number of documents updated per committed chunk during tag backfill."""
