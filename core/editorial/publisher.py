"""
Publication of accepted content.

Content of an accepted submission can be published under a slug that is
unique among all content, ever. Slugs are derived from the title unless one
is supplied, and made unique by probing ``slug``, ``slug-1``, ``slug-2``,
... with one indexed lookup per probe. The slug is written under the unique
constraint, so if another publication takes the same slug in the meantime,
the write fails and probing starts again.
"""

import html
import logging
import re
from typing import Optional

import bleach

from .core import load
from .domain import Content, SEO
from .domain.util import get_tzaware_utc_now
from .exceptions import NoSuchContent, SubmissionNotAccepted, \
    NotPublished, AlreadyFeatured, NotFeatured, InvalidSlug, SlugExhausted
from .globals import get_config
from .services import store
from .tags import slugify

logger = logging.getLogger(__name__)

SLUG = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
"""Shape of a valid slug."""

DEFAULT_SLUG = 'untitled'
"""Used when a title has no characters that can go in a slug."""


def derive_slug(title: str) -> str:
    """Generate a slug from a title."""
    return slugify(title, get_config('SLUG_MAX_LENGTH')) or DEFAULT_SLUG


def meta_title(title: str) -> str:
    return title.strip()[:get_config('META_TITLE_MAX_LENGTH')]


def meta_description(body: str) -> str:
    """Plain-text excerpt of ``body``, truncated with an ellipsis."""
    limit = get_config('META_DESCRIPTION_MAX_LENGTH')
    text = html.unescape(bleach.clean(body, tags=[], strip=True))
    text = ' '.join(text.split())
    if len(text) > limit:
        text = text[:limit - 3].rstrip() + '...'
    return text


def _load_content(content_id: str) -> Content:
    try:
        return store.get_content(content_id)
    except store.NoSuchContent as e:
        raise NoSuchContent(f'No content with id {content_id}') from e


def _free_slug(base: str, content_id: str) -> str:
    """Find the first of ``base``, ``base-1``, ... not held by others."""
    max_length = get_config('SLUG_MAX_LENGTH')
    holder = store.slug_holder(base)
    if holder is None or holder == content_id:
        return base
    for n in range(1, get_config('SLUG_MAX_PROBES') + 1):
        suffix = f'-{n}'
        candidate = base[:max_length - len(suffix)].rstrip('-') + suffix
        holder = store.slug_holder(candidate)
        if holder is None or holder == content_id:
            return candidate
    raise SlugExhausted(f'No free slug for {base}')


def publish(content_id: str, slug: Optional[str] = None,
            title: Optional[str] = None,
            description: Optional[str] = None) -> Content:
    """
    Publish a content item.

    Parameters
    ----------
    content_id : str
    slug : str
        Overrides the slug. Otherwise content that already has a slug keeps
        it, and other content gets one derived from its title.
    title : str
        Overrides the meta title, which defaults to the content title.
    description : str
        Overrides the meta description, which defaults to an excerpt of the
        body.

    Raises
    ------
    :class:`.NoSuchContent`
    :class:`.SubmissionNotAccepted`
        Raised if the parent submission is not accepted (or published).
    :class:`.InvalidSlug`
        Raised if ``slug`` is not URL-safe.
    :class:`.SlugExhausted`

    """
    content = _load_content(content_id)
    submission = load(content.submission_id)
    if not submission.is_publishable:
        raise SubmissionNotAccepted(f'Submission {submission.submission_id}'
                                    f' is {submission.status.value}')
    if slug is not None:
        if not SLUG.match(slug) or len(slug) > get_config('SLUG_MAX_LENGTH'):
            raise InvalidSlug(f'Not a valid slug: {slug!r}')
        base = slug
    else:
        base = content.seo.slug or derive_slug(content.title)

    now = get_tzaware_utc_now()
    for _ in range(get_config('SLUG_MAX_PROBES')):
        seo = SEO(slug=_free_slug(base, content_id),
                  meta_title=title or meta_title(content.title),
                  meta_description=description or meta_description(
                      content.body))
        try:
            with store.transaction():
                store.publish_content(content_id, seo, now)
        except store.Conflict:
            logger.debug('Slug %s was taken concurrently', seo.slug)
            continue
        except store.ConsistencyError as e:
            raise SubmissionNotAccepted(
                f'Submission {submission.submission_id} is no longer accepted'
            ) from e
        break
    else:
        raise SlugExhausted(f'No free slug for {base}')

    content.is_published = True
    content.published_at = now
    content.seo = seo
    content.updated = now
    logger.info('Published content %s at %s', content_id, seo.slug)
    return content


def unpublish(content_id: str) -> Content:
    """
    Withdraw a published content item.

    The slug is kept, but no longer resolves with :func:`get_published`.
    Featuring is withdrawn along with publication.
    """
    content = _load_content(content_id)
    if not content.is_published:
        raise NotPublished(f'Content {content_id} is not published')
    now = get_tzaware_utc_now()
    try:
        with store.transaction():
            store.unpublish_content(content_id, now)
    except store.ConsistencyError as e:
        raise NotPublished(f'Content {content_id} is not published') from e
    content.is_published = False
    content.published_at = None
    content.is_featured = False
    content.featured_at = None
    content.updated = now
    logger.info('Unpublished content %s', content_id)
    return content


def _feature_guard(content: Content) -> None:
    if content.is_featured:
        raise AlreadyFeatured(f'Content {content.content_id} is featured')
    if not content.is_published:
        raise NotPublished(f'Content {content.content_id} is not published')


def feature(content_id: str) -> Content:
    """Feature a published content item."""
    content = _load_content(content_id)
    _feature_guard(content)
    now = get_tzaware_utc_now()
    try:
        with store.transaction():
            store.feature_content(content_id, now)
    except store.ConsistencyError as e:
        _feature_guard(_load_content(content_id))
        raise NotPublished(f'Content {content_id} changed') from e
    content.is_featured = True
    content.featured_at = now
    content.updated = now
    logger.info('Featured content %s', content_id)
    return content


def unfeature(content_id: str) -> Content:
    content = _load_content(content_id)
    if not content.is_featured:
        raise NotFeatured(f'Content {content_id} is not featured')
    now = get_tzaware_utc_now()
    try:
        with store.transaction():
            store.unfeature_content(content_id, now)
    except store.ConsistencyError as e:
        raise NotFeatured(f'Content {content_id} is not featured') from e
    content.is_featured = False
    content.featured_at = None
    content.updated = now
    logger.info('Unfeatured content %s', content_id)
    return content


def get_published(slug: str) -> Content:
    """
    Get published content by slug.

    Raises
    ------
    :class:`.NoSuchContent`
        Raised if no published content has this slug.

    """
    content = store.get_content_by_slug(slug)
    if content is None or not content.is_published:
        raise NoSuchContent(f'No published content at {slug}')
    return content


def record_view(content_id: str) -> None:
    """Count one view of a published content item."""
    try:
        with store.transaction():
            store.increment_views(content_id)
    except store.ConsistencyError as e:
        _load_content(content_id)
        raise NotPublished(f'Content {content_id} is not published') from e
