"""
Canonical tag vocabulary.

Free-text tags are mapped onto :class:`.Tag` entries by slug: any two strings
that produce the same slug are the same tag. New tags are created with an
insert-if-absent against the unique slug, so concurrent upserts of the same
tag converge on a single entry.

:func:`backfill` migrates documents that only carry legacy raw tag strings.
"""

import logging
import re
from operator import attrgetter
from typing import List, Iterable, Dict, Optional, Set

from dataclasses import dataclass, field
from unidecode import unidecode

from .domain import Tag
from .domain.util import get_tzaware_utc_now, new_identifier
from .exceptions import NotFound, InvalidTag
from .globals import get_config
from .services import store
from .services.store import transaction

logger = logging.getLogger(__name__)

TAG_SLUG_MAX_LENGTH = 128
"""Tag slugs are bounded by the width of their column."""


def normalize(raw: str) -> str:
    """Case-fold, trim, and collapse internal whitespace."""
    return re.sub(r'\s+', ' ', raw).strip().casefold()


def slugify(value: str, max_length: Optional[int] = None) -> str:
    """
    Generate a URL-safe slug for ``value``.

    Diacritics are folded to their ASCII counterparts; anything that is not a
    letter, digit, whitespace or hyphen is dropped; runs of whitespace and
    hyphens become a single hyphen. The result may be empty.
    """
    value = unidecode(value).lower()
    value = re.sub(r'[^a-z0-9\s-]', '', value)
    value = re.sub(r'[\s-]+', '-', value).strip('-')
    if max_length is not None:
        value = value[:max_length].rstrip('-')
    return value


def tag_slug(raw: str) -> str:
    return slugify(normalize(raw), TAG_SLUG_MAX_LENGTH)


def _upsert(raw: str) -> Tag:
    name = normalize(raw)
    slug = slugify(name, TAG_SLUG_MAX_LENGTH)
    if not slug:
        raise InvalidTag(f'Tag {raw!r} has no usable characters')
    existing = store.get_tag_by_slug(slug)
    if existing is not None:
        return existing
    now = get_tzaware_utc_now()
    return store.insert_tag_if_absent(Tag(tag_id=new_identifier(), name=name,
                                          slug=slug, created=now,
                                          updated=now))


def resolve(raws: Iterable[str]) -> List[str]:
    """
    Get tag identifiers for ``raws``, creating tags as needed.

    Strings that have no usable characters are skipped. Must be called within
    a :func:`.transaction`.
    """
    tag_ids: List[str] = []
    for raw in raws:
        try:
            tag = _upsert(raw)
        except InvalidTag:
            logger.debug('Skipping unusable tag %r', raw)
            continue
        if tag.tag_id not in tag_ids:
            tag_ids.append(tag.tag_id)
    return tag_ids


def upsert_tag(raw: str) -> str:
    """
    Get the identifier of the tag for ``raw``, creating it if necessary.

    Calling this twice with strings that normalize to the same slug returns
    the same identifier, and creates at most one :class:`.Tag`.

    Raises
    ------
    :class:`.InvalidTag`
        If ``raw`` normalizes to nothing.

    """
    with transaction():
        tag = _upsert(raw)
    return tag.tag_id


def upsert_tags(raws: Iterable[str]) -> List[str]:
    """Upsert several tags. Identifiers are deduplicated, order preserved."""
    tag_ids: List[str] = []
    with transaction():
        for raw in raws:
            tag_id = _upsert(raw).tag_id
            if tag_id not in tag_ids:
                tag_ids.append(tag_id)
    return tag_ids


def list_tags() -> List[Tag]:
    return store.list_tags()


@dataclass
class BackfillFailure:
    document_id: str
    """Slug of a tag, or identifier of a content item or submission."""

    error: Exception


@dataclass
class BackfillReport:
    """What a :func:`backfill` run did."""

    distinct_tags: int = 0
    tags_created: int = 0
    contents_updated: int = 0
    submissions_updated: int = 0
    skipped: List[str] = field(default_factory=list)
    """Legacy strings that could not be turned into a tag."""

    failed: List[BackfillFailure] = field(default_factory=list)
    """Tags and documents that could not be written; the run went on."""


ITEM_ERRORS = (NotFound, ValueError, store.StoreBaseException)
"""Failures of a single item that do not stop a :func:`backfill` run."""


def backfill(batch_size: Optional[int] = None) -> BackfillReport:
    """
    Derive tag identifiers for documents that only have legacy raw tags.

    1. Gather the distinct legacy tag strings of all submissions and content.
    2. Upsert a :class:`.Tag` for each distinct slug.
    3. Set each content's ``tag_ids`` from its legacy tags, where missing.
    4. Set each submission's ``tag_ids`` to the union of those of its
       content, where missing.

    Documents are read in pages of ``batch_size``, and each write is
    committed on its own. A write that fails is recorded in
    :attr:`BackfillReport.failed` and the run carries on with the next item.
    Documents that already carry derived tags are left alone, so the
    backfill can be re-run at any time.
    """
    if batch_size is None:
        batch_size = get_config('BACKFILL_BATCH_SIZE')
    report = BackfillReport()

    raws = _distinct_legacy_tags(batch_size)
    by_slug: Dict[str, str] = {}
    for raw in sorted(raws):
        slug = tag_slug(raw)
        if not slug:
            report.skipped.append(raw)
        else:
            by_slug.setdefault(slug, raw)
    report.distinct_tags = len(by_slug)
    logger.info('Found %i distinct legacy tags', report.distinct_tags)

    tag_ids: Dict[str, str] = {}
    for slug in sorted(by_slug):
        try:
            with transaction():
                existing = store.get_tag_by_slug(slug)
                if existing is None:
                    existing = _upsert(by_slug[slug])
                    report.tags_created += 1
        except ITEM_ERRORS as e:
            _failed(report, slug, e)
            continue
        tag_ids[slug] = existing.tag_id

    incomplete = _backfill_contents(report, tag_ids, batch_size)
    _backfill_submissions(report, incomplete, batch_size)
    logger.info('Backfill complete: %i tags created, %i contents and %i'
                ' submissions updated, %i failed', report.tags_created,
                report.contents_updated, report.submissions_updated,
                len(report.failed))
    return report


def _failed(report: BackfillReport, document_id: str,
            error: Exception) -> None:
    logger.warning('Could not backfill tags of %s: %s', document_id, error)
    report.failed.append(BackfillFailure(document_id, error))


def _distinct_legacy_tags(batch_size: int) -> Set[str]:
    raws: Set[str] = set()
    scans = ((store.scan_submissions, attrgetter('submission_id')),
             (store.scan_contents, attrgetter('content_id')))
    for scan, key in scans:
        after = None
        while True:
            page = scan(after=after, limit=batch_size)
            if not page:
                break
            for document in page:
                raws.update(raw for raw in document.tags if raw)
            after = key(page[-1])
    return raws


def _backfill_contents(report: BackfillReport, tag_ids: Dict[str, str],
                       batch_size: int) -> Set[str]:
    """Returns the submissions with content that could not be updated."""
    incomplete: Set[str] = set()
    after = None
    while True:
        page = store.scan_contents(after=after, limit=batch_size)
        if not page:
            return incomplete
        for content in page:
            if content.tag_ids or not content.tags:
                continue
            slugs = [tag_slug(raw) for raw in content.tags]
            if any(slug and slug not in tag_ids for slug in slugs):
                # One of its tags failed; leave it for the next run.
                incomplete.add(content.submission_id)
                continue
            derived: List[str] = []
            for slug in slugs:
                tag_id = tag_ids.get(slug)
                if tag_id is not None and tag_id not in derived:
                    derived.append(tag_id)
            if not derived:
                continue
            try:
                with transaction():
                    store.set_content_tag_ids(content.content_id, derived)
            except ITEM_ERRORS as e:
                _failed(report, content.content_id, e)
                incomplete.add(content.submission_id)
                continue
            report.contents_updated += 1
        logger.debug('Backfilled content through %s', page[-1].content_id)
        after = page[-1].content_id


def _backfill_submissions(report: BackfillReport, incomplete: Set[str],
                          batch_size: int) -> None:
    after = None
    while True:
        page = store.scan_submissions(after=after, limit=batch_size)
        if not page:
            return
        for submission in page:
            if submission.tag_ids is not None:
                continue
            if submission.submission_id in incomplete:
                continue
            submission_id = submission.submission_id
            try:
                with transaction():
                    union: List[str] = []
                    for content_tag_ids in \
                            store.get_content_tag_ids(submission_id):
                        for tag_id in content_tag_ids or []:
                            if tag_id not in union:
                                union.append(tag_id)
                    written = store.set_submission_tag_ids(submission_id,
                                                           union)
            except ITEM_ERRORS as e:
                _failed(report, submission_id, e)
                continue
            if written:
                report.submissions_updated += 1
        logger.debug('Backfilled submissions through %s',
                     page[-1].submission_id)
        after = page[-1].submission_id
