"""
Permanent removal of rejected and abandoned submissions.

Purging a submission deletes its content, then its reviews, then the
submission itself, in one transaction per submission. A batch goes through
:func:`preview` first, which counts what :func:`execute` would delete without
touching anything. A failure on one submission is recorded in the
:class:`PurgeResult` and the batch carries on with the next.

Submissions are eligible when they are ``rejected``, ``needs_revision`` or
``draft``, or when :func:`mark_eligible` has flagged them.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Iterable, Dict, Optional, Tuple

from dataclasses import dataclass, field

from .core import load
from .domain import Actor, Submission, Status
from .domain.submission import PURGEABLE
from .domain.util import get_tzaware_utc_now, is_identifier
from .exceptions import NotFound, NotPurgeable, NothingToDo, Unconfirmed, \
    BatchTooLarge, InvalidIdentifier, PartialBatchFailure
from .globals import get_config
from .services import store

logger = logging.getLogger(__name__)


@dataclass
class PreviewItem:
    """What purging a single submission would delete."""

    submission_id: str
    found: bool = False
    eligible: bool = False
    status: Optional[Status] = None
    contents: int = 0
    reviews: int = 0


@dataclass
class PurgePreview:
    """What purging a batch would delete. Totals cover eligible items only."""

    items: List[PreviewItem] = field(default_factory=list)

    @property
    def submissions(self) -> int:
        return len([item for item in self.items if item.eligible])

    @property
    def contents(self) -> int:
        return sum(item.contents for item in self.items if item.eligible)

    @property
    def reviews(self) -> int:
        return sum(item.reviews for item in self.items if item.eligible)


@dataclass
class Failure:
    submission_id: str
    error: Exception


@dataclass
class PurgeResult:
    """Outcome of :func:`execute`."""

    requested_by: str
    attempted: int = 0
    purged: List[str] = field(default_factory=list)
    contents_deleted: int = 0
    reviews_deleted: int = 0
    failed: List[Failure] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.purged)

    def raise_for_failures(self) -> None:
        """Raise :class:`.PartialBatchFailure` if any item failed."""
        if self.failed:
            raise PartialBatchFailure(self)


@dataclass
class PurgeStats:
    by_status: Dict[Status, int] = field(default_factory=dict)
    flagged: int = 0
    eligible: int = 0


def _validate(submission_ids: Iterable[str]) -> List[str]:
    """Deduplicate the batch; reject it whole if any id is malformed."""
    ids: List[str] = []
    for submission_id in submission_ids:
        if submission_id not in ids:
            ids.append(submission_id)
    if not ids:
        raise NothingToDo('No submissions to purge')
    maximum = get_config('PURGE_MAX_BATCH_SIZE')
    if len(ids) > maximum:
        raise BatchTooLarge(f'At most {maximum} submissions may be purged'
                            f' at once; got {len(ids)}')
    malformed = [value for value in ids if not is_identifier(value)]
    if malformed:
        raise InvalidIdentifier(f'Not valid identifiers: {malformed}')
    return ids


def preview(submission_ids: Iterable[str]) -> PurgePreview:
    """Count what :func:`execute` would delete, per submission."""
    result = PurgePreview()
    for submission_id in _validate(submission_ids):
        item = PreviewItem(submission_id=submission_id)
        try:
            submission = load(submission_id)
        except NotFound:
            result.items.append(item)
            continue
        except ValueError as e:
            logger.warning('Cannot read submission %s: %s', submission_id, e)
            item.found = True
            result.items.append(item)
            continue
        item.found = True
        item.status = submission.status
        item.eligible = submission.is_purgeable
        item.contents = store.count_contents(submission_id)
        item.reviews = store.count_reviews(submission_id)
        result.items.append(item)
    return result


def _purge_one(submission_id: str) -> Tuple[int, int]:
    with store.transaction():
        submission = load(submission_id)
        if not submission.is_purgeable:
            raise NotPurgeable(f'Submission {submission_id} is'
                               f' {submission.status.value}')
        contents = store.delete_contents(submission_id)
        reviews = store.delete_reviews(submission_id)
        store.delete_submission(submission_id)
    return contents, reviews


def execute(submission_ids: Iterable[str], requested_by: Actor,
            confirm: bool = False) -> PurgeResult:
    """
    Purge a batch of submissions.

    Parameters
    ----------
    submission_ids : iterable
        At most ``PURGE_MAX_BATCH_SIZE`` submission identifiers.
    requested_by : :class:`.Actor`
    confirm : bool
        Must be ``True``.

    Returns
    -------
    :class:`PurgeResult`
        Per-item failures do not raise; see
        :meth:`PurgeResult.raise_for_failures`.

    Raises
    ------
    :class:`.Unconfirmed`
    :class:`.NothingToDo`
    :class:`.BatchTooLarge`
    :class:`.InvalidIdentifier`
        Raised before anything is deleted if any identifier is malformed.

    """
    if confirm is not True:
        raise Unconfirmed('Purge must be explicitly confirmed')
    ids = _validate(submission_ids)
    result = PurgeResult(requested_by=requested_by.native_id,
                         attempted=len(ids))
    chunk_size = get_config('PURGE_CHUNK_SIZE')
    for start in range(0, len(ids), chunk_size):
        for submission_id in ids[start:start + chunk_size]:
            try:
                contents, reviews = _purge_one(submission_id)
            except (NotFound, ValueError, store.StoreBaseException) as e:
                logger.warning('Could not purge submission %s: %s',
                               submission_id, e)
                result.failed.append(Failure(submission_id, e))
                continue
            result.purged.append(submission_id)
            result.contents_deleted += contents
            result.reviews_deleted += reviews
            logger.debug('Purged submission %s (%i contents, %i reviews)',
                         submission_id, contents, reviews)
        logger.info('Purge by %s: %i of %i done', requested_by.native_id,
                    min(start + chunk_size, len(ids)), len(ids))
    logger.info('Purge by %s finished: %i purged, %i failed',
                requested_by.native_id, result.succeeded, len(result.failed))
    return result


def purgeable(older_than_days: Optional[int] = None,
              status: Optional[str] = None,
              limit: int = 50,
              offset: int = 0) -> Tuple[List[Submission], int]:
    """
    Get a page of purge-eligible submissions, least recently updated first.

    If ``status`` is given, only submissions in that status are listed;
    otherwise all eligible statuses and flagged submissions are.
    """
    if status is not None:
        statuses: Tuple[Status, ...] = (Status.parse(status),)
    else:
        statuses = PURGEABLE
    updated_before: Optional[datetime] = None
    if older_than_days is not None:
        updated_before = get_tzaware_utc_now() \
            - timedelta(days=older_than_days)
    return store.find_submissions(statuses=statuses,
                                  updated_before=updated_before,
                                  include_flagged=status is None,
                                  limit=limit, offset=offset)


def stats() -> PurgeStats:
    """Count submissions by status, and those that may be purged."""
    _, eligible = store.find_submissions(statuses=PURGEABLE,
                                         include_flagged=True, limit=0)
    return PurgeStats(by_status=store.count_by_status(),
                      flagged=store.count_purge_eligible(),
                      eligible=eligible)


def mark_eligible(now: Optional[datetime] = None) -> int:
    """
    Flag rejected and stale submissions as purge-eligible.

    Rejected submissions are flagged after ``PURGE_REJECTED_AFTER_DAYS``
    without change; drafts and revision requests after
    ``PURGE_STALE_AFTER_DAYS``. Submissions that are already flagged are not
    flagged again.

    Returns
    -------
    int
        The number of submissions newly flagged.

    """
    if now is None:
        now = get_tzaware_utc_now()
    rejected_before = now - timedelta(
        days=get_config('PURGE_REJECTED_AFTER_DAYS'))
    stale_before = now - timedelta(days=get_config('PURGE_STALE_AFTER_DAYS'))
    with store.transaction():
        flagged = store.mark_purge_eligible((Status.REJECTED,),
                                            rejected_before, now)
        flagged += store.mark_purge_eligible(
            (Status.DRAFT, Status.NEEDS_REVISION), stale_before, now)
    logger.info('Flagged %i submissions as purge-eligible', flagged)
    return flagged
