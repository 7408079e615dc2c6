"""
Persistence for submissions, content, reviews and tags.

This module is the only part of the package that talks to the database. It
exposes a small set of primitives, and nothing else:

- point lookups by identifier (and by slug);
- conditional updates, which write only if the row still matches the state
  that the caller validated against, and raise :class:`.ConsistencyError`
  otherwise; reviews may be inserted on the same condition;
- atomic insert-if-absent for the tag vocabulary, by attempting the insert in
  a savepoint and falling back to the existing row when the unique constraint
  on ``slug`` rejects it;
- counts and grouped counts;
- paginated scans, keyed on the primary key so that a scan can resume after
  an interruption.

Writes must be performed inside the :func:`.util.transaction` context manager;
reads may be performed anywhere within an application context. Reads are
retried when the database is unavailable.
"""

import logging
from typing import List, Optional, Dict, Tuple, Iterable, Any, Callable
from datetime import datetime
from functools import wraps

from retry import retry
from flask import Flask
from sqlalchemy import select, insert, update, delete, func, or_, literal
from sqlalchemy.exc import IntegrityError, OperationalError

from ...domain import Submission, Content, SEO, Review, Tag, Status
from ...domain.submission import PUBLISHABLE
from .models import Base, DBSubmission, DBHistoryEntry, DBContent, \
    DBReview, DBTag
from .exceptions import StoreBaseException, NoSuchSubmission, \
    NoSuchContent, TransactionFailed, Unavailable, ConsistencyError, Conflict
from .util import transaction, current_session, db

logger = logging.getLogger(__name__)

_NO_SYNC = {'synchronize_session': False}


def handle_operational_errors(func: Callable) -> Callable:
    """Catch SQLAlchemy OperationalErrors and raise :class:`.Unavailable`."""
    @wraps(func)
    def inner(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except OperationalError as e:
            raise Unavailable('Editorial database unavailable') from e
    return inner


# --- SUBMISSIONS ---

@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def get_submission(submission_id: str) -> Submission:
    """
    Load a submission, including its history and content references.

    Raises
    ------
    :class:`.store.exceptions.NoSuchSubmission`
        Raised when there is no submission with the provided identifier.

    """
    row = current_session().get(DBSubmission, submission_id)
    if row is None:
        raise NoSuchSubmission(f'Submission {submission_id} not found')
    return row.to_submission()


@handle_operational_errors
def insert_submission(submission: Submission,
                      contents: Iterable[Content] = ()) -> Submission:
    """Add a new submission with its history and content items."""
    session = current_session()
    session.add(DBSubmission(
        submission_id=submission.submission_id,
        owner_id=submission.owner_id,
        title=submission.title,
        description=submission.description,
        submission_type=submission.submission_type.value,
        status=submission.status.value,
        tags=list(submission.tags),
        tag_ids=submission.tag_ids,
        created=submission.created,
        updated=submission.updated,
        purge_eligible=submission.purge_eligible
    ))
    for entry in submission.history:
        session.add(DBHistoryEntry.from_entry(submission.submission_id,
                                              entry))
    for position, content in enumerate(contents):
        session.add(DBContent.from_content(content, position))
    session.flush()
    logger.debug('Inserted submission %s', submission.submission_id)
    return submission


@handle_operational_errors
def update_status(before: Submission, after: Submission) -> Submission:
    """
    Persist a status change and its new history entries together.

    The update only applies if the stored status is still ``before.status``.

    Raises
    ------
    :class:`.ConsistencyError`
        Raised if the stored status no longer matches ``before.status``.

    """
    session = current_session()
    result = session.execute(
        update(DBSubmission)
        .where(DBSubmission.submission_id == after.submission_id,
               DBSubmission.status == before.status.value)
        .values(status=after.status.value,
                updated=after.updated,
                reviewed_at=after.reviewed_at,
                reviewed_by=after.reviewed_by,
                assigned_to=after.assigned_to,
                assigned_at=after.assigned_at,
                revision_notes=after.revision_notes,
                purge_eligible=after.purge_eligible,
                purge_flagged_at=after.purge_flagged_at)
        .execution_options(**_NO_SYNC)
    )
    if result.rowcount == 0:
        raise ConsistencyError(f'Submission {after.submission_id} is no'
                               f' longer in {before.status.value}')
    for entry in after.history[len(before.history):]:
        session.add(DBHistoryEntry.from_entry(after.submission_id, entry))
    session.flush()
    return after


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def scan_submissions(after: Optional[str] = None,
                     limit: int = 500) -> List[Submission]:
    """Get the next page of submissions, ordered by identifier."""
    query = select(DBSubmission).order_by(DBSubmission.submission_id)
    if after is not None:
        query = query.where(DBSubmission.submission_id > after)
    rows = current_session().scalars(query.limit(limit))
    return [row.to_submission() for row in rows]


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def find_submissions(statuses: Iterable[Status] = (),
                     updated_before: Optional[datetime] = None,
                     include_flagged: bool = False,
                     limit: int = 50,
                     offset: int = 0) -> Tuple[List[Submission], int]:
    """
    Get a page of submissions, least recently updated first.

    Returns
    -------
    list
        Items are :class:`.Submission` instances.
    int
        The total number of matching submissions.

    """
    criteria = []
    values = [Status.parse(status).value for status in statuses]
    if values and include_flagged:
        criteria.append(or_(DBSubmission.status.in_(values),
                            DBSubmission.purge_eligible.is_(True)))
    elif values:
        criteria.append(DBSubmission.status.in_(values))
    elif include_flagged:
        criteria.append(DBSubmission.purge_eligible.is_(True))
    if updated_before is not None:
        criteria.append(DBSubmission.updated < updated_before)

    session = current_session()
    total = session.scalar(
        select(func.count(DBSubmission.submission_id)).where(*criteria)
    )
    rows = session.scalars(
        select(DBSubmission).where(*criteria)
        .order_by(DBSubmission.updated, DBSubmission.submission_id)
        .limit(limit).offset(offset)
    )
    return [row.to_submission() for row in rows], total or 0


@handle_operational_errors
def set_submission_tag_ids(submission_id: str, tag_ids: List[str]) -> bool:
    """Set the derived tag identifiers, only if they are not yet set."""
    result = current_session().execute(
        update(DBSubmission)
        .where(DBSubmission.submission_id == submission_id,
               DBSubmission.tag_ids.is_(None))
        .values(tag_ids=tag_ids)
        .execution_options(**_NO_SYNC)
    )
    return result.rowcount > 0


@handle_operational_errors
def mark_purge_eligible(statuses: Iterable[Status], updated_before: datetime,
                        when: datetime) -> int:
    """
    Flag matching submissions as eligible for purging.

    Submissions that are already flagged are left alone.

    Returns
    -------
    int
        The number of submissions newly flagged.

    """
    result = current_session().execute(
        update(DBSubmission)
        .where(DBSubmission.status.in_([s.value for s in statuses]),
               DBSubmission.updated < updated_before,
               DBSubmission.purge_eligible.is_(False))
        .values(purge_eligible=True, purge_flagged_at=when)
        .execution_options(**_NO_SYNC)
    )
    return result.rowcount


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def count_by_status() -> Dict[Status, int]:
    """Get the number of submissions in each status."""
    rows = current_session().execute(
        select(DBSubmission.status, func.count(DBSubmission.submission_id))
        .group_by(DBSubmission.status)
    )
    return {Status(status): count for status, count in rows}


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def count_purge_eligible() -> int:
    """Get the number of submissions flagged as purge-eligible."""
    return current_session().scalar(
        select(func.count(DBSubmission.submission_id))
        .where(DBSubmission.purge_eligible.is_(True))
    ) or 0


@handle_operational_errors
def delete_submission(submission_id: str) -> int:
    """Delete a submission and its history. Children must be gone already."""
    session = current_session()
    session.execute(delete(DBHistoryEntry)
                    .where(DBHistoryEntry.submission_id == submission_id)
                    .execution_options(**_NO_SYNC))
    result = session.execute(
        delete(DBSubmission)
        .where(DBSubmission.submission_id == submission_id)
        .execution_options(**_NO_SYNC)
    )
    return result.rowcount


# --- REVIEWS ---

@handle_operational_errors
def insert_review(review: Review,
                  statuses: Optional[Iterable[Status]] = None) -> Review:
    """
    Add a new review. Reviews are never updated.

    If ``statuses`` are given, the review is added only while the submission
    is in one of them, in a single ``INSERT ... SELECT``.

    Raises
    ------
    :class:`.ConsistencyError`
        Raised if the submission is not (or no longer) in ``statuses``.

    """
    session = current_session()
    if statuses is None:
        session.add(DBReview(review_id=review.review_id,
                             submission_id=review.submission_id,
                             reviewer_id=review.reviewer_id,
                             decision=review.decision.value,
                             notes=review.notes,
                             rating=review.rating,
                             created=review.created))
        session.flush()
        return review

    table = DBReview.__table__
    row = select(
        literal(review.review_id, table.c.review_id.type),
        DBSubmission.submission_id,
        literal(review.reviewer_id, table.c.reviewer_id.type),
        literal(review.decision.value, table.c.decision.type),
        literal(review.notes, table.c.notes.type),
        literal(review.rating, table.c.rating.type),
        literal(review.created, table.c.created.type)
    ).where(DBSubmission.submission_id == review.submission_id,
            DBSubmission.status.in_([status.value for status in statuses]))
    result = session.execute(
        insert(table).from_select(['review_id', 'submission_id',
                                   'reviewer_id', 'decision', 'notes',
                                   'rating', 'created'], row)
    )
    if result.rowcount == 0:
        raise ConsistencyError(f'Submission {review.submission_id} is not'
                               f' in an expected status')
    return review


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def list_reviews(submission_id: str) -> List[Review]:
    """Get the reviews of a submission, newest first."""
    rows = current_session().scalars(
        select(DBReview)
        .where(DBReview.submission_id == submission_id)
        .order_by(DBReview.created.desc(), DBReview.review_id)
    )
    return [row.to_review() for row in rows]


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def count_reviews(submission_id: str) -> int:
    return current_session().scalar(
        select(func.count(DBReview.review_id))
        .where(DBReview.submission_id == submission_id)
    ) or 0


@handle_operational_errors
def delete_reviews(submission_id: str) -> int:
    result = current_session().execute(
        delete(DBReview).where(DBReview.submission_id == submission_id)
        .execution_options(**_NO_SYNC)
    )
    return result.rowcount


# --- CONTENT ---

@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def get_content(content_id: str) -> Content:
    """
    Load a content item.

    Raises
    ------
    :class:`.store.exceptions.NoSuchContent`
        Raised when there is no content with the provided identifier.

    """
    row = current_session().get(DBContent, content_id)
    if row is None:
        raise NoSuchContent(f'Content {content_id} not found')
    return row.to_content()


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def get_contents(submission_id: str) -> List[Content]:
    """Get the content items of a submission, in order."""
    rows = current_session().scalars(
        select(DBContent).where(DBContent.submission_id == submission_id)
        .order_by(DBContent.position)
    )
    return [row.to_content() for row in rows]


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def get_content_by_slug(slug: str) -> Optional[Content]:
    """Get the content item that holds ``slug``, published or not."""
    row = current_session().scalars(
        select(DBContent).where(DBContent.slug == slug)
    ).first()
    return None if row is None else row.to_content()


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def slug_holder(slug: str) -> Optional[str]:
    """Get the identifier of the content that holds ``slug``, if any."""
    return current_session().scalar(
        select(DBContent.content_id).where(DBContent.slug == slug)
    )


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def count_contents(submission_id: str) -> int:
    return current_session().scalar(
        select(func.count(DBContent.content_id))
        .where(DBContent.submission_id == submission_id)
    ) or 0


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def scan_contents(after: Optional[str] = None,
                  limit: int = 500) -> List[Content]:
    """Get the next page of content items, ordered by identifier."""
    query = select(DBContent).order_by(DBContent.content_id)
    if after is not None:
        query = query.where(DBContent.content_id > after)
    rows = current_session().scalars(query.limit(limit))
    return [row.to_content() for row in rows]


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def get_content_tag_ids(submission_id: str) -> List[Optional[List[str]]]:
    """Get the derived tag identifiers of each content of a submission."""
    return list(current_session().scalars(
        select(DBContent.tag_ids)
        .where(DBContent.submission_id == submission_id)
        .order_by(DBContent.position)
    ))


def _update_content(content_id: str, criteria: list,
                    **values: Any) -> None:
    result = current_session().execute(
        update(DBContent)
        .where(DBContent.content_id == content_id, *criteria)
        .values(**values)
        .execution_options(**_NO_SYNC)
    )
    if result.rowcount == 0:
        raise ConsistencyError(f'Content {content_id} changed or missing')


@handle_operational_errors
def publish_content(content_id: str, seo: SEO, when: datetime) -> None:
    """
    Mark content as published with its SEO metadata.

    Applies only while the parent submission is accepted or published.

    Raises
    ------
    :class:`.Conflict`
        Raised if the slug is held by another content item.
    :class:`.ConsistencyError`
        Raised if the parent submission is not in a publishable status.

    """
    publishable = select(DBSubmission.submission_id).where(
        DBSubmission.status.in_([status.value for status in PUBLISHABLE])
    )
    session = current_session()
    try:
        with session.begin_nested():
            _update_content(content_id,
                            [DBContent.submission_id.in_(publishable)],
                            is_published=True,
                            published_at=when,
                            slug=seo.slug,
                            meta_title=seo.meta_title,
                            meta_description=seo.meta_description,
                            updated=when)
    except IntegrityError as e:
        raise Conflict(f'Slug {seo.slug} is already in use') from e


@handle_operational_errors
def unpublish_content(content_id: str, when: datetime) -> None:
    """Withdraw published content. The slug is kept; featuring is cleared."""
    _update_content(content_id, [DBContent.is_published.is_(True)],
                    is_published=False, published_at=None,
                    is_featured=False, featured_at=None, updated=when)


@handle_operational_errors
def feature_content(content_id: str, when: datetime) -> None:
    _update_content(content_id, [DBContent.is_published.is_(True),
                                 DBContent.is_featured.is_(False)],
                    is_featured=True, featured_at=when, updated=when)


@handle_operational_errors
def unfeature_content(content_id: str, when: datetime) -> None:
    _update_content(content_id, [DBContent.is_featured.is_(True)],
                    is_featured=False, featured_at=None, updated=when)


@handle_operational_errors
def increment_views(content_id: str) -> None:
    """Count one view of published content."""
    _update_content(content_id, [DBContent.is_published.is_(True)],
                    view_count=DBContent.view_count + 1)


@handle_operational_errors
def set_content_tag_ids(content_id: str, tag_ids: List[str]) -> None:
    _update_content(content_id, [], tag_ids=tag_ids)


@handle_operational_errors
def delete_contents(submission_id: str) -> int:
    result = current_session().execute(
        delete(DBContent).where(DBContent.submission_id == submission_id)
        .execution_options(**_NO_SYNC)
    )
    return result.rowcount


# --- TAGS ---

@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def get_tag_by_slug(slug: str) -> Optional[Tag]:
    row = current_session().scalars(
        select(DBTag).where(DBTag.slug == slug)
    ).first()
    return None if row is None else row.to_tag()


@retry(Unavailable, tries=3, delay=1)
@handle_operational_errors
def list_tags() -> List[Tag]:
    """Get the whole tag vocabulary, ordered by slug."""
    rows = current_session().scalars(select(DBTag).order_by(DBTag.slug))
    return [row.to_tag() for row in rows]


@handle_operational_errors
def insert_tag_if_absent(tag: Tag) -> Tag:
    """
    Add ``tag`` unless a tag with the same slug exists.

    Returns
    -------
    :class:`.Tag`
        Either ``tag`` as inserted, or the tag that already held its slug.

    """
    session = current_session()
    try:
        with session.begin_nested():
            session.add(DBTag(tag_id=tag.tag_id, name=tag.name,
                              slug=tag.slug, created=tag.created,
                              updated=tag.updated))
            session.flush()
    except IntegrityError:
        logger.debug('Tag %s already exists', tag.slug)
        row = session.scalars(select(DBTag).where(DBTag.slug == tag.slug)) \
            .one()
        return row.to_tag()
    return tag


# --- SETUP ---

def init_app(app: Flask) -> None:
    """Register the SQLAlchemy extension to an application."""
    db.init_app(app)

    @app.teardown_request
    def teardown_request(exception: Optional[BaseException]) -> None:
        if exception:
            db.session.rollback()
        db.session.remove()


def create_all() -> None:
    """Create all tables in the database."""
    Base.metadata.create_all(db.engine)


def drop_all() -> None:
    """Drop all tables in the database."""
    Base.metadata.drop_all(db.engine)
