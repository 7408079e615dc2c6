"""Core persistence methods for submissions and their status."""

import logging
from typing import List, Iterable, Mapping, Any, Optional

from .domain import Actor, Submission, Content, Status
from .domain.event import Event, CreateSubmission, ChangeStatus
from .domain.util import new_identifier
from .exceptions import NoSuchSubmission, InvalidTransition, InvalidContent
from .services import store
from .tags import resolve as resolve_tags

logger = logging.getLogger(__name__)


def load(submission_id: str) -> Submission:
    """
    Load a submission from the store.

    Raises
    ------
    :class:`.exceptions.NoSuchSubmission`
        Raised when the submission does not exist.

    """
    try:
        return store.get_submission(submission_id)
    except store.NoSuchSubmission as e:
        raise NoSuchSubmission(f'No submission with id {submission_id}') \
            from e


def save(event: Event, contents: Iterable[Content] = ()) -> Submission:
    """
    Persist the outcome of an applied :class:`.Event`.

    A status change is written conditionally on the status that the event was
    validated against, together with its history entry. If another change got
    there first, nothing is written.

    Raises
    ------
    :class:`.InvalidTransition`
        Raised when the submission is no longer in the status that the event
        was validated against.

    """
    if event.after is None:
        raise RuntimeError('Event has not been applied')
    try:
        with store.transaction():
            if event.before is None:
                store.insert_submission(event.after, contents)
            else:
                store.update_status(event.before, event.after)
    except store.ConsistencyError as e:
        current = load(event.after.submission_id)   # type: ignore
        raise InvalidTransition(event, f'submission is now in'
                                       f' {current.status.value}') from e
    return event.after


def create_submission(creator: Actor, title: str, submission_type: str,
                      contents: List[Mapping[str, Any]],
                      description: str = '',
                      tags: Iterable[str] = (),
                      status: Status = Status.PENDING_REVIEW) -> Submission:
    """
    Create a new submission and its content items.

    Parameters
    ----------
    creator : :class:`.Actor`
        Becomes the owner of the submission and of all of its content.
    contents : list
        One or more mappings with ``title`` and ``body``, and optionally
        ``footnotes`` and ``tags``. Items without tags of their own get
        ``tags``.
    status : :class:`.Status`
        Either ``draft`` or ``pending_review``.

    """
    if not contents:
        raise InvalidContent('A submission needs at least one content item')
    default_tags = list(tags)
    event = CreateSubmission(creator=creator, submission_id=new_identifier(),
                             title=title, submission_type=submission_type,
                             description=description, status=status)
    submission = event.apply()

    items: List[Content] = []
    with store.transaction():
        for data in contents:
            items.append(_new_content(submission, data, default_tags))
        for item in items:
            item.tag_ids = resolve_tags(item.tags)
        submission.content_ids = [item.content_id for item in items]
        submission.tags = _union(item.tags for item in items)
        submission.tag_ids = _union(item.tag_ids or [] for item in items)
        store.insert_submission(submission, items)
    logger.info('Created submission %s (%s) for %s',
                submission.submission_id, submission.status.value,
                creator.native_id)
    return submission


def _new_content(submission: Submission, data: Mapping[str, Any],
                 default_tags: List[str]) -> Content:
    if not data.get('title') or not data.get('body'):
        raise InvalidContent('Content needs a title and a body')
    return Content(content_id=new_identifier(),
                   owner_id=submission.owner_id,
                   submission_id=submission.submission_id,  # type: ignore
                   title=data['title'],
                   body=data['body'],
                   footnotes=data.get('footnotes', ''),
                   tags=list(data.get('tags') or default_tags),
                   created=submission.created,
                   updated=submission.created)


def _union(lists: Iterable[List[str]]) -> List[str]:
    union: List[str] = []
    for values in lists:
        for value in values:
            if value not in union:
                union.append(value)
    return union


def change_status(submission_id: str, status: str, actor: Actor,
                  note: Optional[str] = None) -> Submission:
    """
    Move a submission to a new status.

    Illegal moves leave the submission and its history untouched.

    Raises
    ------
    :class:`.NoSuchSubmission`
    :class:`.InvalidTransition`
        Raised if the move is not allowed from the current status, by the
        actor's role, or if another change was persisted concurrently.

    """
    submission = load(submission_id)
    event = ChangeStatus(creator=actor, submission_id=submission_id,
                         status=status, note=note or '')   # type: ignore
    event.apply(submission)
    after = save(event)
    logger.info('Submission %s moved from %s to %s by %s (%s)',
                submission_id, submission.status.value, after.status.value,
                actor.native_id, actor.role)
    return after
