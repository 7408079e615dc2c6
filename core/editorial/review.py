"""
Recording of moderation decisions.

A review and the status change that it calls for are two separate writes.
:func:`record_review` only stores the review and hands back the submission
as it was; :func:`review_action` sequences both, and reports a review that
could not be followed by its status change as :class:`.InconsistentReview`
rather than hiding it.
"""

import logging
from typing import List, Optional, Tuple

from .core import load, change_status
from .domain import Actor, Review, Submission
from .domain.review import Decision, ACTIONS
from .domain.submission import REVIEWABLE
from .domain.util import get_tzaware_utc_now, new_identifier
from .exceptions import NotFound, InvalidTransition, InvalidReview, \
    InvalidRating, MissingRequiredNotes, SubmissionNotReviewable, \
    InconsistentReview
from .globals import get_config
from .services import store

logger = logging.getLogger(__name__)


def _decision(value: str) -> Decision:
    if value == 'approved':
        value = Decision.ACCEPTED.value
    elif value == 'needs_changes':
        value = Decision.NEEDS_REVISION.value
    try:
        return Decision(value)
    except ValueError as e:
        raise InvalidReview(f'No such decision: {value}') from e


def _check_rating(rating: Optional[int]) -> None:
    if rating is None:
        return
    low, high = get_config('RATING_MIN'), get_config('RATING_MAX')
    if isinstance(rating, bool) or not isinstance(rating, int) \
            or not low <= rating <= high:
        raise InvalidRating(f'Rating must be an integer from {low} to {high}')


def record_review(submission_id: str, reviewer: Actor, decision: str,
                  notes: str = '',
                  rating: Optional[int] = None) -> Tuple[Review, Submission]:
    """
    Record a reviewer's decision on a submission.

    The submission's status is not changed; see :func:`review_action`.

    Returns
    -------
    :class:`.Review`
        The stored review.
    :class:`.Submission`
        The submission, as it was when the review was recorded.

    Raises
    ------
    :class:`.NoSuchSubmission`
    :class:`.SubmissionNotReviewable`
        Raised if the submission is not awaiting review, or stops awaiting
        it before the review is stored.
    :class:`.MissingRequiredNotes`
        Raised if an adverse decision comes without notes.
    :class:`.InvalidRating`
    :class:`.InvalidReview`
        Raised for unknown decisions, overlong notes, or if the reviewer is
        not a moderator.

    """
    if not reviewer.is_moderator:
        raise InvalidReview(f'{reviewer.role} may not review submissions')
    outcome = _decision(decision)
    notes = (notes or '').strip()
    submission = load(submission_id)
    if not submission.is_reviewable:
        raise SubmissionNotReviewable(f'Submission {submission_id} is'
                                      f' {submission.status.value}')
    if outcome.requires_notes and not notes:
        raise MissingRequiredNotes(f'Notes are required to record'
                                   f' {outcome.value}')
    if len(notes) > get_config('REVIEW_NOTES_MAX_LENGTH'):
        raise InvalidReview('Review notes are too long')
    _check_rating(rating)

    review = Review(review_id=new_identifier(),
                    submission_id=submission_id,
                    reviewer_id=reviewer.native_id,
                    decision=outcome,
                    notes=notes,
                    rating=rating,
                    created=get_tzaware_utc_now())
    try:
        with store.transaction():
            store.insert_review(review, REVIEWABLE)
    except store.ConsistencyError as e:
        current = load(submission_id)
        raise SubmissionNotReviewable(f'Submission {submission_id} is now'
                                      f' {current.status.value}') from e
    logger.info('Recorded %s review %s on submission %s', outcome.value,
                review.review_id, submission_id)
    return review, submission


def list_reviews(submission_id: str) -> List[Review]:
    """Get the reviews of a submission, newest first."""
    load(submission_id)
    return store.list_reviews(submission_id)


def review_action(submission_id: str, reviewer: Actor, action: str,
                  notes: str = '',
                  rating: Optional[int] = None) -> Tuple[Review, Submission]:
    """
    Record a review and move the submission accordingly.

    ``action`` is one of ``approve``, ``reject``, ``revision`` or
    ``shortlist``.

    Raises
    ------
    :class:`.InconsistentReview`
        Raised if the review was stored but the status change failed. The
        review is not rolled back.

    """
    if action not in ACTIONS:
        raise InvalidReview(f'No such review action: {action}')
    decision = ACTIONS[action]
    review, _ = record_review(submission_id, reviewer, decision.value,
                              notes=notes, rating=rating)
    try:
        after = change_status(submission_id, decision.status.value,
                              reviewer, review.notes)
    except (InvalidTransition, NotFound, store.StoreBaseException) as e:
        logger.error('Review %s recorded on submission %s, but the move to'
                     ' %s failed: %s', review.review_id, submission_id,
                     decision.status.value, e)
        raise InconsistentReview(review, e) from e
    return review, after
