"""Exceptions raised by editorial operations."""

from typing import TypeVar, Any, Optional

EventType = TypeVar('EventType')


class NotFound(LookupError):
    """An operation was performed on/for an entity that does not exist."""


class NoSuchSubmission(NotFound):
    """An operation was performed on/for a submission that does not exist."""


class NoSuchContent(NotFound):
    """An operation was performed on/for content that does not exist."""


class InvalidTransition(ValueError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, event: EventType, message: str = '') -> None:
        """Use the :class:`.Event` to build an error message."""
        self.event = event
        self.message = message
        r = f"Invalid {event.event_type}: {message}"  # type: ignore
        super(InvalidTransition, self).__init__(r)


class RoleNotPermitted(InvalidTransition):
    """The actor's role does not allow this transition."""


class InvalidContent(ValueError):
    """Content data are missing or malformed."""


class SubmissionNotReviewable(ValueError):
    """The submission is not in a status that accepts reviews."""


class SubmissionNotAccepted(ValueError):
    """Content cannot be published before its submission is accepted."""


class MissingRequiredNotes(ValueError):
    """An adverse review decision was made without notes."""


class InvalidRating(ValueError):
    """A review rating is outside of the allowed range."""


class InvalidReview(ValueError):
    """Review data are malformed (unknown decision, reviewer role, etc)."""


class NotPublished(ValueError):
    """The content is not currently published."""


class AlreadyFeatured(ValueError):
    """The content is already featured."""


class NotFeatured(ValueError):
    """The content is not currently featured."""


class InvalidSlug(ValueError):
    """A caller-supplied slug is not URL-safe."""


class SlugExhausted(RuntimeError):
    """No free slug was found within the configured number of probes."""


class InvalidTag(ValueError):
    """A tag string normalizes to nothing."""


class Unconfirmed(ValueError):
    """A destructive batch operation was requested without confirmation."""


class BatchTooLarge(ValueError):
    """Too many identifiers were passed to a batch operation."""


class InvalidIdentifier(ValueError):
    """An identifier does not have the expected shape."""


class NotPurgeable(ValueError):
    """The submission is not eligible for purging."""


class NothingToDo(RuntimeError):
    """There is nothing to do."""


class PartialBatchFailure(RuntimeError):
    """Some items of a batch operation failed."""

    def __init__(self, result: Any) -> None:
        """Keep the batch result for the caller."""
        self.result = result
        super(PartialBatchFailure, self).__init__(
            f'{len(result.failed)} of {result.attempted} items failed'
        )


class InconsistentReview(RuntimeError):
    """
    A review was recorded but the matching status change failed.

    The review and the underlying cause are attached so that the caller can
    reconcile the two records.
    """

    def __init__(self, review: Any, cause: Optional[Exception] = None) -> None:
        self.review = review
        self.cause = cause
        super(InconsistentReview, self).__init__(
            f'Review {review.review_id} recorded for submission'
            f' {review.submission_id}, but status change failed: {cause}'
        )
