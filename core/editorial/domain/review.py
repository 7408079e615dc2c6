"""Data structures for reviews."""

from typing import Optional
from datetime import datetime
from enum import Enum

from dataclasses import dataclass, field

from .submission import Status
from .util import coerce_datetime


class Decision(str, Enum):
    """Outcome recorded by a reviewer."""

    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    NEEDS_REVISION = 'needs_revision'
    SHORTLISTED = 'shortlisted'

    @property
    def requires_notes(self) -> bool:
        """Adverse outcomes must be explained to the contributor."""
        return self in (Decision.REJECTED, Decision.NEEDS_REVISION)

    @property
    def status(self) -> Status:
        """The submission status that this decision leads to."""
        return Status(self.value)


ACTIONS = {
    'approve': Decision.ACCEPTED,
    'reject': Decision.REJECTED,
    'revision': Decision.NEEDS_REVISION,
    'shortlist': Decision.SHORTLISTED,
}
"""Review actions offered to moderators, and the decision each records."""


@dataclass
class Review:
    """One moderation decision on a submission. Immutable once stored."""

    submission_id: str
    reviewer_id: str
    decision: Decision
    notes: str = field(default_factory=str)
    rating: Optional[int] = field(default=None)
    review_id: Optional[str] = field(default=None)
    created: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        self.decision = Decision(self.decision)
        self.created = coerce_datetime(self.created)
