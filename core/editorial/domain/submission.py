"""Data structures for submissions."""

from typing import Optional, List
from datetime import datetime
from enum import Enum

from dataclasses import dataclass, field

from .util import coerce_datetime, list_coerce


class Status(str, Enum):
    """
    Disposition of a submission within the moderation pipeline.

    A submission is always in exactly one of these states. The legacy names
    ``approved`` and ``needs_changes`` are accepted by :meth:`parse` and
    mapped onto their canonical counterparts.
    """

    DRAFT = 'draft'
    SUBMITTED = 'submitted'
    PENDING_REVIEW = 'pending_review'
    IN_PROGRESS = 'in_progress'
    RESUBMITTED = 'resubmitted'
    SHORTLISTED = 'shortlisted'
    NEEDS_REVISION = 'needs_revision'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    PUBLISHED = 'published'
    ARCHIVED = 'archived'

    @classmethod
    def parse(cls, value: str) -> 'Status':
        """Get the canonical :class:`.Status` for a value or legacy alias."""
        if isinstance(value, cls):
            return value
        return cls(_ALIASES.get(value, value))


_ALIASES = {'approved': Status.ACCEPTED.value,
            'needs_changes': Status.NEEDS_REVISION.value}

INITIAL = (Status.DRAFT, Status.PENDING_REVIEW)
"""A submission enters the pipeline in one of these states."""

TERMINAL = (Status.PUBLISHED, Status.ARCHIVED, Status.REJECTED)
"""No further moderation; ``rejected`` may still be resubmitted."""

REVIEWABLE = (Status.PENDING_REVIEW, Status.IN_PROGRESS, Status.RESUBMITTED)
"""Reviews may be recorded for submissions in these states."""

DECIDED = (Status.ACCEPTED, Status.REJECTED)
"""Entering one of these states sets :attr:`Submission.reviewed_at`."""

PUBLISHABLE = (Status.ACCEPTED, Status.PUBLISHED)
"""Content may be published only when its submission is in these states."""

PURGEABLE = (Status.REJECTED, Status.NEEDS_REVISION, Status.DRAFT)
"""Submissions in these states may be purged."""

ACTIONS = {
    Status.DRAFT: 'moved_to_draft',
    Status.SUBMITTED: 'submitted',
    Status.PENDING_REVIEW: 'submitted',
    Status.IN_PROGRESS: 'moved_to_in_progress',
    Status.RESUBMITTED: 'resubmitted',
    Status.SHORTLISTED: 'shortlisted',
    Status.NEEDS_REVISION: 'needs_revision',
    Status.ACCEPTED: 'approved',
    Status.REJECTED: 'rejected',
    Status.PUBLISHED: 'published',
    Status.ARCHIVED: 'archived',
}
"""Name of the history action recorded for a move into each state."""


class SubmissionType(str, Enum):
    """Kinds of written work accepted for submission."""

    POEM = 'poem'
    PROSE = 'prose'
    ARTICLE = 'article'
    BOOK_REVIEW = 'book_review'
    CINEMA_ESSAY = 'cinema_essay'
    OPINION = 'opinion'


@dataclass
class HistoryEntry:
    """One recorded status change. Never modified once written."""

    status: Status
    user: str
    role: str
    action: str = field(default_factory=str)
    notes: str = field(default_factory=str)
    timestamp: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        self.status = Status.parse(self.status)
        if not self.action:
            self.action = ACTIONS[self.status]
        self.timestamp = coerce_datetime(self.timestamp)


@dataclass
class Submission:
    """
    Represents a contributor's bundle of work under review.

    Status only changes by applying a :class:`.event.ChangeStatus`; the
    change and its :class:`.HistoryEntry` are persisted together.
    """

    owner_id: str
    title: str
    submission_type: SubmissionType
    submission_id: Optional[str] = field(default=None)
    description: str = field(default_factory=str)
    status: Status = field(default=Status.DRAFT)
    content_ids: List[str] = field(default_factory=list)
    """Content items of this submission, in order."""

    tags: List[str] = field(default_factory=list)
    """Raw tag strings as submitted; kept for audit."""

    tag_ids: Optional[List[str]] = field(default=None)
    """Union of the tag identifiers of the submission's content."""

    created: Optional[datetime] = field(default=None)
    updated: Optional[datetime] = field(default=None)
    reviewed_at: Optional[datetime] = field(default=None)
    reviewed_by: Optional[str] = field(default=None)
    assigned_to: Optional[str] = field(default=None)
    assigned_at: Optional[datetime] = field(default=None)
    revision_notes: str = field(default_factory=str)
    purge_eligible: bool = field(default=False)
    purge_flagged_at: Optional[datetime] = field(default=None)
    history: List[HistoryEntry] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL

    @property
    def is_reviewable(self) -> bool:
        """Reviews may currently be recorded for this submission."""
        return self.status in REVIEWABLE

    @property
    def is_publishable(self) -> bool:
        """Content of this submission may be published."""
        return self.status in PUBLISHABLE

    @property
    def is_purgeable(self) -> bool:
        return self.purge_eligible or self.status in PURGEABLE

    def is_owned_by(self, user_id: str) -> bool:
        return self.owner_id == str(user_id)

    def __post_init__(self) -> None:
        self.status = Status.parse(self.status)
        self.submission_type = SubmissionType(self.submission_type)
        self.created = coerce_datetime(self.created)
        self.updated = coerce_datetime(self.updated)
        self.reviewed_at = coerce_datetime(self.reviewed_at)
        self.assigned_at = coerce_datetime(self.assigned_at)
        self.purge_flagged_at = coerce_datetime(self.purge_flagged_at)
        self.history = list_coerce(HistoryEntry, self.history)


__all__ = ('Status', 'SubmissionType', 'HistoryEntry', 'Submission',
           'INITIAL', 'TERMINAL', 'REVIEWABLE', 'DECIDED', 'PUBLISHABLE',
           'PURGEABLE', 'ACTIONS')
