"""
Commands that change the state of a submission.

Status is the one authoritative disposition of a
:class:`.domain.submission.Submission`, and it only changes by applying a
:class:`ChangeStatus`. The legal moves are enumerated in
:const:`TRANSITIONS`: each edge lists the roles that may take it. A
contributor may additionally take an edge only for a submission that they
own. Anything not listed is an :class:`.InvalidTransition`.

Events do not talk to the store. To persist the outcome of an event, see
:func:`editorial.core.save`; the store writes the new status conditionally on
the prior status (:attr:`.Event.before`), so that two events validated
against the same prior state cannot both succeed.
"""

from typing import Dict, Tuple, Optional, List

from dataclasses import dataclass, field

from ..agent import CONTRIBUTOR, REVIEWER, ADMIN
from ..submission import Submission, SubmissionType, Status, HistoryEntry, \
    INITIAL, DECIDED
from ..util import new_identifier
from ...exceptions import InvalidTransition, RoleNotPermitted
from . import validators
from .base import Event

__all__ = ('Event', 'CreateSubmission', 'ChangeStatus', 'TRANSITIONS',
           'allowed_transitions')

_OWNER = (CONTRIBUTOR, ADMIN)
_ANYONE = (CONTRIBUTOR, REVIEWER, ADMIN)
_MODERATORS = (REVIEWER, ADMIN)
_ADMIN = (ADMIN,)

TRANSITIONS: Dict[Status, Dict[Status, Tuple[str, ...]]] = {
    Status.DRAFT: {
        Status.SUBMITTED: _OWNER,
        Status.PENDING_REVIEW: _OWNER,
    },
    Status.SUBMITTED: {
        Status.PENDING_REVIEW: _ANYONE,
    },
    Status.PENDING_REVIEW: {
        Status.IN_PROGRESS: _MODERATORS,
        Status.SHORTLISTED: _MODERATORS,
        Status.ACCEPTED: _MODERATORS,
        Status.REJECTED: _MODERATORS,
        Status.NEEDS_REVISION: _MODERATORS,
    },
    Status.IN_PROGRESS: {
        Status.PENDING_REVIEW: _MODERATORS,
        Status.SHORTLISTED: _MODERATORS,
        Status.ACCEPTED: _MODERATORS,
        Status.REJECTED: _MODERATORS,
        Status.NEEDS_REVISION: _MODERATORS,
    },
    Status.RESUBMITTED: {
        Status.PENDING_REVIEW: _MODERATORS,
        Status.SHORTLISTED: _MODERATORS,
        Status.ACCEPTED: _MODERATORS,
        Status.REJECTED: _MODERATORS,
        Status.NEEDS_REVISION: _MODERATORS,
    },
    Status.SHORTLISTED: {
        Status.PENDING_REVIEW: _MODERATORS,
    },
    Status.NEEDS_REVISION: {
        Status.RESUBMITTED: _OWNER,
        Status.DRAFT: _OWNER,
    },
    Status.REJECTED: {
        Status.RESUBMITTED: _OWNER,
    },
    Status.ACCEPTED: {
        Status.PUBLISHED: _ADMIN,
        Status.ARCHIVED: _ADMIN,
    },
    Status.PUBLISHED: {
        Status.ARCHIVED: _ADMIN,
    },
}
"""Legal moves: prior status -> new status -> roles that may make the move."""


def allowed_transitions(status: Status, role: str) -> List[Status]:
    """Get the statuses that ``role`` may move a submission into."""
    return [target for target, roles
            in TRANSITIONS.get(Status.parse(status), {}).items()
            if role in roles]


@dataclass
class CreateSubmission(Event):
    """
    Creation of a new :class:`.domain.submission.Submission`.

    The creator becomes the owner. The submission enters the pipeline either
    as a ``draft`` or directly in ``pending_review``; the entry is recorded in
    the history.
    """

    NAME = "create submission"
    NAMED = "submission created"

    title: str = field(default_factory=str)
    submission_type: str = field(default_factory=str)
    description: str = field(default_factory=str)
    tags: List[str] = field(default_factory=list)
    status: Status = field(default=Status.PENDING_REVIEW)

    def validate(self, submission: Optional[Submission] = None) -> None:
        """A new submission needs a title, a known type and initial status."""
        if submission is not None:
            raise InvalidTransition(self, 'Submission already exists')
        self.status = validators.must_be_a_known_status(self, self.status)
        if self.status not in INITIAL:
            raise InvalidTransition(self, f'Cannot create a submission in'
                                          f' {self.status.value}')
        if not self.title or not self.title.strip():
            raise InvalidTransition(self, 'Title is required')
        try:
            SubmissionType(self.submission_type)
        except ValueError as e:
            raise InvalidTransition(self, f'No such submission type:'
                                          f' {self.submission_type}') from e

    def project(self, submission: None = None) -> Submission:
        """Create a new :class:`.domain.submission.Submission`."""
        return Submission(
            submission_id=self.submission_id or new_identifier(),
            owner_id=self.creator.native_id,
            title=self.title.strip(),
            submission_type=self.submission_type,
            description=self.description,
            tags=list(self.tags),
            status=self.status,
            created=self.created,
            history=[HistoryEntry(status=self.status,
                                  user=self.creator.native_id,
                                  role=self.creator.role,
                                  timestamp=self.created)]
        )


@dataclass
class ChangeStatus(Event):
    """
    Move a submission to a new status.

    Side effects of the move, besides the status itself:

    - a :class:`.HistoryEntry` is appended;
    - entering ``accepted`` or ``rejected`` sets ``reviewed_at`` and
      ``reviewed_by``;
    - entering ``in_progress`` assigns the submission to the creator, and
      leaving it releases the assignment;
    - entering ``needs_revision`` stores the note as ``revision_notes``;
    - any purge-eligibility flag is cleared.
    """

    NAME = "change status"
    NAMED = "status changed"

    status: Optional[Status] = field(default=None)
    note: str = field(default_factory=str)

    def validate(self, submission: Submission) -> None:
        """The move must be a listed edge that the creator's role may take."""
        validators.must_exist(self, submission)
        self.status = validators.must_be_a_known_status(self, self.status)
        self._must_be_a_legal_edge(submission)
        self._role_must_be_permitted(submission)
        validators.must_be_owner_if_contributor(self, submission)

    def _must_be_a_legal_edge(self, submission: Submission) -> None:
        assert self.status is not None
        if self.status not in TRANSITIONS.get(submission.status, {}):
            raise InvalidTransition(self, f'Cannot move from'
                                          f' {submission.status.value} to'
                                          f' {self.status.value}')

    def _role_must_be_permitted(self, submission: Submission) -> None:
        assert self.status is not None
        roles = TRANSITIONS[submission.status][self.status]
        if self.creator.role not in roles:
            raise RoleNotPermitted(self, f'{self.creator.role} may not move'
                                         f' from {submission.status.value}'
                                         f' to {self.status.value}')

    def project(self, submission: Submission) -> Submission:
        """Update the status and record the move in the history."""
        assert self.status is not None
        submission.history.append(HistoryEntry(
            status=self.status,
            user=self.creator.native_id,
            role=self.creator.role,
            notes=self.note,
            timestamp=self.created
        ))
        if self.status is Status.IN_PROGRESS:
            submission.assigned_to = self.creator.native_id
            submission.assigned_at = self.created
        elif submission.status is Status.IN_PROGRESS:
            submission.assigned_to = None
            submission.assigned_at = None
        if self.status in DECIDED:
            submission.reviewed_at = self.created
            submission.reviewed_by = self.creator.native_id
        if self.status is Status.NEEDS_REVISION:
            submission.revision_notes = self.note
        submission.purge_eligible = False
        submission.purge_flagged_at = None
        submission.status = self.status
        return submission
