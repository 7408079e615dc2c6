"""Provides the base event class."""

import copy
import logging
from datetime import datetime
from typing import Optional

from dataclasses import dataclass, field

from ..agent import Actor, actor_factory
from ..submission import Submission
from ..util import get_tzaware_utc_now

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """
    Base class for submission-related commands.

    An event represents a change to a :class:`.domain.submission.Submission`.
    Rather than changing submissions directly, an application should create
    (and store) events. Each event class must inherit from this base class,
    extend it with whatever data is needed for the event, and define methods
    for validation and projection (changing a submission):

    - ``validate(self, submission: Submission) -> None`` should raise
      :class:`.InvalidTransition` if the event cannot be applied.
    - ``project(self, submission: Submission) -> Submission`` should perform
      changes to the :class:`.domain.submission.Submission` and return it.

    Neither method may touch the store; persisting the outcome is up to the
    caller (see :func:`editorial.core.save`).
    """

    NAME = 'base event'
    NAMED = 'base event'

    creator: Actor
    """
    The actor responsible for the operation represented by this event.

    This is **not** necessarily the owner of the submission.
    """

    created: Optional[datetime] = field(default=None)
    """The moment at which the event was applied."""

    submission_id: Optional[str] = field(default=None)
    """
    The identifier of the submission being operated upon.

    Optional to support creation events.
    """

    before: Optional[Submission] = None
    """The state of the submission prior to the event."""

    after: Optional[Submission] = None
    """The state of the submission after the event."""

    event_type: str = field(default_factory=str)

    def __post_init__(self) -> None:
        """Make sure data look right."""
        self.event_type = self.get_event_type()
        if self.creator and isinstance(self.creator, dict):
            self.creator = actor_factory(**self.creator)
        if self.before and isinstance(self.before, dict):
            self.before = Submission(**self.before)
        if self.after and isinstance(self.after, dict):
            self.after = Submission(**self.after)

    @classmethod
    def get_event_type(cls) -> str:
        """Get the name of the event type."""
        return cls.__name__

    def apply(self, submission: Optional[Submission] = None) -> Submission:
        """
        Validate and project this event onto ``submission``.

        The passed submission is never mutated; the projected state is a copy,
        available afterward as :attr:`after`.
        """
        if self.created is None:
            self.created = get_tzaware_utc_now()
        self.before = copy.deepcopy(submission)
        self.validate(submission)    # type: ignore
        self.after = self.project(copy.deepcopy(submission))  # type: ignore
        assert self.after is not None
        self.after.updated = self.created

        if self.after.submission_id is None and self.submission_id is not None:
            self.after.submission_id = self.submission_id
        if self.submission_id is None and self.after.submission_id is not None:
            self.submission_id = self.after.submission_id
        logger.debug('Applied %s to submission %s', self.event_type,
                     self.submission_id)
        return self.after

    def validate(self, submission: Submission) -> None:
        """Validate this event and its data against a submission."""
        raise NotImplementedError('Must be implemented by subclass')

    def project(self, submission: Submission) -> Submission:
        """Apply this event and its data to a submission."""
        raise NotImplementedError('Must be implemented by subclass')
