"""Reusable validators for events."""

from .base import Event
from ..agent import CONTRIBUTOR
from ..submission import Submission, Status
from ...exceptions import InvalidTransition, RoleNotPermitted


def must_be_a_known_status(event: Event, value: str) -> Status:
    """Get the canonical :class:`.Status` for ``value``, or fail."""
    try:
        return Status.parse(value)
    except ValueError as e:
        raise InvalidTransition(event, f'No such status: {value}') from e


def must_exist(event: Event, submission: Submission) -> None:
    if submission is None:
        raise InvalidTransition(event, 'Submission does not exist')


def must_be_owner_if_contributor(event: Event, submission: Submission) \
        -> None:
    """
    Contributors may act only on their own submissions.

    Reviewers and admins are not subject to this check.
    """
    if event.creator.role != CONTRIBUTOR:
        return
    if not submission.is_owned_by(event.creator.native_id):
        raise RoleNotPermitted(event, 'Contributors may only act on their'
                                      ' own submissions')
