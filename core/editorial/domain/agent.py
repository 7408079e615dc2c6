"""Data structures for actors."""

from typing import Any

from dataclasses import dataclass

__all__ = ('Actor', 'CONTRIBUTOR', 'REVIEWER', 'ADMIN', 'ROLES',
           'actor_factory')

CONTRIBUTOR = 'contributor'
REVIEWER = 'reviewer'
ADMIN = 'admin'

ROLES = (CONTRIBUTOR, REVIEWER, ADMIN)

MODERATORS = (REVIEWER, ADMIN)
"""Roles that may move submissions through moderation."""

_ROLE_ALIASES = {'user': CONTRIBUTOR, 'writer': CONTRIBUTOR,
                 'author': CONTRIBUTOR, 'curator': REVIEWER}


@dataclass
class Actor:
    """
    An authenticated user performing an operation.

    The identity provider is trusted to supply the identifier and role; this
    package only checks that the role is one it knows about.
    """

    native_id: str
    """Identifier of the user in the identity provider."""

    role: str
    """One of :const:`ROLES`."""

    def __post_init__(self) -> None:
        """Normalize legacy role names."""
        self.native_id = str(self.native_id)
        self.role = _ROLE_ALIASES.get(self.role, self.role)
        if self.role not in ROLES:
            raise ValueError(f'No such role: {self.role}')

    @property
    def is_moderator(self) -> bool:
        """Reviewers and admins may moderate submissions."""
        return self.role in MODERATORS

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Actor):
            return False
        return self.native_id == other.native_id


def actor_factory(**data: Any) -> Actor:
    """Instantiate an :class:`.Actor` from raw data."""
    native_id = data.get('native_id') or data.get('id')
    if not native_id:
        raise ValueError('Actor has no identifier')
    return Actor(native_id=native_id, role=data.get('role', ''))
