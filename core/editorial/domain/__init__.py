"""Core data structures for the editorial pipeline."""

from .agent import Actor, actor_factory, CONTRIBUTOR, REVIEWER, ADMIN, ROLES
from .content import Content, SEO
from .event import Event, CreateSubmission, ChangeStatus, TRANSITIONS
from .review import Review, Decision
from .submission import Submission, SubmissionType, Status, HistoryEntry
from .tag import Tag
