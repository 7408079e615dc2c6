"""Helpers for testing editorial operations against a database."""

from contextlib import contextmanager
from datetime import datetime
from typing import Optional, List

from flask import Flask
from sqlalchemy import update

from .. import init_app, create_submission
from ..domain import Actor, Submission, Status
from ..domain.agent import CONTRIBUTOR, REVIEWER, ADMIN
from ..services import store
from ..services.store.models import DBSubmission

WRITER = Actor('writer-1', CONTRIBUTOR)
OTHER_WRITER = Actor('writer-2', CONTRIBUTOR)
REVIEWER_ACTOR = Actor('reader-1', REVIEWER)
ADMIN_ACTOR = Actor('root', ADMIN)


@contextmanager
def in_memory_db(app: Optional[Flask] = None):
    """Provide an in-memory sqlite database for testing purposes."""
    if app is None:
        app = Flask('foo')
    app.config['EDITORIAL_DATABASE_URI'] = 'sqlite://'
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    init_app(app)
    with app.app_context():
        store.create_all()
        try:
            yield store.current_session()
        finally:
            store.drop_all()


def make_submission(title: str = 'Of salt and silence',
                    status: Status = Status.PENDING_REVIEW,
                    owner: Actor = WRITER,
                    contents: Optional[List[dict]] = None,
                    tags: List[str] = ()) -> Submission:
    """Create a submission with a single poem, unless told otherwise."""
    if contents is None:
        contents = [{'title': title,
                     'body': '<p>The sea keeps <em>nothing</em> it is'
                             ' given &amp; returns it all.</p>'}]
    return create_submission(owner, title, 'poem', contents,
                             description='A poem', tags=tags, status=status)


def force_status(submission_id: str, status: Status) -> None:
    """Put a submission in a status without going through moderation."""
    with store.transaction() as session:
        session.execute(update(DBSubmission)
                        .where(DBSubmission.submission_id == submission_id)
                        .values(status=status.value))


def backdate(submission_id: str, when: datetime) -> None:
    """Pretend that a submission was last changed at ``when``."""
    with store.transaction() as session:
        session.execute(update(DBSubmission)
                        .where(DBSubmission.submission_id == submission_id)
                        .values(updated=when))
