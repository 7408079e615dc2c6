"""
Core editorial pipeline: moderation, publication, tags and purging.

Contributors submit written work as a :class:`.Submission` made of one or
more :class:`.Content` items. Reviewers and admins move submissions through
moderation; content of accepted submissions can be published; rejected and
abandoned submissions are eventually purged.

Status and its history
======================

A submission is always in exactly one :class:`.Status`. The status only
changes by applying a :class:`.ChangeStatus` event, which checks the move
against :const:`.domain.event.TRANSITIONS` and the actor's role, and appends
an entry to the submission's history. :func:`.core.change_status` persists
the new status and the history entry together, and only if the stored status
is still the one that the move was checked against; two concurrent moves
from the same status cannot both succeed.

.. code-block:: python

   >>> from editorial import change_status, Actor
   >>> reviewer = Actor('u-1', 'reviewer')
   >>> change_status(submission_id, 'in_progress', reviewer)

Reviews
=======

:mod:`.review` records reviewer decisions. A review is stored independently of
the status change it calls for; :func:`.review.review_action` sequences the
two and reports a review whose status change failed.

Publication and tags
====================

:mod:`.publisher` publishes content under unique slugs. :mod:`.tags` maps
free-text tags onto a shared vocabulary, and can backfill documents that only
carry legacy tag strings.

Purging
=======

:mod:`.purge` previews and executes the cascading deletion of submissions,
their content and their reviews.

Setup
=====

Call :func:`init_app` on a Flask application; operations that touch the store
must run within its application context.
"""

import logging

from flask import Flask

from . import config
from .core import load, save, create_submission, change_status
from .domain import Actor, Submission, Content, Review, Tag, Status, \
    SubmissionType, ChangeStatus, CreateSubmission
from .services import store


def init_app(app: Flask) -> None:
    """Apply configuration defaults and register the store."""
    for key, value in vars(config).items():
        if key.isupper() and not key.startswith('SQLALCHEMY_'):
            app.config.setdefault(key, value)
    logging.getLogger(__name__).setLevel(app.config['LOGLEVEL'])
    store.init_app(app)
