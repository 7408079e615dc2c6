"""Utility classes and functions for :mod:`.services.store`."""

import logging
from contextlib import contextmanager
from typing import Generator

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.engine import Engine
from sqlalchemy.orm.session import Session

from .exceptions import StoreBaseException, TransactionFailed
from ... import exceptions


class EditorialSQLAlchemy(SQLAlchemy):
    """SQLAlchemy integration for the editorial database."""

    def init_app(self, app: Flask) -> None:
        """Set default configuration."""
        app.config.setdefault(
            'SQLALCHEMY_DATABASE_URI',
            app.config.get('EDITORIAL_DATABASE_URI', 'sqlite://')
        )
        app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)
        super(EditorialSQLAlchemy, self).init_app(app)


db: SQLAlchemy = EditorialSQLAlchemy()

logger = logging.getLogger(__name__)

PROPAGATE = (StoreBaseException, exceptions.NotFound, ValueError,
             exceptions.SlugExhausted)
"""Exceptions that escape a :func:`transaction` as they are."""


def current_engine() -> Engine:
    """Get/create :class:`.Engine` for this context."""
    return db.engine


def current_session() -> Session:
    """Get/create :class:`.Session` for this context."""
    return db.session()


@contextmanager
def transaction() -> Generator:
    """
    Context manager for database transaction.

    Everything done in the block is committed together, or not at all.
    """
    session = current_session()
    try:
        yield session
        session.commit()
    except PROPAGATE as e:
        logger.debug('Command failed, rolling back: %s', str(e))
        session.rollback()
        raise   # Propagate exceptions raised from this package.
    except Exception as e:
        logger.debug('Command failed, rolling back: %s', str(e))
        session.rollback()
        raise TransactionFailed('Failed to execute transaction') from e
