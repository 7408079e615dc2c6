"""Tests for application setup and configuration lookup."""

from unittest import TestCase

from flask import Flask

from .util import in_memory_db, ADMIN_ACTOR
from .. import init_app, config, purge
from ..domain.util import new_identifier
from ..exceptions import BatchTooLarge
from ..globals import get_config


class TestInitApp(TestCase):
    def test_defaults(self):
        """Defaults fill in whatever the application does not set."""
        app = Flask('foo')
        app.config['EDITORIAL_DATABASE_URI'] = 'sqlite://'
        app.config['PURGE_MAX_BATCH_SIZE'] = 5
        init_app(app)
        self.assertEqual(app.config['SLUG_MAX_LENGTH'],
                         config.SLUG_MAX_LENGTH)
        self.assertEqual(app.config['PURGE_MAX_BATCH_SIZE'], 5)
        self.assertEqual(app.config['SQLALCHEMY_DATABASE_URI'], 'sqlite://')
        with app.app_context():
            self.assertEqual(get_config('PURGE_MAX_BATCH_SIZE'), 5)
        self.assertEqual(get_config('PURGE_MAX_BATCH_SIZE'),
                         config.PURGE_MAX_BATCH_SIZE)

    def test_configured_batch_size(self):
        app = Flask('foo')
        app.config['PURGE_MAX_BATCH_SIZE'] = 2
        with in_memory_db(app):
            with self.assertRaises(BatchTooLarge):
                purge.execute([new_identifier() for _ in range(3)],
                              ADMIN_ACTOR, confirm=True)
