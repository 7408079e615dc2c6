from contextlib import contextmanager
from typing import Optional

from flask import Flask

from .. import init_app, create_all, drop_all, current_session


@contextmanager
def in_memory_db(app: Optional[Flask] = None):
    """Provide an in-memory sqlite database for testing purposes."""
    if app is None:
        app = Flask('foo')
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    init_app(app)
    with app.app_context():
        create_all()
        try:
            yield current_session()
        finally:
            drop_all()
