"""
Batch maintenance jobs for the editorial database.

Usage::

    EDITORIAL_DATABASE_URI=mysql://... python maintenance.py backfill-tags
    EDITORIAL_DATABASE_URI=mysql://... python maintenance.py mark-purgeable

``backfill-tags`` derives canonical tag identifiers for documents that only
carry legacy tag strings. ``mark-purgeable`` flags rejected and stale
submissions as eligible for purging. Both can be re-run safely.
"""

from argparse import ArgumentParser
from contextlib import contextmanager
import logging
from typing import Generator, List, Optional

from flask import Flask

import editorial
from editorial import purge, tags
from editorial.services import store

logger = logging.getLogger('editorial.maintenance')


@contextmanager
def app_context(create: bool = False) -> Generator[Flask, None, None]:
    """Provide an application context bound to the configured database."""
    app = Flask('editorial-maintenance')
    app.config.from_object('editorial.config')
    editorial.init_app(app)
    with app.app_context():
        if create:
            store.create_all()
        yield app


def backfill_tags(batch_size: Optional[int] = None) -> None:
    report = tags.backfill(batch_size=batch_size)
    logger.info('%i distinct tags, %i created; %i contents and %i'
                ' submissions updated', report.distinct_tags,
                report.tags_created, report.contents_updated,
                report.submissions_updated)
    for raw in report.skipped:
        logger.warning('Skipped unusable tag %r', raw)
    for failure in report.failed:
        logger.error('Failed to backfill %s: %s', failure.document_id,
                     failure.error)


def mark_purgeable() -> None:
    flagged = purge.mark_eligible()
    logger.info('%i submissions newly flagged as purge-eligible', flagged)


def main(argv: Optional[List[str]] = None) -> None:
    parser = ArgumentParser(description='Editorial maintenance jobs')
    parser.add_argument('--create-tables', action='store_true',
                        help='Create missing tables before running')
    commands = parser.add_subparsers(dest='command', required=True)
    backfill = commands.add_parser('backfill-tags',
                                   help='Derive tag ids from legacy tags')
    backfill.add_argument('--batch-size', type=int, default=None,
                          help='Documents read per page')
    commands.add_parser('mark-purgeable',
                        help='Flag rejected and stale submissions')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    with app_context(create=args.create_tables):
        if args.command == 'backfill-tags':
            backfill_tags(args.batch_size)
        else:
            mark_purgeable()


if __name__ == '__main__':
    main()
