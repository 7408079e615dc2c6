"""Tests for :mod:`editorial.services.store`."""

import copy
from datetime import datetime, timedelta
from unittest import TestCase

from pytz import UTC
from sqlalchemy import select, func

from .util import in_memory_db
from ..models import DBTag, DBHistoryEntry
from ... import store
from ....domain import Submission, Content, SEO, Review, Tag, Status, \
    HistoryEntry
from ....domain.util import new_identifier

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def _submission(status=Status.PENDING_REVIEW, **kwargs):
    submission_id = new_identifier()
    return Submission(submission_id=submission_id, owner_id='writer-1',
                      title='Tidewater', submission_type='prose',
                      status=status, created=NOW, updated=NOW,
                      tags=['Sea', 'salt'],
                      history=[HistoryEntry(status=status, user='writer-1',
                                            role='contributor',
                                            timestamp=NOW)],
                      **kwargs)


def _content(submission, title='Tidewater', **kwargs):
    return Content(content_id=new_identifier(), owner_id=submission.owner_id,
                   submission_id=submission.submission_id, title=title,
                   body='Low water.', tags=['Sea'], created=NOW, updated=NOW,
                   **kwargs)


class TestSubmissions(TestCase):
    """Persisting submissions and their status."""

    def test_insert_and_get(self):
        """A stored submission comes back with its history and content."""
        with in_memory_db():
            submission = _submission()
            contents = [_content(submission, 'one'),
                        _content(submission, 'two')]
            with store.transaction():
                store.insert_submission(submission, contents)

            loaded = store.get_submission(submission.submission_id)
            self.assertEqual(loaded.title, 'Tidewater')
            self.assertEqual(loaded.status, Status.PENDING_REVIEW)
            self.assertEqual(loaded.content_ids,
                             [c.content_id for c in contents])
            self.assertEqual(loaded.tags, ['Sea', 'salt'])
            self.assertIsNone(loaded.tag_ids)
            self.assertEqual(len(loaded.history), 1)
            self.assertEqual(loaded.created, NOW)
            self.assertEqual(loaded.created.tzinfo, UTC)

    def test_get_missing(self):
        with in_memory_db():
            with self.assertRaises(store.NoSuchSubmission):
                store.get_submission(new_identifier())

    def test_update_status(self):
        """The status and the new history entry are written together."""
        with in_memory_db() as session:
            before = _submission()
            with store.transaction():
                store.insert_submission(before)
            after = copy.deepcopy(before)
            after.status = Status.ACCEPTED
            after.reviewed_at = NOW
            after.history.append(HistoryEntry(status=Status.ACCEPTED,
                                              user='reader-1',
                                              role='reviewer',
                                              timestamp=NOW))
            with store.transaction():
                store.update_status(before, after)

            loaded = store.get_submission(before.submission_id)
            self.assertEqual(loaded.status, Status.ACCEPTED)
            self.assertEqual(loaded.reviewed_at, NOW)
            self.assertEqual([e.status for e in loaded.history],
                             [Status.PENDING_REVIEW, Status.ACCEPTED])
            self.assertEqual(
                session.scalar(select(func.count(DBHistoryEntry.entry_id))),
                2
            )

    def test_update_stale_status(self):
        """Nothing is written if the stored status has moved on."""
        with in_memory_db() as session:
            before = _submission()
            with store.transaction():
                store.insert_submission(before)
            stale = copy.deepcopy(before)
            stale.status = Status.IN_PROGRESS
            after = copy.deepcopy(before)
            after.status = Status.ACCEPTED
            after.history.append(HistoryEntry(status=Status.ACCEPTED,
                                              user='reader-1',
                                              role='reviewer'))
            with self.assertRaises(store.ConsistencyError):
                with store.transaction():
                    store.update_status(stale, after)

            loaded = store.get_submission(before.submission_id)
            self.assertEqual(loaded.status, Status.PENDING_REVIEW)
            self.assertEqual(len(loaded.history), 1)
            self.assertEqual(
                session.scalar(select(func.count(DBHistoryEntry.entry_id))),
                1
            )

    def test_mark_purge_eligible_once(self):
        """Flagged submissions are not flagged again."""
        with in_memory_db():
            old = _submission(Status.REJECTED)
            old.updated = NOW - timedelta(days=90)
            recent = _submission(Status.REJECTED)
            accepted = _submission(Status.ACCEPTED)
            accepted.updated = NOW - timedelta(days=90)
            with store.transaction():
                for submission in (old, recent, accepted):
                    store.insert_submission(submission)

            cutoff = NOW - timedelta(days=30)
            with store.transaction():
                flagged = store.mark_purge_eligible([Status.REJECTED],
                                                    cutoff, NOW)
            self.assertEqual(flagged, 1)
            with store.transaction():
                flagged = store.mark_purge_eligible([Status.REJECTED],
                                                    cutoff, NOW)
            self.assertEqual(flagged, 0)
            self.assertTrue(
                store.get_submission(old.submission_id).purge_eligible
            )
            self.assertEqual(store.count_purge_eligible(), 1)

    def test_find_and_count(self):
        with in_memory_db():
            submissions = [_submission(Status.DRAFT),
                           _submission(Status.DRAFT),
                           _submission(Status.REJECTED),
                           _submission(Status.ACCEPTED)]
            with store.transaction():
                for submission in submissions:
                    store.insert_submission(submission)

            found, total = store.find_submissions([Status.DRAFT], limit=1)
            self.assertEqual(total, 2)
            self.assertEqual(len(found), 1)
            self.assertEqual(found[0].status, Status.DRAFT)
            self.assertEqual(store.count_by_status(),
                             {Status.DRAFT: 2, Status.REJECTED: 1,
                              Status.ACCEPTED: 1})

    def test_scan(self):
        """Scans page through everything exactly once."""
        with in_memory_db():
            with store.transaction():
                for _ in range(5):
                    store.insert_submission(_submission())
            seen = []
            after = None
            while True:
                page = store.scan_submissions(after=after, limit=2)
                if not page:
                    break
                seen.extend(s.submission_id for s in page)
                after = page[-1].submission_id
            self.assertEqual(len(seen), 5)
            self.assertEqual(seen, sorted(seen))


class TestContent(TestCase):
    """Conditional content updates."""

    def setUp(self):
        self.submission = _submission(Status.ACCEPTED)
        self.content = _content(self.submission)

    def _insert(self, *contents):
        with store.transaction():
            store.insert_submission(self.submission,
                                    contents or [self.content])

    def test_publish(self):
        with in_memory_db():
            self._insert()
            seo = SEO(slug='tidewater', meta_title='Tidewater',
                      meta_description='Low water.')
            with store.transaction():
                store.publish_content(self.content.content_id, seo, NOW)

            content = store.get_content(self.content.content_id)
            self.assertTrue(content.is_published)
            self.assertEqual(content.published_at, NOW)
            self.assertEqual(content.seo, seo)
            self.assertEqual(store.slug_holder('tidewater'),
                             self.content.content_id)

    def test_publish_unaccepted(self):
        """Content of a submission under review is not published."""
        self.submission = _submission(Status.PENDING_REVIEW)
        self.content = _content(self.submission)
        with in_memory_db():
            self._insert()
            with self.assertRaises(store.ConsistencyError):
                with store.transaction():
                    store.publish_content(self.content.content_id,
                                          SEO(slug='tidewater'), NOW)
            self.assertFalse(
                store.get_content(self.content.content_id).is_published
            )

    def test_slug_conflict(self):
        """Two content items cannot hold the same slug."""
        with in_memory_db():
            other = _content(self.submission, 'Tidewater again')
            self._insert(self.content, other)
            with store.transaction():
                store.publish_content(self.content.content_id,
                                      SEO(slug='tidewater'), NOW)
            with self.assertRaises(store.Conflict):
                with store.transaction():
                    store.publish_content(other.content_id,
                                          SEO(slug='tidewater'), NOW)
            self.assertFalse(store.get_content(other.content_id).is_published)

    def test_feature_requires_publication(self):
        with in_memory_db():
            self._insert()
            with self.assertRaises(store.ConsistencyError):
                with store.transaction():
                    store.feature_content(self.content.content_id, NOW)

    def test_views(self):
        with in_memory_db():
            self._insert()
            with store.transaction():
                store.publish_content(self.content.content_id,
                                      SEO(slug='tidewater'), NOW)
            for _ in range(3):
                with store.transaction():
                    store.increment_views(self.content.content_id)
            self.assertEqual(
                store.get_content(self.content.content_id).view_count, 3
            )

    def test_cascade(self):
        """Deleting children then the parent leaves nothing behind."""
        with in_memory_db():
            self._insert()
            review = Review(review_id=new_identifier(),
                            submission_id=self.submission.submission_id,
                            reviewer_id='reader-1', decision='accepted',
                            created=NOW)
            with store.transaction():
                store.insert_review(review)
            submission_id = self.submission.submission_id
            self.assertEqual(store.count_contents(submission_id), 1)
            self.assertEqual(store.count_reviews(submission_id), 1)

            with store.transaction():
                self.assertEqual(store.delete_contents(submission_id), 1)
                self.assertEqual(store.delete_reviews(submission_id), 1)
                self.assertEqual(store.delete_submission(submission_id), 1)

            with self.assertRaises(store.NoSuchSubmission):
                store.get_submission(submission_id)
            self.assertEqual(store.count_contents(submission_id), 0)
            self.assertEqual(store.list_reviews(submission_id), [])


    def test_review_only_in_given_statuses(self):
        """A conditional review insert checks the stored status."""
        with in_memory_db():
            self._insert()
            submission_id = self.submission.submission_id
            review = Review(review_id=new_identifier(),
                            submission_id=submission_id,
                            reviewer_id='reader-1', decision='rejected',
                            notes='thin', rating=2, created=NOW)
            with store.transaction():
                store.insert_review(review, [Status.ACCEPTED])
            stored = store.list_reviews(submission_id)
            self.assertEqual(len(stored), 1)
            self.assertEqual(stored[0].notes, 'thin')
            self.assertEqual(stored[0].rating, 2)
            self.assertEqual(stored[0].created, NOW)

            late = Review(review_id=new_identifier(),
                          submission_id=submission_id,
                          reviewer_id='reader-1', decision='accepted',
                          created=NOW)
            with self.assertRaises(store.ConsistencyError):
                with store.transaction():
                    store.insert_review(late, [Status.PENDING_REVIEW])
            self.assertEqual(store.count_reviews(submission_id), 1)

class TestTags(TestCase):
    """Insert-if-absent on the tag vocabulary."""

    def test_insert_if_absent(self):
        """The second insert of a slug returns the first tag."""
        with in_memory_db() as session:
            first = Tag(tag_id=new_identifier(), name='sea', slug='sea',
                        created=NOW, updated=NOW)
            second = Tag(tag_id=new_identifier(), name='sea', slug='sea',
                         created=NOW, updated=NOW)
            with store.transaction():
                self.assertEqual(store.insert_tag_if_absent(first).tag_id,
                                 first.tag_id)
                self.assertEqual(store.insert_tag_if_absent(second).tag_id,
                                 first.tag_id)
            self.assertEqual(session.scalar(select(func.count(DBTag.tag_id))),
                             1)
            self.assertEqual(store.get_tag_by_slug('sea').tag_id,
                             first.tag_id)
