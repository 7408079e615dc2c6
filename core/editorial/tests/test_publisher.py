"""Tests for :mod:`editorial.publisher`."""

from unittest import TestCase, mock

from mimesis import Text

from .util import in_memory_db, make_submission, force_status
from .. import publisher
from ..domain import Status, SEO
from ..domain.util import new_identifier
from ..exceptions import SubmissionNotAccepted, NotPublished, \
    AlreadyFeatured, NotFeatured, NoSuchContent, InvalidSlug, SlugExhausted
from ..services import store


def _accepted_content(title: str = 'Of Salt and Silence') -> str:
    submission = make_submission(title=title)
    force_status(submission.submission_id, Status.ACCEPTED)
    return submission.content_ids[0]


class TestDerivation(TestCase):
    """Slugs and metadata derived from content."""

    def test_derive_slug(self):
        self.assertEqual(publisher.derive_slug('  Of Salt & Silence!  '),
                         'of-salt-silence')
        self.assertEqual(publisher.derive_slug('Café -- au   lait'),
                         'cafe-au-lait')
        self.assertEqual(publisher.derive_slug('???'), 'untitled')

    def test_derive_long_slug(self):
        slug = publisher.derive_slug('word ' * 40)
        self.assertLessEqual(len(slug), 60)
        self.assertFalse(slug.endswith('-'))

    def test_meta_description(self):
        """Markup is dropped, and long text is cut with an ellipsis."""
        self.assertEqual(
            publisher.meta_description('<p>Salt &amp; <b>silence</b></p>'),
            'Salt & silence'
        )
        description = publisher.meta_description('word ' * 100)
        self.assertEqual(len(description), 160)
        self.assertTrue(description.endswith('...'))

    def test_meta_title(self):
        self.assertEqual(len(publisher.meta_title('x' * 100)), 70)


class TestPublish(TestCase):
    """Publishing and withdrawing content."""

    def test_publish(self):
        with in_memory_db():
            content_id = _accepted_content()
            published = publisher.publish(content_id)
            self.assertTrue(published.is_published)
            self.assertIsNotNone(published.published_at)
            self.assertEqual(published.seo.slug, 'of-salt-and-silence')
            self.assertEqual(published.seo.meta_title, 'Of Salt and Silence')
            self.assertEqual(published.seo.meta_description,
                             'The sea keeps nothing it is given & returns'
                             ' it all.')
            self.assertEqual(publisher.get_published('of-salt-and-silence')
                             .content_id, content_id)

    def test_publish_under_review(self):
        """Content of a submission under review stays unpublished."""
        with in_memory_db():
            submission = make_submission()
            content_id = submission.content_ids[0]
            with self.assertRaises(SubmissionNotAccepted):
                publisher.publish(content_id)
            self.assertFalse(store.get_content(content_id).is_published)

    def test_publish_missing(self):
        with in_memory_db():
            with self.assertRaises(NoSuchContent):
                publisher.publish(new_identifier())

    def test_publish_with_overrides(self):
        with in_memory_db():
            content_id = _accepted_content()
            published = publisher.publish(content_id, slug='salt',
                                          title='Salt',
                                          description='A poem.')
            self.assertEqual(published.seo,
                             SEO(slug='salt', meta_title='Salt',
                                 meta_description='A poem.'))

    def test_invalid_slug(self):
        with in_memory_db():
            content_id = _accepted_content()
            for slug in ('Salt', 'salt--silence', '-salt', 'salt silence'):
                with self.assertRaises(InvalidSlug):
                    publisher.publish(content_id, slug=slug)

    def test_slugs_are_unique(self):
        """The same title gets numbered slugs."""
        with in_memory_db():
            slugs = [publisher.publish(_accepted_content('Tide')).seo.slug
                     for _ in range(3)]
            self.assertEqual(slugs, ['tide', 'tide-1', 'tide-2'])

    def test_random_titles_get_unique_slugs(self):
        text = Text()
        with in_memory_db():
            titles = [text.title()[:50] for _ in range(10)]
            titles += titles[:5]
            slugs = [publisher.publish(_accepted_content(title)).seo.slug
                     for title in titles]
            self.assertEqual(len(set(slugs)), len(slugs))

    def test_republish_keeps_slug(self):
        with in_memory_db():
            content_id = _accepted_content('Tide')
            publisher.publish(content_id)
            publisher.unpublish(content_id)
            self.assertEqual(publisher.publish(content_id).seo.slug, 'tide')

    def test_slug_taken_concurrently(self):
        """A slug taken between probe and write is probed again."""
        with in_memory_db():
            content_id = _accepted_content('Tide')
            other_id = _accepted_content('Tide')
            with store.transaction():
                store.publish_content(other_id, SEO(slug='tide'),
                                      store.get_content(other_id).created)
            with mock.patch.object(publisher.store, 'slug_holder',
                                   side_effect=[None, other_id, None]):
                published = publisher.publish(content_id)
            self.assertEqual(published.seo.slug, 'tide-1')

    def test_slugs_exhausted(self):
        with in_memory_db(), \
                mock.patch.object(publisher, 'get_config',
                                  side_effect=lambda key: {
                                      'SLUG_MAX_PROBES': 2,
                                      'SLUG_MAX_LENGTH': 60,
                                      'META_TITLE_MAX_LENGTH': 70,
                                      'META_DESCRIPTION_MAX_LENGTH': 160
                                  }[key]):
            for _ in range(3):
                publisher.publish(_accepted_content('Tide'))
            with self.assertRaises(SlugExhausted):
                publisher.publish(_accepted_content('Tide'))

    def test_unpublish(self):
        """The slug is kept but no longer resolves."""
        with in_memory_db():
            content_id = _accepted_content('Tide')
            publisher.publish(content_id)
            publisher.feature(content_id)
            withdrawn = publisher.unpublish(content_id)
            self.assertFalse(withdrawn.is_published)
            self.assertIsNone(withdrawn.published_at)
            self.assertFalse(withdrawn.is_featured)

            stored = store.get_content(content_id)
            self.assertEqual(stored.seo.slug, 'tide')
            self.assertFalse(stored.is_published)
            with self.assertRaises(NoSuchContent):
                publisher.get_published('tide')
            with self.assertRaises(NotPublished):
                publisher.unpublish(content_id)


class TestFeature(TestCase):
    """Featuring published content."""

    def test_feature_and_unfeature(self):
        with in_memory_db():
            content_id = _accepted_content()
            publisher.publish(content_id)
            featured = publisher.feature(content_id)
            self.assertTrue(featured.is_featured)
            self.assertIsNotNone(featured.featured_at)
            with self.assertRaises(AlreadyFeatured):
                publisher.feature(content_id)

            unfeatured = publisher.unfeature(content_id)
            self.assertFalse(unfeatured.is_featured)
            self.assertFalse(store.get_content(content_id).is_featured)
            with self.assertRaises(NotFeatured):
                publisher.unfeature(content_id)

    def test_feature_unpublished(self):
        with in_memory_db():
            content_id = _accepted_content()
            with self.assertRaises(NotPublished):
                publisher.feature(content_id)


class TestViews(TestCase):
    def test_record_view(self):
        with in_memory_db():
            content_id = _accepted_content()
            publisher.publish(content_id)
            publisher.record_view(content_id)
            publisher.record_view(content_id)
            self.assertEqual(store.get_content(content_id).view_count, 2)

    def test_record_view_unpublished(self):
        with in_memory_db():
            content_id = _accepted_content()
            with self.assertRaises(NotPublished):
                publisher.record_view(content_id)
            with self.assertRaises(NoSuchContent):
                publisher.record_view(new_identifier())
