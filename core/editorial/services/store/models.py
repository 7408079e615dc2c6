"""SQLAlchemy ORM classes for the editorial database."""

from typing import Optional
from datetime import datetime

from pytz import UTC
from sqlalchemy import Column, DateTime, ForeignKey, Text, Integer, \
    String, Boolean, JSON
from sqlalchemy.orm import declarative_base, relationship

from ...domain import Submission, HistoryEntry, Content, SEO, Review, Tag

Base = declarative_base()

TagList = JSON(none_as_null=True)
"""Lists of tag strings or identifiers; ``None`` is stored as SQL NULL."""


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class DBSubmission(Base):    # type: ignore
    """Represents a submission and its current status."""

    __tablename__ = 'submissions'

    submission_id = Column(String(36), primary_key=True)
    owner_id = Column(String(64), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, default='')
    submission_type = Column(String(32), nullable=False)
    status = Column(String(32), index=True, nullable=False)
    tags = Column(TagList)
    tag_ids = Column(TagList)

    created = Column(DateTime(timezone=True))
    updated = Column(DateTime(timezone=True), index=True)
    reviewed_at = Column(DateTime(timezone=True))
    reviewed_by = Column(String(64))
    assigned_to = Column(String(64))
    assigned_at = Column(DateTime(timezone=True))
    revision_notes = Column(Text, default='')
    purge_eligible = Column(Boolean, default=False, nullable=False)
    purge_flagged_at = Column(DateTime(timezone=True))

    history = relationship('DBHistoryEntry',
                           order_by='DBHistoryEntry.entry_id',
                           back_populates='submission')
    contents = relationship('DBContent', order_by='DBContent.position',
                            back_populates='submission')

    def to_submission(self) -> Submission:
        """Generate a domain :class:`.Submission` from this row."""
        return Submission(
            submission_id=self.submission_id,
            owner_id=self.owner_id,
            title=self.title,
            description=self.description or '',
            submission_type=self.submission_type,
            status=self.status,
            content_ids=[c.content_id for c in self.contents],
            tags=list(self.tags or []),
            tag_ids=None if self.tag_ids is None else list(self.tag_ids),
            created=_utc(self.created),
            updated=_utc(self.updated),
            reviewed_at=_utc(self.reviewed_at),
            reviewed_by=self.reviewed_by,
            assigned_to=self.assigned_to,
            assigned_at=_utc(self.assigned_at),
            revision_notes=self.revision_notes or '',
            purge_eligible=bool(self.purge_eligible),
            purge_flagged_at=_utc(self.purge_flagged_at),
            history=[entry.to_entry() for entry in self.history]
        )


class DBHistoryEntry(Base):    # type: ignore
    """One row per status change. Rows are only ever inserted."""

    __tablename__ = 'submission_history'

    entry_id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(ForeignKey('submissions.submission_id'),
                           index=True, nullable=False)
    status = Column(String(32), nullable=False)
    action = Column(String(32))
    user = Column(String(64))
    role = Column(String(32))
    notes = Column(Text, default='')
    timestamp = Column(DateTime(timezone=True))

    submission = relationship('DBSubmission', back_populates='history')

    @classmethod
    def from_entry(cls, submission_id: str,
                   entry: HistoryEntry) -> 'DBHistoryEntry':
        return cls(submission_id=submission_id, status=entry.status.value,
                   action=entry.action, user=entry.user, role=entry.role,
                   notes=entry.notes, timestamp=entry.timestamp)

    def to_entry(self) -> HistoryEntry:
        return HistoryEntry(status=self.status, action=self.action or '',
                            user=self.user, role=self.role,
                            notes=self.notes or '',
                            timestamp=_utc(self.timestamp))


class DBContent(Base):    # type: ignore
    """A publishable content item, child of a submission."""

    __tablename__ = 'contents'

    content_id = Column(String(36), primary_key=True)
    submission_id = Column(ForeignKey('submissions.submission_id'),
                           index=True, nullable=False)
    position = Column(Integer, default=0)
    owner_id = Column(String(64), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    footnotes = Column(Text, default='')
    tags = Column(TagList)
    tag_ids = Column(TagList)

    is_published = Column(Boolean, default=False, nullable=False, index=True)
    published_at = Column(DateTime(timezone=True))
    slug = Column(String(128), unique=True)
    meta_title = Column(String(255), default='')
    meta_description = Column(String(255), default='')
    is_featured = Column(Boolean, default=False, nullable=False)
    featured_at = Column(DateTime(timezone=True))
    view_count = Column(Integer, default=0, nullable=False)

    created = Column(DateTime(timezone=True))
    updated = Column(DateTime(timezone=True))

    submission = relationship('DBSubmission', back_populates='contents')

    @classmethod
    def from_content(cls, content: Content,
                     position: int = 0) -> 'DBContent':
        return cls(
            content_id=content.content_id,
            submission_id=content.submission_id,
            position=position,
            owner_id=content.owner_id,
            title=content.title,
            body=content.body,
            footnotes=content.footnotes,
            tags=list(content.tags),
            tag_ids=content.tag_ids,
            is_published=content.is_published,
            published_at=content.published_at,
            slug=content.seo.slug,
            meta_title=content.seo.meta_title,
            meta_description=content.seo.meta_description,
            is_featured=content.is_featured,
            featured_at=content.featured_at,
            view_count=content.view_count,
            created=content.created,
            updated=content.updated
        )

    def to_content(self) -> Content:
        """Generate a domain :class:`.Content` from this row."""
        return Content(
            content_id=self.content_id,
            submission_id=self.submission_id,
            owner_id=self.owner_id,
            title=self.title,
            body=self.body,
            footnotes=self.footnotes or '',
            tags=list(self.tags or []),
            tag_ids=None if self.tag_ids is None else list(self.tag_ids),
            is_published=bool(self.is_published),
            published_at=_utc(self.published_at),
            seo=SEO(slug=self.slug, meta_title=self.meta_title or '',
                    meta_description=self.meta_description or ''),
            is_featured=bool(self.is_featured),
            featured_at=_utc(self.featured_at),
            view_count=self.view_count or 0,
            created=_utc(self.created),
            updated=_utc(self.updated)
        )


class DBReview(Base):    # type: ignore
    """A recorded moderation decision."""

    __tablename__ = 'reviews'

    review_id = Column(String(36), primary_key=True)
    submission_id = Column(ForeignKey('submissions.submission_id'),
                           index=True, nullable=False)
    reviewer_id = Column(String(64), nullable=False)
    decision = Column(String(32), nullable=False)
    notes = Column(Text, default='')
    rating = Column(Integer)
    created = Column(DateTime(timezone=True), index=True)

    def to_review(self) -> Review:
        return Review(review_id=self.review_id,
                      submission_id=self.submission_id,
                      reviewer_id=self.reviewer_id,
                      decision=self.decision,
                      notes=self.notes or '',
                      rating=self.rating,
                      created=_utc(self.created))


class DBTag(Base):    # type: ignore
    """Canonical tag vocabulary. ``slug`` is the natural key."""

    __tablename__ = 'tags'

    tag_id = Column(String(36), primary_key=True)
    name = Column(String(128), nullable=False)
    slug = Column(String(128), unique=True, nullable=False)
    created = Column(DateTime(timezone=True))
    updated = Column(DateTime(timezone=True))

    def to_tag(self) -> Tag:
        return Tag(tag_id=self.tag_id, name=self.name, slug=self.slug,
                   created=_utc(self.created), updated=_utc(self.updated))
