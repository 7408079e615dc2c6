"""Data structures for publishable content."""

from typing import Optional, List
from datetime import datetime

from dataclasses import dataclass, field

from .util import coerce_datetime


@dataclass
class SEO:
    """Search-engine metadata assigned at publication."""

    slug: Optional[str] = field(default=None)
    """Globally unique, URL-safe identifier. Kept after unpublishing."""

    meta_title: str = field(default_factory=str)
    meta_description: str = field(default_factory=str)


@dataclass
class Content:
    """
    One publishable piece of writing, child of a submission.

    Publication and featuring are independent flags; every combination is
    legal, but featuring requires the content to be published.
    """

    owner_id: str
    submission_id: str
    title: str
    body: str
    content_id: Optional[str] = field(default=None)
    footnotes: str = field(default_factory=str)
    tags: List[str] = field(default_factory=list)
    """Raw tag strings as submitted; kept for audit."""

    tag_ids: Optional[List[str]] = field(default=None)
    """Canonical tag identifiers, once derived from :attr:`tags`."""

    is_published: bool = field(default=False)
    published_at: Optional[datetime] = field(default=None)
    seo: SEO = field(default_factory=SEO)
    is_featured: bool = field(default=False)
    featured_at: Optional[datetime] = field(default=None)
    view_count: int = field(default=0)
    created: Optional[datetime] = field(default=None)
    updated: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if isinstance(self.seo, dict):
            self.seo = SEO(**self.seo)
        self.published_at = coerce_datetime(self.published_at)
        self.featured_at = coerce_datetime(self.featured_at)
        self.created = coerce_datetime(self.created)
        self.updated = coerce_datetime(self.updated)
