"""Data structures for the tag vocabulary."""

from typing import Optional
from datetime import datetime

from dataclasses import dataclass, field

from .util import coerce_datetime


@dataclass
class Tag:
    """A canonical vocabulary entry. Many raw strings map to one slug."""

    name: str
    slug: str
    tag_id: Optional[str] = field(default=None)
    created: Optional[datetime] = field(default=None)
    updated: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        self.created = coerce_datetime(self.created)
        self.updated = coerce_datetime(self.updated)
