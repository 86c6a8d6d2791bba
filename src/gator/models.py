"""Data models for gator."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class Feed:
    """Represents a registered RSS source."""

    url: str
    name: str
    last_fetched_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    id: int | None = None


@dataclass
class FetchedItem:
    """A single item as delivered by a feed, before it becomes a post."""

    title: str
    link: str
    description: str = ""
    pub_date: str = ""


@dataclass
class FetchedFeed:
    """Channel metadata and items of one fetched feed."""

    title: str
    link: str
    description: str
    items: list[FetchedItem] = field(default_factory=list)


@dataclass
class Post:
    """Represents a stored feed item."""

    feed_id: int
    title: str
    url: str
    description: str | None = None
    published_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    id: int | None = None
