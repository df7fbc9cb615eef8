"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any host-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ArticleEvent:
    """Minimal article context handed to the dispatcher by the host pipeline."""

    guid: str
    link: str
    title: str
    timestamp: int
    owner_uid: int
    feed_id: int
    feed_site_url: str


@dataclass(frozen=True)
class FeedCategories:
    """Category and parent category names of a feed, either may be missing."""

    category: Optional[str]
    parent_category: Optional[str]


@dataclass(frozen=True)
class ChannelResolution:
    """Outcome of channel resolution.

    ``channel`` is None when the destination's default channel should be used.
    ``inconsistency`` is set when the feed must not be announced at all.
    """

    channel: Optional[str] = None
    inconsistency: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.inconsistency is None


@dataclass(frozen=True)
class DedupRecord:
    """Persisted marker for an article that has already been notified."""

    owner_id: int
    feed_id: int
    article_link: str
    timestamp: datetime
