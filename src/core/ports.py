"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for configuration, host lookups, the dedup
ledger and delivery so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from core.models import FeedCategories


class ConfigProvider(Protocol):
    """Key/value settings store; returns None for unset keys."""

    def get(self, key: str) -> Any:
        ...


class FeedLookup(Protocol):
    """Read-only queries against the host's feed and category data."""

    def get_feed_title(self, feed_id: int) -> Optional[str]:
        ...

    def get_feed_categories(self, feed_id: int) -> FeedCategories:
        ...


class DedupLedger(Protocol):
    """Record of already-notified articles.

    ``insert`` must raise DuplicateNotificationError when the store rejects a
    second record for the same key, and LedgerError for other failures.
    """

    def exists(self, owner_id: int, feed_id: int, article_link: str) -> bool:
        ...

    def insert(self, owner_id: int, feed_id: int, article_link: str) -> None:
        ...


class NotifierPort(Protocol):
    """Delivery operations required by the core pipeline."""

    def deliver(self, url: str, channel: Optional[str], message: str) -> None:
        ...
