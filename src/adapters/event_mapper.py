"""Host-event-to-core article mapping adapter.

This keeps the host's article payload layout out of the core pipeline. The
payload mirrors a feed reader's article filter hook: top-level article fields
plus a nested ``feed`` object.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.models import ArticleEvent


def _as_int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Article field '{field}' must be an integer, got {value!r}") from exc


def article_from_payload(payload: Mapping[str, Any]) -> ArticleEvent:
    """Build a core ArticleEvent from a host article payload.

    Raises ValueError when the payload lacks the owner or feed identity, since
    such an event cannot be deduplicated.
    """

    if not isinstance(payload, Mapping):
        raise ValueError("Article event must be a JSON object")

    feed = payload.get("feed") or {}
    if not isinstance(feed, Mapping):
        raise ValueError("Article field 'feed' must be an object")

    return ArticleEvent(
        guid=str(payload.get("guid") or ""),
        link=str(payload.get("link") or ""),
        title=str(payload.get("title") or ""),
        timestamp=_as_int(payload.get("timestamp", 0), "timestamp"),
        owner_uid=_as_int(payload.get("owner_uid"), "owner_uid"),
        feed_id=_as_int(feed.get("id"), "feed.id"),
        feed_site_url=str(feed.get("site_url") or ""),
    )

