"""Article guard checks used before any lookup or delivery happens."""

from __future__ import annotations

import re
from typing import Optional

from core.models import ArticleEvent

# Width of the persisted article link column.
MAX_LINK_LENGTH = 768

_LINK_SCHEME = re.compile(r"^https?://")


def check_link(link: str) -> Optional[str]:
    """Return a rejection reason for an unusable link, or None."""

    if not link:
        return "No link found for article."
    if not _LINK_SCHEME.match(link):
        return f"Invalid article link: {link}"
    if len(link) > MAX_LINK_LENGTH:
        return f"Article link > {MAX_LINK_LENGTH} characters, ignoring."
    return None


def article_age(article: ArticleEvent, now: float) -> int:
    """Seconds elapsed between the article's publish time and ``now``."""

    return int(now - article.timestamp)


def check_age(article: ArticleEvent, now: float, max_age_seconds: int) -> Optional[str]:
    """Reject articles strictly older than the configured maximum."""

    age = article_age(article, now)
    if age > max_age_seconds:
        return f"Article too old: {age}s > {max_age_seconds}s"
    return None
