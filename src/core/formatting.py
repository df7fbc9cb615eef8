"""Notification message formatting.

Keeping formatting here prevents drift between the dispatcher and the test
notification, and keeps the Markdown layout in one place.
"""

from __future__ import annotations

import html
import re
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

MAX_TITLE_CHARS = 256
TITLE_ELLIPSIS = "..."
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"

_TAG_RE = re.compile(r"<[^>]*>")
# Hosts fall back to the publish date when an article has no title.
_DATE_ONLY_TITLE_RE = re.compile(r"^2[0-9]{3}-[01][0-9]-[0-3][0-9]$")


def sanitize_title(raw_title: Optional[str]) -> str:
    """Return a plain-text title, or an empty string when it is not worth showing."""

    if not raw_title:
        return ""

    title = html.unescape(_TAG_RE.sub("", raw_title)).strip()
    if len(title) > MAX_TITLE_CHARS:
        title = title[:MAX_TITLE_CHARS] + TITLE_ELLIPSIS

    # The timestamp is already part of the header line.
    if _DATE_ONLY_TITLE_RE.match(title):
        return ""
    return title


def format_timestamp(timezone: str, ts: Optional[float] = None) -> str:
    """Render an epoch timestamp (or now) in the configured time zone."""

    zone = ZoneInfo(timezone)
    if ts is None:
        moment = datetime.now(zone)
    else:
        moment = datetime.fromtimestamp(ts, zone)
    return moment.strftime(TIMESTAMP_FORMAT)


def build_message(
    feed_title: str,
    site_url: str,
    timestamp: str,
    title: str,
    link: str,
) -> str:
    """Assemble the Markdown notification body."""

    lines = [f"**[{feed_title}]({site_url})** *{timestamp}*"]
    if title:
        lines.append(f"> {title}")
    lines.append(link)
    return "\n\n".join(lines).strip()


def channel_warning(channel: str) -> str:
    """Line appended when a message had to fall back to the default channel."""

    return (
        f"**WARNING:** This message should have been sent to channel *{channel}*, "
        "which could not be found."
    )
