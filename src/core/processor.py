"""Core article dispatch pipeline.

This module is integration-agnostic. It only relies on ports for settings,
feed lookups, the dedup ledger and delivery, so the same pipeline can sit
behind any host event source.

The pipeline enforces a strict order:
1) Resolve settings
2) Link checks (scheme, length)
3) Ledger fast-path check
4) Age check
5) Feed title lookup
6) Channel resolution
7) Format + deliver
8) Ledger write

Every failure ends processing of the current article only. Notification is
best-effort, so nothing raised here reaches the host pipeline.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from core.channels import resolve_channel
from core.config import resolve_config
from core.eligibility import check_age, check_link
from core.errors import ConfigurationError, DeliveryError, DuplicateNotificationError, LedgerError
from core.formatting import build_message, format_timestamp, sanitize_title
from core.models import ArticleEvent
from core.ports import ConfigProvider, DedupLedger, FeedLookup, NotifierPort

LOGGER = logging.getLogger(__name__)

TEST_MESSAGE_TEMPLATE = "**feedhook**: *{user}* tested connectivity at *{timestamp}*."


class ArticleDispatcher:
    """Orchestrates eligibility checks, channel resolution, delivery and dedup."""

    def __init__(
        self,
        config_provider: ConfigProvider,
        feeds: FeedLookup,
        ledger: DedupLedger,
        notifier: NotifierPort,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config_provider = config_provider
        self._feeds = feeds
        self._ledger = ledger
        self._notifier = notifier
        self._clock = clock

    def handle(self, article: ArticleEvent) -> ArticleEvent:
        """Process one article event and return it unmodified."""

        try:
            self._dispatch(article)
        except Exception:
            LOGGER.exception("Unexpected error while dispatching article %s", article.guid)
        return article

    def _dispatch(self, article: ArticleEvent) -> None:
        prefix = f"(article_guid={article.guid})"

        try:
            config = resolve_config(self._config_provider)
        except ConfigurationError as exc:
            LOGGER.info("%s Skipped: %s", prefix, exc)
            return

        reason = check_link(article.link)
        if reason:
            LOGGER.info("%s Skipped: %s", prefix, reason)
            return

        prefix = (
            f"(owner_id={article.owner_uid}, feed_id={article.feed_id}, "
            f"article_link={article.link})"
        )

        # Fast path only; the ledger's unique key is what prevents duplicates.
        try:
            already_notified = self._ledger.exists(article.owner_uid, article.feed_id, article.link)
        except LedgerError as exc:
            LOGGER.error("%s Skipped: Failed checking notification ledger: %s", prefix, exc)
            return
        if already_notified:
            LOGGER.info("%s Skipped: Article has already been notified.", prefix)
            return

        # Age is measured against wall-clock time at evaluation, not enqueue time.
        reason = check_age(article, self._clock(), config.max_announce_age_seconds)
        if reason:
            LOGGER.info("%s Skipped: %s", prefix, reason)
            return

        feed_title = self._feeds.get_feed_title(article.feed_id)
        if not feed_title:
            LOGGER.info(
                "%s Skipped: Unable to find title of feed with id '%s'.", prefix, article.feed_id
            )
            return

        resolution = resolve_channel(config, article.feed_id, self._feeds)
        if not resolution.ok:
            LOGGER.info("%s Skipped: %s", prefix, resolution.inconsistency)
            return

        message = build_message(
            feed_title=feed_title,
            site_url=article.feed_site_url,
            timestamp=format_timestamp(config.timezone, article.timestamp),
            title=sanitize_title(article.title),
            link=article.link,
        )

        try:
            self._notifier.deliver(config.webhook_url, resolution.channel, message)
        except DeliveryError as exc:
            LOGGER.warning("%s Failed sending notification: %s", prefix, exc)
            return

        try:
            self._ledger.insert(article.owner_uid, article.feed_id, article.link)
        except DuplicateNotificationError:
            LOGGER.info("%s Article was recorded by a concurrent dispatch.", prefix)
            return
        except LedgerError as exc:
            LOGGER.error("%s Failed marking article as notified: %s", prefix, exc)
            return

        LOGGER.info("%s Notification sent (channel=%s)", prefix, resolution.channel or "default")

    def send_test_notification(self, user: Optional[str]) -> None:
        """Send a connectivity test message to the default channel.

        Raises ConfigurationError when no webhook is configured and
        DeliveryError when the webhook rejects the message.
        """

        config = resolve_config(self._config_provider)
        timestamp = format_timestamp(config.timezone, self._clock())
        message = TEST_MESSAGE_TEMPLATE.format(user=user or "unknown", timestamp=timestamp)
        self._notifier.deliver(config.webhook_url, None, message)
