"""Channel resolution based on the feed's category hierarchy."""

from __future__ import annotations

from core.config import MODE_DISABLED, MODE_FORCED, NotificationConfig
from core.models import ChannelResolution
from core.ports import FeedLookup


def resolve_channel(config: NotificationConfig, feed_id: int, lookup: FeedLookup) -> ChannelResolution:
    """Return the channel a feed's notifications should go to.

    Rules:
    - Disabled mode, or no parent category configured: default channel.
    - The feed's category has a parent matching the configured name: the
      feed's own category name is the channel.
    - Otherwise Enabled mode falls back to the default channel, while Forced
      mode reports an inconsistency so nothing is announced.
    """

    if config.parent_category_mode == MODE_DISABLED:
        return ChannelResolution()
    if not config.parent_category_name:
        return ChannelResolution()

    categories = lookup.get_feed_categories(feed_id)
    forced = config.parent_category_mode == MODE_FORCED

    if not categories.parent_category:
        if forced:
            feed_title = lookup.get_feed_title(feed_id)
            return ChannelResolution(
                inconsistency=(
                    "Parent category mode is forced, and no parent category found "
                    f"for feed '{feed_title}' with id '{feed_id}'."
                )
            )
        return ChannelResolution()

    if categories.parent_category != config.parent_category_name:
        if forced:
            feed_title = lookup.get_feed_title(feed_id)
            return ChannelResolution(
                inconsistency=(
                    f"Parent category mode is forced, and parent category for feed "
                    f"'{feed_title}' with id '{feed_id}' is not matching."
                )
            )
        return ChannelResolution()

    return ChannelResolution(channel=categories.category)
