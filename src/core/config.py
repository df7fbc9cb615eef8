"""Core configuration dataclasses and the notification settings schema.

Settings are persisted by an external key/value store; this module defines
the keys, their defaults and validation rules, and resolves a snapshot the
dispatcher can use for a single article.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from core.errors import ConfigurationError, SettingsValidationError
from core.ports import ConfigProvider

MODE_DISABLED = "Disabled"
MODE_ENABLED = "Enabled"
MODE_FORCED = "Forced"
PARENT_CATEGORY_MODES = (MODE_DISABLED, MODE_ENABLED, MODE_FORCED)

WEBHOOK_URL_PATTERN = r"^https://.*/hooks/[0-9a-z]+$"

# Key order matters: it is the order settings are shown and validated in.
CONFIG_SCHEMA: dict[str, dict[str, Any]] = {
    "webhook_url": {
        "title": "Mattermost webhook URL",
        "type": "text",
        "regexp": WEBHOOK_URL_PATTERN,
        "required": True,
    },
    "timezone": {
        "title": "Time zone",
        "type": "select",
        "default": "UTC",
    },
    "parent_category_mode": {
        "title": "Parent category mode",
        "type": "select",
        "default": MODE_DISABLED,
        "values": list(PARENT_CATEGORY_MODES),
    },
    "parent_category_name": {
        "title": "Parent category name",
        "type": "select",
    },
    "max_announce_age": {
        "title": "Maximum article age in days",
        "type": "spinner",
        "default": 7,
    },
}


@dataclass(frozen=True)
class NotificationConfig:
    """Resolved notification settings for one dispatch."""

    webhook_url: str
    timezone: str
    parent_category_mode: str
    parent_category_name: Optional[str]
    max_announce_age: int

    @property
    def max_announce_age_seconds(self) -> int:
        return self.max_announce_age * 24 * 3600


def load_raw_settings(provider: ConfigProvider) -> dict[str, Any]:
    """Read every schema key from the provider, applying defaults.

    Empty values fall back to the schema default. A required key with no value
    raises ConfigurationError.
    """

    values: dict[str, Any] = {}
    for key, schema in CONFIG_SCHEMA.items():
        value = provider.get(key)
        if value in (None, ""):
            if schema.get("default") not in (None, ""):
                value = schema["default"]
            elif schema.get("required"):
                raise ConfigurationError(f"{schema['title']} not configured.")
            else:
                value = None
        values[key] = value
    return values


def resolve_config(provider: ConfigProvider) -> NotificationConfig:
    """Return a NotificationConfig snapshot or raise ConfigurationError."""

    values = load_raw_settings(provider)

    timezone = str(values["timezone"])
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown time zone: {timezone}") from exc

    mode = str(values["parent_category_mode"])
    if mode not in PARENT_CATEGORY_MODES:
        raise ConfigurationError(f"Unsupported parent category mode: {mode}")

    try:
        max_age = int(values["max_announce_age"])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Invalid maximum article age: {values['max_announce_age']!r}"
        ) from exc

    return NotificationConfig(
        webhook_url=str(values["webhook_url"]),
        timezone=timezone,
        parent_category_mode=mode,
        parent_category_name=values["parent_category_name"] or None,
        max_announce_age=max_age,
    )


def _select_values(key: str, root_categories: Iterable[str]) -> list[str]:
    if key == "timezone":
        return sorted(available_timezones())
    if key == "parent_category_name":
        # An empty host still allows clearing the value.
        return list(root_categories) or [""]
    return list(CONFIG_SCHEMA[key].get("values", []))


def validate_settings(
    submitted: Mapping[str, str],
    root_categories: Iterable[str] = (),
    current: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Validate a settings submission and return the values to persist.

    Keys absent from ``submitted`` are left alone. Unknown keys are rejected so
    typos do not silently disappear. ``current`` holds the stored values and is
    only consulted for the cross-field parent category rule.
    """

    unknown = sorted(set(submitted) - set(CONFIG_SCHEMA))
    if unknown:
        raise SettingsValidationError(f"Unknown setting(s): {', '.join(unknown)}")

    root_categories = list(root_categories)
    settings: dict[str, Any] = {}
    for key, schema in CONFIG_SCHEMA.items():
        if key not in submitted:
            continue
        value = submitted[key]
        title = schema["title"]

        if schema["type"] == "select":
            if value not in _select_values(key, root_categories):
                raise SettingsValidationError(f"Invalid selection for '{title}'.")
        elif schema["type"] == "spinner":
            if not re.match(r"^[1-9][0-9]*$", value):
                raise SettingsValidationError(f"Invalid non-positive number for '{title}'.")
            value = int(value)
        elif schema["type"] == "text":
            pattern = schema.get("regexp")
            if pattern and not re.match(pattern, value):
                raise SettingsValidationError(
                    f"Regexp '{pattern}' not matching value for '{title}'."
                )

        settings[key] = value

    merged = {**(current or {}), **settings}
    mode = merged.get("parent_category_mode") or MODE_DISABLED
    if mode != MODE_DISABLED and not merged.get("parent_category_name"):
        raise SettingsValidationError(
            f"'{CONFIG_SCHEMA['parent_category_name']['title']}' required when "
            f"'{CONFIG_SCHEMA['parent_category_mode']['title']}' is set to {mode}."
        )

    return settings
