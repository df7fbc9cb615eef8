"""Static process configuration for feedhook.

Paths and logging live in an optional config.json; secrets and path overrides
come from the environment (a local .env file is honoured). Notification
settings themselves live in the key/value settings store, not here.
"""

import json
import os

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("FEEDHOOK_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json if present; a missing file means defaults."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# SQLite database holding the notification ledger (and, standalone, feeds).
DB_PATH = _resolve_path(
    os.getenv("FEEDHOOK_DB_PATH") or _CONFIG.get("database", {}).get("path", "feedhook.db")
)

# Key/value store for webhook URL, time zone, parent category mode, etc.
SETTINGS_PATH = _resolve_path(
    os.getenv("FEEDHOOK_SETTINGS_PATH")
    or _CONFIG.get("settings_store", {}).get("path", "notify_settings.json")
)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
