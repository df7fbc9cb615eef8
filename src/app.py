"""Application entry point for the feedhook dispatcher."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, TextIO

from art import text2art

import settings
from adapters.event_mapper import article_from_payload
from adapters.settings_store import JsonSettingsStore
from adapters.sqlite_storage import SQLiteStorage
from adapters.webhook_notifier import WebhookNotifier
from core.config import CONFIG_SCHEMA, load_raw_settings, validate_settings
from core.errors import ConfigurationError, DeliveryError, SettingsValidationError
from core.processor import ArticleDispatcher

NAME = "FEEDHOOK"
FONT = "tarty-1"


def _print_banner() -> None:
    # stdout carries article events in `run`, so the banner goes to stderr.
    print(text2art(NAME, font=FONT, space=1), file=sys.stderr)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict, store: JsonSettingsStore) -> list[str]:
    values = []
    # The webhook URL grants posting rights, so it never reaches the logs.
    webhook_url = store.get("webhook_url")
    if webhook_url:
        values.append(str(webhook_url))
    redact_cfg = config.get("redact", {}) if config else {}
    if redact_cfg.get("enabled", False):
        for name in redact_cfg.get("patterns", []):
            value = os.getenv(name)
            if value:
                values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(store: JsonSettingsStore) -> None:
    config = settings.LOGGING or {}
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config, store)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        # stderr keeps stdout free for the JSON-lines event stream.
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/feedhook.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_dispatcher(storage: SQLiteStorage, store: JsonSettingsStore) -> ArticleDispatcher:
    return ArticleDispatcher(
        config_provider=store,
        feeds=storage,
        ledger=storage,
        notifier=WebhookNotifier(),
    )


def _dispatch_stream(dispatcher: ArticleDispatcher, source: TextIO, sink: TextIO) -> int:
    """Dispatch JSON-lines article events and echo each one back unchanged."""

    logger = logging.getLogger(__name__)
    handled = 0
    for line in source:
        if not line.strip():
            continue
        try:
            article = article_from_payload(json.loads(line))
        except ValueError:
            logger.warning("Ignoring malformed article event: %s", line.strip()[:200])
        else:
            dispatcher.handle(article)
            handled += 1
        # The host owns the article; hand it back exactly as received.
        sink.write(line if line.endswith("\n") else f"{line}\n")
        sink.flush()
    return handled


def _run(events_path: Optional[str]) -> None:
    store = JsonSettingsStore(settings.SETTINGS_PATH)
    _print_banner()
    _configure_logging(store)
    logger = logging.getLogger(__name__)

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    dispatcher = _build_dispatcher(storage, store)

    logger.info("Dispatching article events from %s", events_path or "stdin")
    if events_path:
        with open(events_path, "r", encoding="utf-8") as handle:
            handled = _dispatch_stream(dispatcher, handle, sys.stdout)
    else:
        handled = _dispatch_stream(dispatcher, sys.stdin, sys.stdout)
    logger.info("Dispatch complete: events=%s", handled)


def _init_db() -> None:
    SQLiteStorage(settings.DB_PATH).init_db()
    print(f"Database ready: {settings.DB_PATH}")


def _settings_show() -> None:
    store = JsonSettingsStore(settings.SETTINGS_PATH)
    try:
        values = load_raw_settings(store)
    except ConfigurationError as exc:
        print(f"WARNING: {exc}")
        values = {key: store.get(key) for key in CONFIG_SCHEMA}
    for key, schema in CONFIG_SCHEMA.items():
        value = values.get(key)
        print(f"{schema['title']} ({key}): {'' if value is None else value}")


def _parse_assignments(assignments: list[str]) -> dict[str, str]:
    submitted: dict[str, str] = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise SettingsValidationError(f"Expected KEY=VALUE, got '{item}'.")
        submitted[key.strip()] = value.strip()
    return submitted


def _settings_save(assignments: list[str]) -> None:
    store = JsonSettingsStore(settings.SETTINGS_PATH)
    storage = SQLiteStorage(settings.DB_PATH)

    # The ledger must exist before the first notification can be recorded.
    try:
        storage.init_db()
    except Exception:
        logging.getLogger(__name__).exception("Failed creating database table")
        print("Failed creating database table. See error log.")
        raise SystemExit(1)

    try:
        submitted = _parse_assignments(assignments)
        values = validate_settings(
            submitted,
            root_categories=storage.list_root_categories(),
            current=store.all(),
        )
    except SettingsValidationError as exc:
        print(exc)
        raise SystemExit(1)

    store.update(values)
    print("Settings saved.")


def _settings_reset() -> None:
    JsonSettingsStore(settings.SETTINGS_PATH).clear()
    print("Cleared plugin settings.")


def _test_notification(owner_id: int) -> None:
    store = JsonSettingsStore(settings.SETTINGS_PATH)
    _configure_logging(store)
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    dispatcher = _build_dispatcher(storage, store)

    try:
        dispatcher.send_test_notification(storage.get_user_login(owner_id))
    except ConfigurationError as exc:
        print(f"ERROR: {exc}")
        raise SystemExit(1)
    except DeliveryError as exc:
        logging.getLogger(__name__).error("Failed sending test message: %s", exc)
        print(f"ERROR: Failed sending test message: {exc}")
        raise SystemExit(1)

    print("Successfully sent test message.")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="feedhook")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Dispatch article events (JSON lines)")
    run_parser.add_argument("--events", help="Read events from this file instead of stdin")

    subparsers.add_parser("init-db", help="Create the notification tables")

    settings_parser = subparsers.add_parser("settings", help="Show or change notification settings")
    settings_sub = settings_parser.add_subparsers(dest="settings_command")
    settings_sub.add_parser("show", help="Print the resolved settings")
    save_parser = settings_sub.add_parser("save", help="Validate and store KEY=VALUE pairs")
    save_parser.add_argument("assignments", nargs="+", metavar="KEY=VALUE")
    settings_sub.add_parser("reset", help="Reset all settings to their defaults")

    test_parser = subparsers.add_parser("test-notification", help="Send a connectivity test message")
    test_parser.add_argument("--owner-id", type=int, required=True)

    args = parser.parse_args(argv)
    if args.command == "init-db":
        _init_db()
        return
    if args.command == "settings":
        if args.settings_command == "save":
            _settings_save(args.assignments)
        elif args.settings_command == "reset":
            _settings_reset()
        else:
            _settings_show()
        return
    if args.command == "test-notification":
        _test_notification(args.owner_id)
        return
    _run(getattr(args, "events", None))


if __name__ == "__main__":
    main()
