from __future__ import annotations

import http.client
import logging
import sqlite3
from pathlib import Path

from adapters.settings_store import JsonSettingsStore
from adapters.sqlite_storage import SQLiteStorage
from adapters.webhook_notifier import WebhookNotifier
from core.models import ArticleEvent
from core.processor import ArticleDispatcher
from tests.fakes import CHANNEL_NOT_FOUND, WEBHOOK_URL, FakeOpener, FakeResponse, http_error

NOW = 1_714_521_600


def _setup(tmp_path: Path) -> tuple[SQLiteStorage, JsonSettingsStore]:
    storage = SQLiteStorage(str(tmp_path / "feedhook.db"))
    storage.init_db()
    with sqlite3.connect(tmp_path / "feedhook.db") as conn:
        conn.execute("INSERT INTO users (id, login) VALUES (9, 'carol')")
        conn.execute("INSERT INTO feed_categories (id, title, parent_cat) VALUES (1, 'Announce', NULL)")
        conn.execute("INSERT INTO feed_categories (id, title, parent_cat) VALUES (2, 'town-square', 1)")
        conn.execute(
            "INSERT INTO feeds (id, owner_uid, title, site_url, cat_id) "
            "VALUES (1, 9, 'Blog', 'https://example.com', 2)"
        )
    store = JsonSettingsStore(str(tmp_path / "settings.json"))
    store.update({"webhook_url": WEBHOOK_URL, "max_announce_age": 7})
    return storage, store


def _article() -> ArticleEvent:
    return ArticleEvent(
        guid="g1",
        link="https://example.com/a",
        title="2024-05-01",
        timestamp=NOW,
        owner_uid=9,
        feed_id=1,
        feed_site_url="https://example.com",
    )


def test_article_is_notified_exactly_once(tmp_path: Path) -> None:
    storage, store = _setup(tmp_path)
    opener = FakeOpener(FakeResponse(b"ok"))
    dispatcher = ArticleDispatcher(store, storage, storage, WebhookNotifier(opener=opener), clock=lambda: NOW)

    dispatcher.handle(_article())
    dispatcher.handle(_article())

    assert opener.payloads == [
        {"text": "**[Blog](https://example.com)** *2024-05-01 00:00:00 +0000*\n\nhttps://example.com/a"}
    ]
    assert storage.exists(9, 1, "https://example.com/a")
    assert len(storage.list_records()) == 1


def test_missing_channel_falls_back_and_is_recorded(tmp_path: Path) -> None:
    storage, store = _setup(tmp_path)
    store.update({"parent_category_mode": "Enabled", "parent_category_name": "Announce"})
    opener = FakeOpener(http_error(404, CHANNEL_NOT_FOUND), FakeResponse(b"ok"))
    dispatcher = ArticleDispatcher(store, storage, storage, WebhookNotifier(opener=opener), clock=lambda: NOW)

    dispatcher.handle(_article())

    assert opener.payloads[0]["channel"] == "town-square"
    assert "channel" not in opener.payloads[1]
    assert "*town-square*" in opener.payloads[1]["text"]
    assert storage.exists(9, 1, "https://example.com/a")


def test_failed_delivery_is_retried_on_next_event(tmp_path: Path) -> None:
    storage, store = _setup(tmp_path)
    opener = FakeOpener(http_error(500, b"oops", content_type="text/plain"), FakeResponse(b"ok"))
    dispatcher = ArticleDispatcher(store, storage, storage, WebhookNotifier(opener=opener), clock=lambda: NOW)

    dispatcher.handle(_article())
    assert not storage.exists(9, 1, "https://example.com/a")

    dispatcher.handle(_article())
    assert storage.exists(9, 1, "https://example.com/a")
    assert len(opener.payloads) == 2


def test_malformed_webhook_response_is_logged_with_article_context(tmp_path: Path, caplog) -> None:
    storage, store = _setup(tmp_path)
    opener = FakeOpener(http.client.BadStatusLine("x"))
    dispatcher = ArticleDispatcher(store, storage, storage, WebhookNotifier(opener=opener), clock=lambda: NOW)

    with caplog.at_level(logging.WARNING):
        dispatcher.handle(_article())

    assert "Failed sending notification" in caplog.text
    assert "owner_id=9" in caplog.text
    assert "Unexpected error" not in caplog.text
    assert not storage.exists(9, 1, "https://example.com/a")
