from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.errors import DuplicateNotificationError, LedgerError


@pytest.fixture()
def storage(tmp_path: Path) -> SQLiteStorage:
    db_path = tmp_path / "feedhook.db"
    storage = SQLiteStorage(str(db_path))
    storage.init_db()
    with sqlite3.connect(db_path) as conn:
        conn.executemany("INSERT INTO users (id, login) VALUES (?, ?)", [(7, "alice"), (8, "bob")])
        conn.executemany(
            "INSERT INTO feed_categories (id, owner_uid, title, parent_cat) VALUES (?, ?, ?, ?)",
            [
                (1, 7, "Announce", None),
                (2, 7, "dev", 1),
                (3, 7, "Misc", None),
                (4, 7, "random", 3),
            ],
        )
        conn.executemany(
            "INSERT INTO feeds (id, owner_uid, title, site_url, cat_id) VALUES (?, ?, ?, ?, ?)",
            [
                (3, 7, "Dev Blog", "https://x", 2),
                (4, 7, "Random", "https://r", 4),
                (5, 7, "Loose", "https://l", None),
                (6, 8, "Bob's", "https://b", None),
            ],
        )
    return storage


def _delete(storage_path: str, sql: str, params: tuple) -> None:
    conn = sqlite3.connect(storage_path)
    try:
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute(sql, params)
        conn.commit()
    finally:
        conn.close()


def test_insert_then_exists(storage: SQLiteStorage) -> None:
    storage.insert(7, 3, "https://x/y")

    assert storage.exists(7, 3, "https://x/y")
    assert not storage.exists(7, 3, "https://x/z")
    assert not storage.exists(7, 4, "https://x/y")


def test_second_insert_is_reported_as_duplicate(storage: SQLiteStorage) -> None:
    storage.insert(7, 3, "https://x/y")

    with pytest.raises(DuplicateNotificationError):
        storage.insert(7, 3, "https://x/y")

    assert len(storage.list_records()) == 1


def test_duplicate_is_rejected_by_a_second_connection(tmp_path: Path, storage: SQLiteStorage) -> None:
    other = SQLiteStorage(str(tmp_path / "feedhook.db"))
    storage.insert(7, 3, "https://x/y")

    with pytest.raises(DuplicateNotificationError):
        other.insert(7, 3, "https://x/y")


def test_unknown_feed_is_a_ledger_error_not_a_duplicate(storage: SQLiteStorage) -> None:
    with pytest.raises(LedgerError) as excinfo:
        storage.insert(7, 999, "https://x/y")

    assert not isinstance(excinfo.value, DuplicateNotificationError)


def test_overlong_link_is_rejected_by_the_store(storage: SQLiteStorage) -> None:
    with pytest.raises(LedgerError):
        storage.insert(7, 3, "https://x/" + "a" * 800)


def test_records_cascade_with_feed_and_user(tmp_path: Path, storage: SQLiteStorage) -> None:
    db_path = str(tmp_path / "feedhook.db")
    storage.insert(7, 3, "https://x/1")
    storage.insert(7, 4, "https://x/2")
    storage.insert(8, 6, "https://x/3")

    _delete(db_path, "DELETE FROM feeds WHERE id = ?", (3,))
    assert [r.article_link for r in storage.list_records()] == ["https://x/2", "https://x/3"]

    _delete(db_path, "DELETE FROM users WHERE id = ?", (8,))
    records = storage.list_records()
    assert [(r.owner_id, r.feed_id) for r in records] == [(7, 4)]


def test_list_records_filters_by_owner(storage: SQLiteStorage) -> None:
    storage.insert(7, 3, "https://x/1")
    storage.insert(8, 6, "https://x/1")

    records = storage.list_records(owner_id=8)

    assert len(records) == 1
    assert records[0].feed_id == 6
    assert records[0].timestamp.tzinfo is not None


def test_feed_lookups(storage: SQLiteStorage) -> None:
    assert storage.get_feed_title(3) == "Dev Blog"
    assert storage.get_feed_title(404) is None

    categories = storage.get_feed_categories(3)
    assert (categories.category, categories.parent_category) == ("dev", "Announce")

    root = storage.get_feed_categories(5)
    assert (root.category, root.parent_category) == (None, None)

    missing = storage.get_feed_categories(404)
    assert (missing.category, missing.parent_category) == (None, None)


def test_root_categories_and_users(storage: SQLiteStorage) -> None:
    assert storage.list_root_categories() == ["Announce", "Misc"]
    assert storage.get_user_login(7) == "alice"
    assert storage.get_user_login(42) is None


def test_init_db_is_idempotent(storage: SQLiteStorage) -> None:
    storage.insert(7, 3, "https://x/y")
    storage.init_db()
    assert storage.exists(7, 3, "https://x/y")


def test_unreadable_ledger_is_a_ledger_error(tmp_path: Path) -> None:
    storage = SQLiteStorage(str(tmp_path / "empty.db"))

    with pytest.raises(LedgerError, match="Failed reading notification ledger"):
        storage.exists(7, 10, "https://example.com/a")
