"""SQLite storage adapter.

Implements the core DedupLedger and FeedLookup contracts on a single SQLite
database shared with the host's users, feeds and categories.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Optional

from core.errors import DuplicateNotificationError, LedgerError
from core.models import DedupRecord, FeedCategories


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the DedupLedger and FeedLookup contracts."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        # Cascading deletes from users and feeds depend on this per-connection flag.
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - users, feed_categories, feeds: host data, created only when missing so
          a standalone database works
        - notifications: ledger of already-notified articles
        """

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY,
                    login TEXT NOT NULL UNIQUE
                )
                """
            )
            # parent_cat is NULL for root categories.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS feed_categories (
                    id INTEGER PRIMARY KEY,
                    owner_uid INTEGER REFERENCES users (id) ON DELETE CASCADE,
                    title TEXT NOT NULL,
                    parent_cat INTEGER REFERENCES feed_categories (id) ON DELETE SET NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS feeds (
                    id INTEGER PRIMARY KEY,
                    owner_uid INTEGER REFERENCES users (id) ON DELETE CASCADE,
                    title TEXT NOT NULL,
                    site_url TEXT,
                    cat_id INTEGER REFERENCES feed_categories (id) ON DELETE SET NULL
                )
                """
            )
            # notifications is append-only from the dispatcher's point of view.
            # Fields:
            # - id: auto-increment primary key
            # - timestamp: delivery time (UTC, ISO 8601)
            # - owner_id / feed_id: cascade with the owning user and feed
            # - article_link: bounded to the width the dispatcher enforces
            # The unique key is what guarantees at-most-once delivery.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TIMESTAMP NOT NULL,
                    owner_id INTEGER NOT NULL
                        REFERENCES users (id) ON DELETE CASCADE,
                    feed_id INTEGER NOT NULL
                        REFERENCES feeds (id) ON DELETE CASCADE,
                    article_link VARCHAR(768) NOT NULL
                        CHECK (length(article_link) <= 768),
                    UNIQUE (owner_id, feed_id, article_link)
                )
                """
            )

    def exists(self, owner_id: int, feed_id: int, article_link: str) -> bool:
        """Check if the article has already been notified for this owner and feed.

        Raises LedgerError when the ledger cannot be read.
        """

        try:
            with self._connect() as conn:
                row = conn.execute(
                    """
                    SELECT 1 FROM notifications
                    WHERE owner_id = ? AND feed_id = ? AND article_link = ?
                    """,
                    (owner_id, feed_id, article_link),
                ).fetchone()
        except sqlite3.Error as e:
            raise LedgerError(f"Failed reading notification ledger: {e}") from e
        return row is not None

    def insert(self, owner_id: int, feed_id: int, article_link: str) -> None:
        """Record a delivered notification.

        Raises DuplicateNotificationError when the unique key already exists,
        LedgerError for any other database failure.
        """

        now = datetime.now(timezone.utc)
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO notifications (timestamp, owner_id, feed_id, article_link)
                    VALUES (?, ?, ?, ?)
                    """,
                    (now.isoformat(), owner_id, feed_id, article_link),
                )
        except sqlite3.IntegrityError as e:
            if "UNIQUE constraint failed" in str(e):
                raise DuplicateNotificationError(
                    f"Already notified: owner_id={owner_id}, feed_id={feed_id}, "
                    f"article_link={article_link}"
                ) from e
            raise LedgerError(f"Integrity error while recording notification: {e}") from e
        except sqlite3.Error as e:
            raise LedgerError(f"Failed recording notification: {e}") from e

    def list_records(self, owner_id: Optional[int] = None) -> list[DedupRecord]:
        """Return ledger records, oldest first, optionally for one owner."""

        query = "SELECT timestamp, owner_id, feed_id, article_link FROM notifications"
        params: tuple = ()
        if owner_id is not None:
            query += " WHERE owner_id = ?"
            params = (owner_id,)
        query += " ORDER BY id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            DedupRecord(
                owner_id=int(row["owner_id"]),
                feed_id=int(row["feed_id"]),
                article_link=row["article_link"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
            )
            for row in rows
        ]

    def get_feed_title(self, feed_id: int) -> Optional[str]:
        """Return the feed's title, if the feed exists."""

        with self._connect() as conn:
            row = conn.execute("SELECT title FROM feeds WHERE id = ?", (feed_id,)).fetchone()
        return row["title"] if row else None

    def get_feed_categories(self, feed_id: int) -> FeedCategories:
        """Return the feed's category and that category's parent, if any."""

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT
                    c1.title AS category,
                    c2.title AS parent_category
                FROM feeds AS f
                LEFT JOIN feed_categories AS c1 ON f.cat_id = c1.id
                LEFT JOIN feed_categories AS c2 ON c1.parent_cat = c2.id
                WHERE f.id = ?
                """,
                (feed_id,),
            ).fetchone()
        if row is None:
            return FeedCategories(category=None, parent_category=None)
        return FeedCategories(category=row["category"], parent_category=row["parent_category"])

    def list_root_categories(self) -> list[str]:
        """Return titles of categories without a parent."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT title FROM feed_categories WHERE parent_cat IS NULL ORDER BY title"
            ).fetchall()
        return [row["title"] for row in rows]

    def get_user_login(self, user_id: int) -> Optional[str]:
        """Return the login name for a user id, if known."""

        with self._connect() as conn:
            row = conn.execute("SELECT login FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row or not row["login"]:
            return None
        return row["login"]
