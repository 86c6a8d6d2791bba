"""SQLite database operations for gator."""

import sqlite3
from datetime import datetime, timezone

from gator.models import Feed, Post, utcnow

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS feeds (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT UNIQUE NOT NULL,
    name TEXT NOT NULL,
    last_fetched_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    feed_id INTEGER NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    url TEXT UNIQUE NOT NULL,
    description TEXT,
    published_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_feeds_last_fetched_at ON feeds(last_fetched_at);
CREATE INDEX IF NOT EXISTS idx_posts_feed_id ON posts(feed_id);
CREATE INDEX IF NOT EXISTS idx_posts_published_at ON posts(published_at);
"""


class StoreError(Exception):
    """Raised when the store rejects a write."""


class DuplicatePostError(StoreError):
    """Raised when a post with the same URL is already stored."""


class DuplicateFeedError(StoreError):
    """Raised when a feed with the same URL is already registered."""


class NoFeedsError(StoreError):
    """Raised when there is no feed to select."""


class Database:
    """SQLite database manager for feeds and posts."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open database connection and initialize schema."""
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    # --- Feed operations ---

    def add_feed(self, feed: Feed) -> Feed:
        """Insert a new feed and return it with its assigned id.

        Raises:
            DuplicateFeedError: If a feed with this URL already exists.
        """
        try:
            cursor = self.conn.execute(
                """INSERT INTO feeds (url, name, last_fetched_at, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    feed.url,
                    feed.name,
                    _dt_to_str(feed.last_fetched_at),
                    _dt_to_str(feed.created_at),
                    _dt_to_str(feed.updated_at),
                ),
            )
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            raise DuplicateFeedError(f"Feed already registered: {feed.url}") from e
        self.conn.commit()
        feed.id = cursor.lastrowid
        return feed

    def get_feed_by_url(self, url: str) -> Feed | None:
        """Look up a feed by its URL."""
        row = self.conn.execute(
            "SELECT * FROM feeds WHERE url = ?", (url,)
        ).fetchone()
        return _row_to_feed(row) if row else None

    def get_feed_by_id(self, feed_id: int) -> Feed | None:
        """Look up a feed by its id."""
        row = self.conn.execute(
            "SELECT * FROM feeds WHERE id = ?", (feed_id,)
        ).fetchone()
        return _row_to_feed(row) if row else None

    def get_feeds(self) -> list[Feed]:
        """Return all feeds in registration order."""
        rows = self.conn.execute("SELECT * FROM feeds ORDER BY id").fetchall()
        return [_row_to_feed(r) for r in rows]

    def select_next_feed_to_fetch(self) -> Feed:
        """Return the feed polled longest ago, never-polled feeds first.

        Ties are broken by registration order.

        Raises:
            NoFeedsError: If no feeds are registered.
        """
        row = self.conn.execute(
            """SELECT * FROM feeds
               ORDER BY last_fetched_at IS NOT NULL, last_fetched_at, id
               LIMIT 1"""
        ).fetchone()
        if row is None:
            raise NoFeedsError("No feeds registered")
        return _row_to_feed(row)

    def mark_feed_fetched(self, feed_id: int, timestamp: datetime) -> None:
        """Set a feed's last_fetched_at and updated_at to the given time."""
        value = _dt_to_str(timestamp)
        self.conn.execute(
            "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
            (value, value, feed_id),
        )
        self.conn.commit()

    # --- Post operations ---

    def create_post(self, post: Post) -> Post:
        """Insert one post and return it with its assigned id.

        Raises:
            DuplicatePostError: If a post with the same URL is already stored.
            StoreError: If the row violates any other constraint or the
                database cannot be written.
        """
        try:
            cursor = self.conn.execute(
                """INSERT INTO posts (feed_id, title, url, description,
                   published_at, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    post.feed_id,
                    post.title,
                    post.url,
                    post.description,
                    _dt_to_str(post.published_at),
                    _dt_to_str(post.created_at),
                    _dt_to_str(post.updated_at),
                ),
            )
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            if "posts.url" in str(e):
                raise DuplicatePostError(f"Post already stored: {post.url}") from e
            raise StoreError(f"Could not store post {post.url!r}: {e}") from e
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreError(f"Could not store post {post.url!r}: {e}") from e
        self.conn.commit()
        post.id = cursor.lastrowid
        return post

    def get_posts_by_feed_id(self, feed_id: int, limit: int = 50) -> list[Post]:
        """Get posts for a specific feed, newest first."""
        rows = self.conn.execute(
            """SELECT * FROM posts WHERE feed_id = ?
               ORDER BY published_at DESC, id DESC LIMIT ?""",
            (feed_id, limit),
        ).fetchall()
        return [_row_to_post(r) for r in rows]

    def get_recent_posts(self, limit: int = 2) -> list[dict]:
        """Get the most recent posts across all feeds, with the feed name.

        Returns dicts (not Post objects) to include feed_name from join.
        """
        rows = self.conn.execute(
            """SELECT posts.*, feeds.name AS feed_name
               FROM posts
               JOIN feeds ON posts.feed_id = feeds.id
               ORDER BY posts.published_at IS NULL, posts.published_at DESC, posts.id DESC
               LIMIT ?""",
            (limit,),
        ).fetchall()
        return [
            {
                "id": r["id"],
                "feed_id": r["feed_id"],
                "feed_name": r["feed_name"],
                "title": r["title"],
                "url": r["url"],
                "description": r["description"],
                "published_at": _str_to_dt(r["published_at"]),
            }
            for r in rows
        ]

    def get_post_count(self, feed_id: int | None = None) -> int:
        """Count stored posts, optionally for one feed."""
        if feed_id is None:
            row = self.conn.execute("SELECT COUNT(*) AS cnt FROM posts").fetchone()
        else:
            row = self.conn.execute(
                "SELECT COUNT(*) AS cnt FROM posts WHERE feed_id = ?", (feed_id,)
            ).fetchone()
        return row["cnt"] if row else 0


# --- Helper functions ---


def _dt_to_str(dt: datetime | None) -> str | None:
    """Convert datetime to a UTC ISO string for storage.

    Fixed precision and zone keep stored values ordered when compared as text.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _str_to_dt(s: str | None) -> datetime | None:
    """Convert stored ISO string back to datetime."""
    if not s:
        return None
    return datetime.fromisoformat(s)


def _row_to_feed(row: sqlite3.Row) -> Feed:
    """Convert a database row to a Feed dataclass."""
    return Feed(
        id=row["id"],
        url=row["url"],
        name=row["name"],
        last_fetched_at=_str_to_dt(row["last_fetched_at"]),
        created_at=_str_to_dt(row["created_at"]) or utcnow(),
        updated_at=_str_to_dt(row["updated_at"]) or utcnow(),
    )


def _row_to_post(row: sqlite3.Row) -> Post:
    """Convert a database row to a Post dataclass."""
    return Post(
        id=row["id"],
        feed_id=row["feed_id"],
        title=row["title"],
        url=row["url"],
        description=row["description"],
        published_at=_str_to_dt(row["published_at"]),
        created_at=_str_to_dt(row["created_at"]) or utcnow(),
        updated_at=_str_to_dt(row["updated_at"]) or utcnow(),
    )
