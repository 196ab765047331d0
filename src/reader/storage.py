from __future__ import annotations

import os
import sqlite3
import time
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

from .models import Feed, FeedItem, Folder, new_id
from .normalize import pubdate_timestamp

DEFAULT_BATCH_SIZE = 100

FILTER_MODES = ("all", "unread", "starred")
SORT_ORDERS = ("newest", "oldest")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _chunks(items: list[FeedItem], size: int) -> Iterable[list[FeedItem]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class FeedStorePort(Protocol):
    """What ingestion and refresh need from a document store."""

    def check_url_exists(self, url: str) -> bool: ...

    def existing_links(self, feed_id: str) -> set[str]: ...

    def batch_insert_items(self, feed_id: str, items: list[FeedItem]) -> int: ...

    def upsert_feed_metadata(self, feed: Feed, folder_id: Optional[str] = None) -> str: ...

    def touch_last_fetched(self, feed_id: str, when: Optional[str] = None) -> None: ...


class FeedStore:
    def __init__(self, db_path: str, batch_size: int = DEFAULT_BATCH_SIZE):
        self.db_path = db_path
        self.batch_size = max(1, int(batch_size))
        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row
        return conn

    def init(self) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS folders (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    is_expanded INTEGER NOT NULL DEFAULT 1,
                    sort_by TEXT,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    created_at REAL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS feeds (
                    id TEXT PRIMARY KEY,
                    title TEXT,
                    url TEXT NOT NULL UNIQUE,
                    link TEXT,
                    description TEXT,
                    image_url TEXT,
                    folder_id TEXT REFERENCES folders(id) ON DELETE SET NULL,
                    last_fetched TEXT,
                    created_at REAL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS feed_items (
                    id TEXT PRIMARY KEY,
                    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
                    title TEXT,
                    link TEXT,
                    content TEXT NOT NULL DEFAULT '',
                    content_snippet TEXT NOT NULL DEFAULT '',
                    author TEXT,
                    pub_date TEXT,
                    image_url TEXT,
                    is_read INTEGER NOT NULL DEFAULT 0,
                    is_starred INTEGER NOT NULL DEFAULT 0,
                    summary TEXT,
                    created_at REAL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_feed_items_feed_link ON feed_items(feed_id, link)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_feed_items_read ON feed_items(is_read)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_feed_items_starred ON feed_items(is_starred)")

    # -- storage port -----------------------------------------------------

    def check_url_exists(self, url: str) -> bool:
        with self._conn() as conn:
            row = conn.execute("SELECT 1 FROM feeds WHERE url = ?", (url,)).fetchone()
        return row is not None

    def existing_links(self, feed_id: str) -> set[str]:
        with self._conn() as conn:
            rows = conn.execute("SELECT link FROM feed_items WHERE feed_id = ?", (feed_id,)).fetchall()
        return {r["link"] for r in rows}

    def batch_insert_items(self, feed_id: str, items: list[FeedItem]) -> int:
        """Insert items for a feed in chunks of ``batch_size``, one transaction per chunk.

        Stored rows get fresh ids and start unread and unstarred. A failing
        chunk raises; chunks already written stay written.
        """
        written = 0
        for chunk in _chunks(list(items), self.batch_size):
            now = time.time()
            rows = [
                (
                    new_id(),
                    feed_id,
                    i.title,
                    i.link,
                    i.content or "",
                    i.content_snippet or "",
                    i.author,
                    i.pub_date,
                    i.image_url,
                    0,
                    0,
                    None,
                    now,
                )
                for i in chunk
            ]
            with self._conn() as conn:
                conn.executemany(
                    """
                    INSERT INTO feed_items (
                        id, feed_id, title, link, content, content_snippet, author, pub_date,
                        image_url, is_read, is_starred, summary, created_at
                    ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?)
                    """,
                    rows,
                )
            written += len(rows)
        return written

    def upsert_feed_metadata(self, feed: Feed, folder_id: Optional[str] = None) -> str:
        with self._conn() as conn:
            row = conn.execute("SELECT id FROM feeds WHERE url = ?", (feed.url,)).fetchone()
            if row is not None:
                conn.execute(
                    "UPDATE feeds SET title = ?, link = ?, description = ?, image_url = ? WHERE id = ?",
                    (feed.title, feed.link, feed.description, feed.image_url, row["id"]),
                )
                return row["id"]

            feed_id = new_id()
            conn.execute(
                """
                INSERT INTO feeds (id, title, url, link, description, image_url, folder_id, last_fetched, created_at)
                VALUES (?,?,?,?,?,?,?,?,?)
                """,
                (
                    feed_id,
                    feed.title,
                    feed.url,
                    feed.link,
                    feed.description,
                    feed.image_url,
                    folder_id,
                    feed.last_fetched,
                    time.time(),
                ),
            )
        return feed_id

    def touch_last_fetched(self, feed_id: str, when: Optional[str] = None) -> None:
        with self._conn() as conn:
            conn.execute("UPDATE feeds SET last_fetched = ? WHERE id = ?", (when or _now_iso(), feed_id))

    # -- feeds ------------------------------------------------------------

    def add_feed(self, feed: Feed, folder_id: Optional[str] = None) -> str:
        """Persist a freshly ingested feed and its first batch of items.

        The id on ``feed`` is ingestion-time only; the returned id is the one
        to use from here on. If an item chunk fails, a feed row created by this
        call is removed again before the error propagates.
        """
        created = not self.check_url_exists(feed.url)
        feed_id = self.upsert_feed_metadata(feed, folder_id=folder_id or feed.folder_id)
        try:
            self.touch_last_fetched(feed_id, feed.last_fetched)
            if feed.items:
                self.batch_insert_items(feed_id, feed.items)
        except sqlite3.Error:
            if created:
                self.remove_feed(feed_id)
            raise
        return feed_id

    def import_feeds(self, feeds: Iterable[Feed]) -> list[str]:
        """Metadata-only insert for feeds whose url is new. Returns the new ids."""
        existing = self.existing_feed_urls()
        added: list[str] = []
        for feed in feeds:
            if feed.url in existing:
                continue
            feed_id = new_id()
            with self._conn() as conn:
                conn.execute(
                    """
                    INSERT INTO feeds (id, title, url, link, description, image_url, folder_id, last_fetched, created_at)
                    VALUES (?,?,?,?,?,?,?,NULL,?)
                    """,
                    (feed_id, feed.title, feed.url, feed.link, feed.description, feed.image_url, feed.folder_id, time.time()),
                )
            existing.add(feed.url)
            added.append(feed_id)
        return added

    def existing_feed_urls(self) -> set[str]:
        with self._conn() as conn:
            rows = conn.execute("SELECT url FROM feeds").fetchall()
        return {r["url"] for r in rows}

    def remove_feed(self, feed_id: str) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM feeds WHERE id = ?", (feed_id,))

    def move_feed(self, feed_id: str, folder_id: Optional[str]) -> None:
        with self._conn() as conn:
            conn.execute("UPDATE feeds SET folder_id = ? WHERE id = ?", (folder_id, feed_id))

    def list_feeds(self) -> list[Feed]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM feeds ORDER BY created_at ASC").fetchall()
        return [self._row_to_feed(r) for r in rows]

    def get_feed(self, feed_id: str, with_items: bool = False) -> Optional[Feed]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM feeds WHERE id = ?", (feed_id,)).fetchone()
        if row is None:
            return None
        feed = self._row_to_feed(row)
        if with_items:
            feed.items = self.list_items(feed_id)
        return feed

    def get_feed_by_url(self, url: str) -> Optional[Feed]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM feeds WHERE url = ?", (url,)).fetchone()
        return self._row_to_feed(row) if row is not None else None

    # -- folders ----------------------------------------------------------

    def add_folder(self, name: str, is_expanded: bool = True, folder_id: Optional[str] = None) -> str:
        folder_id = folder_id or new_id()
        with self._conn() as conn:
            row = conn.execute("SELECT COALESCE(MAX(sort_order), -1) AS m FROM folders").fetchone()
            conn.execute(
                "INSERT INTO folders (id, name, is_expanded, sort_order, created_at) VALUES (?,?,?,?,?)",
                (folder_id, name, 1 if is_expanded else 0, int(row["m"]) + 1, time.time()),
            )
        return folder_id

    def remove_folder(self, folder_id: str) -> None:
        # Feeds in the folder become uncategorized through ON DELETE SET NULL.
        with self._conn() as conn:
            conn.execute("DELETE FROM folders WHERE id = ?", (folder_id,))

    def toggle_folder(self, folder_id: str) -> None:
        with self._conn() as conn:
            conn.execute("UPDATE folders SET is_expanded = 1 - is_expanded WHERE id = ?", (folder_id,))

    def rename_folder(self, folder_id: str, name: str) -> None:
        with self._conn() as conn:
            conn.execute("UPDATE folders SET name = ? WHERE id = ?", (name, folder_id))

    def set_folder_sort(self, folder_id: str, sort_by: Optional[str]) -> None:
        with self._conn() as conn:
            conn.execute("UPDATE folders SET sort_by = ? WHERE id = ?", (sort_by, folder_id))

    def list_folders(self) -> list[Folder]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM folders ORDER BY sort_order ASC, created_at ASC").fetchall()
        return [
            Folder(
                id=r["id"],
                name=r["name"],
                is_expanded=bool(r["is_expanded"]),
                sort_by=r["sort_by"],
                order=int(r["sort_order"] or 0),
            )
            for r in rows
        ]

    def folder_id_by_name(self, name: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT id FROM folders WHERE lower(name) = lower(?) ORDER BY created_at ASC LIMIT 1",
                (name.strip(),),
            ).fetchone()
        return row["id"] if row is not None else None

    # -- items ------------------------------------------------------------

    def get_item(self, item_id: str) -> Optional[FeedItem]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM feed_items WHERE id = ?", (item_id,)).fetchone()
        return self._row_to_item(row) if row is not None else None

    def list_items(self, feed_id: Optional[str] = None, mode: str = "all", order: str = "newest") -> list[FeedItem]:
        if mode not in FILTER_MODES:
            raise ValueError(f"unknown filter mode: {mode}")
        if order not in SORT_ORDERS:
            raise ValueError(f"unknown sort order: {order}")

        where = []
        params: list[object] = []
        if feed_id is not None:
            where.append("feed_id = ?")
            params.append(feed_id)
        if mode == "unread":
            where.append("is_read = 0")
        elif mode == "starred":
            where.append("is_starred = 1")
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        with self._conn() as conn:
            rows = conn.execute(f"SELECT * FROM feed_items {where_sql}", params).fetchall()

        items = [self._row_to_item(r) for r in rows]
        # pubDate is a free-form source string, so ordering happens here rather than in SQL.
        items.sort(key=lambda i: pubdate_timestamp(i.pub_date), reverse=(order == "newest"))
        return items

    def unread_counts(self) -> dict[str, int]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT feed_id, COUNT(*) AS n FROM feed_items WHERE is_read = 0 GROUP BY feed_id"
            ).fetchall()
        return {r["feed_id"]: int(r["n"]) for r in rows}

    def mark_read(self, item_id: str) -> None:
        self._set_item_flag(item_id, "is_read", True)

    def mark_unread(self, item_id: str) -> None:
        self._set_item_flag(item_id, "is_read", False)

    def toggle_star(self, item_id: str) -> None:
        with self._conn() as conn:
            conn.execute("UPDATE feed_items SET is_starred = 1 - is_starred WHERE id = ?", (item_id,))

    def mark_all_read(self, feed_id: Optional[str] = None) -> None:
        with self._conn() as conn:
            if feed_id is None:
                conn.execute("UPDATE feed_items SET is_read = 1 WHERE is_read = 0")
            else:
                conn.execute("UPDATE feed_items SET is_read = 1 WHERE feed_id = ? AND is_read = 0", (feed_id,))

    def save_summary(self, item_id: str, summary: str) -> None:
        with self._conn() as conn:
            conn.execute("UPDATE feed_items SET summary = ? WHERE id = ?", (summary, item_id))

    def _set_item_flag(self, item_id: str, column: str, value: bool) -> None:
        with self._conn() as conn:
            conn.execute(f"UPDATE feed_items SET {column} = ? WHERE id = ?", (1 if value else 0, item_id))

    def _row_to_feed(self, r: sqlite3.Row) -> Feed:
        return Feed(
            id=r["id"],
            title=r["title"] or "",
            url=r["url"],
            link=r["link"] or "",
            description=r["description"] or "",
            image_url=r["image_url"] or None,
            folder_id=r["folder_id"],
            last_fetched=r["last_fetched"],
        )

    def _row_to_item(self, r: sqlite3.Row) -> FeedItem:
        return FeedItem(
            id=r["id"],
            feed_id=r["feed_id"],
            title=r["title"] or "",
            link=r["link"] or "",
            content=r["content"] or "",
            content_snippet=r["content_snippet"] or "",
            author=r["author"] or "",
            pub_date=r["pub_date"] or "",
            image_url=r["image_url"] or None,
            is_read=bool(r["is_read"]),
            is_starred=bool(r["is_starred"]),
            summary=r["summary"],
        )
