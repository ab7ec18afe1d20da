"""
cache/store.py -- SQLite-backed cache for upstream news lookups.

Avoids hitting the news provider (which rate-limits free keys hard) for every
page view by storing the normalized article list per query with a
configurable TTL (default 15 minutes).

Usage:
    cache = NewsCache()
    articles = cache.get("pasta")         # returns list[dict] or None
    cache.set("pasta", articles)
    cache.purge_expired()                 # call periodically to trim old entries
"""

import json
import sqlite3
import threading
import time
from pathlib import Path
from typing import Optional

_DEFAULT_DB = Path(__file__).parent / "recipehub_news.db"
_DEFAULT_TTL = 15 * 60  # 15 minutes in seconds

_DDL = """
CREATE TABLE IF NOT EXISTS news_cache (
    query       TEXT PRIMARY KEY,
    data        TEXT NOT NULL,
    cached_at   REAL NOT NULL
);
"""


class NewsCache:
    def __init__(self, db_path: Path | str = _DEFAULT_DB, ttl: int = _DEFAULT_TTL) -> None:
        self.ttl = ttl
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        # One connection is shared by the threadpool; sqlite3 connections are
        # not safe for concurrent use.
        self._lock = threading.Lock()
        with self._lock:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute(_DDL)
            self._conn.commit()

    def get(self, query: str) -> Optional[list[dict]]:
        """Return cached articles for query if present and not expired."""
        with self._lock:
            row = self._conn.execute(
                "SELECT data, cached_at FROM news_cache WHERE query = ?",
                (query,),
            ).fetchone()
        if row is None:
            return None
        data, cached_at = row
        if time.time() - cached_at > self.ttl:
            self._delete(query)
            return None
        return json.loads(data)

    def set(self, query: str, articles: list[dict]) -> None:
        """Store articles for query, replacing any existing entry."""
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO news_cache (query, data, cached_at) VALUES (?, ?, ?)",
                (query, json.dumps(articles), time.time()),
            )
            self._conn.commit()

    def purge_expired(self) -> int:
        """Delete all entries older than TTL. Returns number of rows removed."""
        cutoff = time.time() - self.ttl
        with self._lock:
            cursor = self._conn.execute("DELETE FROM news_cache WHERE cached_at < ?", (cutoff,))
            self._conn.commit()
        return cursor.rowcount

    def _delete(self, query: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM news_cache WHERE query = ?", (query,))
            self._conn.commit()

    def close(self) -> None:
        self._conn.close()
