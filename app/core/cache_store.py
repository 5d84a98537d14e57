from __future__ import annotations

import os
import sqlite3
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from app.core.config import settings

_conn: sqlite3.Connection | None = None
_conn_lock = threading.Lock()


class CacheKey(str, Enum):
    JOB_DESCRIPTION = "job_description"
    SKILLS = "skills"
    RESUME = "resume"
    EXTRACTED_RESUME_TEXT = "extracted_resume_text"
    ANALYSIS_RESULT = "analysis_result"
    OPTIMIZED_RESUME = "optimized_resume"
    USER_INFO = "user_info"


class CacheStore(Protocol):
    def get(self, key: CacheKey) -> str | None: ...

    def set(self, key: CacheKey, value: str) -> None: ...


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryCacheStore:
    def __init__(self, initial: dict[CacheKey, str] | None = None):
        self._entries: dict[CacheKey, str] = dict(initial or {})

    def get(self, key: CacheKey) -> str | None:
        return self._entries.get(CacheKey(key))

    def set(self, key: CacheKey, value: str) -> None:
        self._entries[CacheKey(key)] = str(value)


def _get_connection() -> sqlite3.Connection:
    global _conn
    with _conn_lock:
        if _conn is not None:
            return _conn

        db_path = settings.cache_db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        _conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        _conn.execute("PRAGMA journal_mode=WAL;")
        _conn.execute("PRAGMA synchronous=NORMAL;")
        _conn.execute("PRAGMA busy_timeout=5000;")
        _conn.execute(
            """
            CREATE TABLE IF NOT EXISTS resume_cache_entries (
                session_id TEXT NOT NULL,
                cache_key TEXT NOT NULL,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (session_id, cache_key)
            );
            """
        )
        return _conn


def init_cache_db() -> None:
    _get_connection()


class SqliteCacheStore:
    """Durable key-value entries for one browser session; no expiry, last writer wins."""

    def __init__(self, session_id: str):
        if not session_id or not session_id.strip():
            raise ValueError("session_id is required.")
        self.session_id = session_id.strip()

    def get(self, key: CacheKey) -> str | None:
        conn = _get_connection()
        with _conn_lock:
            cur = conn.execute(
                "SELECT value FROM resume_cache_entries WHERE session_id = ? AND cache_key = ?",
                (self.session_id, CacheKey(key).value),
            )
            row = cur.fetchone()
        return row[0] if row else None

    def set(self, key: CacheKey, value: str) -> None:
        conn = _get_connection()
        with _conn_lock:
            conn.execute(
                """
                INSERT INTO resume_cache_entries (session_id, cache_key, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (session_id, cache_key)
                DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (self.session_id, CacheKey(key).value, str(value), _utc_now()),
            )


def clear_cache_entries() -> None:
    conn = _get_connection()
    with _conn_lock:
        conn.execute("DELETE FROM resume_cache_entries")
