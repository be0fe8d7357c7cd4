import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from datetime import datetime, timezone

DB_PATH = Path("wellness.db")

logger = logging.getLogger(__name__)


@contextmanager
def conn(db_path=None):
    c = sqlite3.connect(db_path or DB_PATH)
    c.row_factory = sqlite3.Row
    try:
        yield c
        c.commit()
    finally:
        c.close()


def now_iso():
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def init_db(db_path=None):
    with conn(db_path) as c:
        c.executescript(
            '''
            PRAGMA journal_mode=WAL;

            -- Local key/value store: one JSON document per key
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT
            );
            '''
        )


class SqliteStore:
    """Storage port backed by a local SQLite file: get(key) -> str | None, set(key, value)."""

    def __init__(self, db_path=None):
        self.db_path = Path(db_path) if db_path else DB_PATH
        init_db(self.db_path)

    def get(self, key):
        with conn(self.db_path) as c:
            row = c.execute("SELECT value FROM kv_store WHERE key=?", (key,)).fetchone()
        return row["value"] if row else None

    def set(self, key, value):
        with conn(self.db_path) as c:
            c.execute(
                '''
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                ''',
                (key, value, now_iso()),
            )
        logger.debug("stored %s (%d bytes)", key, len(value))

    def delete(self, key):
        with conn(self.db_path) as c:
            c.execute("DELETE FROM kv_store WHERE key=?", (key,))

    def keys(self):
        with conn(self.db_path) as c:
            return [r["key"] for r in c.execute("SELECT key FROM kv_store ORDER BY key")]


class MemoryStore:
    """In-memory storage port, for tests and throwaway sessions."""

    def __init__(self, initial=None):
        self.data = dict(initial or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)

    def keys(self):
        return sorted(self.data)
