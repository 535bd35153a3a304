"""SQLite-backed append-only log of received text messages.

Each qualifying chat event becomes exactly one row in the ``messages`` table.
Rows are never updated or deleted by the bot, and no uniqueness constraint is
enforced, so a redelivered event produces a second row.
"""

import asyncio
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from threading import Lock


@dataclass(frozen=True)
class StoredMessage:
    """One row of the message log."""

    sender: str
    content: str
    timestamp: str               # Unix seconds, as text
    sender_name: str | None = None


class MessageStore:
    """Thread-safe message log backed by SQLite.

    Writes are serialised with a lock, so concurrent event tasks may call
    :meth:`record` freely; their rows simply interleave.
    """

    def __init__(self, db_path: str = "dump.db") -> None:
        """Open (or create) the SQLite database at *db_path*."""
        self._db_path = Path(db_path)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._lock = Lock()
        self._init_db()

    def _init_db(self) -> None:
        with self._lock:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id         INTEGER PRIMARY KEY AUTOINCREMENT,
                    sender     TEXT,
                    sendername TEXT,
                    content    TEXT,
                    timestamp  TEXT
                );
                """
            )
            self._conn.commit()

    def add(self, message: StoredMessage) -> int:
        """Append *message* to the log and return its row id."""
        with self._lock:
            cursor = self._conn.execute(
                "INSERT INTO messages (sender, sendername, content, timestamp)"
                " VALUES (?, ?, ?, ?)",
                (message.sender, message.sender_name, message.content, message.timestamp),
            )
            self._conn.commit()
            return cursor.lastrowid  # type: ignore[return-value]

    async def record(self, message: StoredMessage) -> int:
        """Async variant of :meth:`add`; the write runs in a worker thread."""
        return await asyncio.to_thread(self.add, message)

    def recent(self, limit: int = 20) -> list[StoredMessage]:
        """Return the most recent *limit* rows, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT sender, sendername, content, timestamp
                FROM messages
                ORDER BY id DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [
            StoredMessage(sender=s, sender_name=n, content=c, timestamp=t)
            for s, n, c, t in reversed(rows)
        ]

    def count(self) -> int:
        """Return the total number of stored messages."""
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM messages").fetchone()[0]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
