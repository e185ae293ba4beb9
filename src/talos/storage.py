"""SQLite storage for conversations and their messages."""

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from .errors import StorageError
from .models import Conversation, Message, Role

logger = logging.getLogger(__name__)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS conversations (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        model TEXT NOT NULL,
        created_at REAL NOT NULL,
        updated_at REAL NOT NULL
    );

    CREATE TABLE IF NOT EXISTS messages (
        id TEXT PRIMARY KEY,
        conversation_id TEXT NOT NULL,
        role TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'system')),
        content TEXT NOT NULL,
        created_at REAL NOT NULL,
        seq INTEGER NOT NULL,
        FOREIGN KEY (conversation_id) REFERENCES conversations(id) ON DELETE CASCADE,
        UNIQUE (conversation_id, seq)
    );

    CREATE INDEX IF NOT EXISTS idx_conversations_updated
        ON conversations(updated_at);
"""


class ConversationStore:
    """SQLite-backed storage for conversations and messages.

    A fresh connection is opened for every operation, so one store instance
    can be shared between tasks and worker threads. Writers that touch more
    than one row take the database write lock up front (``BEGIN IMMEDIATE``).
    """

    def __init__(
        self,
        db_path: Path,
        *,
        busy_timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self._clock = clock
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create data directory: {exc}") from exc
        self._migrate()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = None
        try:
            conn = sqlite3.connect(
                str(self.db_path), timeout=self.busy_timeout, isolation_level=None
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys=ON")
            yield conn
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            if conn is not None:
                conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _migrate(self):
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA)

    def create_conversation(self, title: str, model: str) -> str:
        """Create a conversation bound to ``model`` and return its id."""
        conversation_id = str(uuid.uuid4())
        now = self._clock()
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO conversations (id, title, model, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (conversation_id, title, model, now, now),
            )
        logger.debug("Created conversation %s (model=%s)", conversation_id, model)
        return conversation_id

    def list_conversations(self) -> list[Conversation]:
        """List conversations, most recently active first."""
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT id, title, model, created_at, updated_at
                   FROM conversations
                   ORDER BY updated_at DESC, created_at DESC, rowid DESC"""
            ).fetchall()
        return [_row_to_conversation(r) for r in rows]

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        with self._connect() as conn:
            row = conn.execute(
                """SELECT id, title, model, created_at, updated_at
                   FROM conversations WHERE id = ?""",
                (conversation_id,),
            ).fetchone()
        return _row_to_conversation(row) if row else None

    def add_message(self, conversation_id: str, role: Role | str, content: str) -> Message:
        """Append a message and bump the conversation's activity time.

        The insert and the activity update commit together. The message gets
        the next per-conversation sequence number and a timestamp that never
        goes backwards within the conversation. The returned message is read
        back from the committed row.
        """
        try:
            role = Role(role)
        except ValueError as exc:
            raise StorageError(f"Invalid message role: {role!r}") from exc

        message_id = str(uuid.uuid4())
        with self._transaction() as conn:
            last = conn.execute(
                """SELECT MAX(seq), MAX(created_at) FROM messages
                   WHERE conversation_id = ?""",
                (conversation_id,),
            ).fetchone()
            seq = (last[0] or 0) + 1
            created_at = max(self._clock(), last[1] or 0.0)

            conn.execute(
                """INSERT INTO messages (id, conversation_id, role, content, created_at, seq)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (message_id, conversation_id, role.value, content, created_at, seq),
            )
            conn.execute(
                "UPDATE conversations SET updated_at = MAX(updated_at, ?) WHERE id = ?",
                (created_at, conversation_id),
            )
            row = conn.execute(
                """SELECT id, conversation_id, role, content, created_at, seq
                   FROM messages WHERE id = ?""",
                (message_id,),
            ).fetchone()
        return _row_to_message(row)

    def get_messages(self, conversation_id: str) -> list[Message]:
        """Messages of a conversation in chronological order (empty if unknown)."""
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT id, conversation_id, role, content, created_at, seq
                   FROM messages WHERE conversation_id = ?
                   ORDER BY created_at ASC, seq ASC""",
                (conversation_id,),
            ).fetchall()
        return [_row_to_message(r) for r in rows]

    def delete_conversation(self, conversation_id: str):
        """Delete a conversation and all of its messages. Unknown ids are ignored."""
        with self._connect() as conn:
            conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))

    def rename_conversation(self, conversation_id: str, title: str):
        """Set a new title. Succeeds silently when the id does not exist."""
        with self._connect() as conn:
            conn.execute(
                "UPDATE conversations SET title = ? WHERE id = ?", (title, conversation_id)
            )

    def update_message_content(self, message_id: str, content: str):
        """Replace a message's content. Succeeds silently when the id does not exist."""
        with self._connect() as conn:
            conn.execute("UPDATE messages SET content = ? WHERE id = ?", (content, message_id))

    def delete_messages_after(self, conversation_id: str, after_message_id: str) -> int:
        """Delete every message of the conversation that comes after ``after_message_id``.

        Ordering uses the per-conversation sequence number, so messages sharing
        a timestamp are still cut at the right place. Nothing is deleted when
        ``after_message_id`` is not a message of this conversation. Returns the
        number of deleted messages.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                """DELETE FROM messages
                   WHERE conversation_id = ?1
                   AND seq > (SELECT seq FROM messages WHERE id = ?2 AND conversation_id = ?1)""",
                (conversation_id, after_message_id),
            )
            deleted = cursor.rowcount
        logger.debug(
            "Truncated %d messages after %s in %s", deleted, after_message_id, conversation_id
        )
        return deleted


def _to_datetime(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _row_to_conversation(row: sqlite3.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        title=row["title"],
        model=row["model"],
        created_at=_to_datetime(row["created_at"]),
        updated_at=_to_datetime(row["updated_at"]),
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        role=Role(row["role"]),
        content=row["content"],
        created_at=_to_datetime(row["created_at"]),
        seq=row["seq"],
    )
