"""SQLite-backed message store.

Holds received chat messages so that voice placeholders can be picked up by
the transcription worker and rewritten once a transcript is available.

Database location: data/messages.db (or MESSAGES_DB_PATH)
"""

import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from models import ChatMessage
from utils.exceptions import StorageError
from utils.logger import logger

# Stay under SQLite's bound-parameter limit
_KEY_CHUNK_SIZE = 400


# ---------------------------------------------------------------------------
# Database path resolution
# ---------------------------------------------------------------------------

def _resolve_db_path() -> str:
    """Resolve the SQLite database file path.

    Uses MESSAGES_DB_PATH when set, otherwise data/messages.db under the
    project root (where pyproject.toml lives). Creates the directory if needed.

    Returns:
        Absolute path to messages.db
    """
    explicit = os.environ.get("MESSAGES_DB_PATH")
    if explicit:
        Path(explicit).parent.mkdir(parents=True, exist_ok=True)
        return explicit

    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            db_dir = parent / "data"
            db_dir.mkdir(parents=True, exist_ok=True)
            return str(db_dir / "messages.db")

    db_dir = current / "data"
    db_dir.mkdir(parents=True, exist_ok=True)
    return str(db_dir / "messages.db")


# ---------------------------------------------------------------------------
# Database connection helper
# ---------------------------------------------------------------------------

def _get_connection() -> sqlite3.Connection:
    """Get a new SQLite connection (connection-per-request for thread safety).

    The path is resolved per call so MESSAGES_DB_PATH can change at runtime.

    Returns:
        sqlite3.Connection with row_factory set to sqlite3.Row
    """
    conn = sqlite3.connect(_resolve_db_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def _row_to_message(row: sqlite3.Row) -> ChatMessage:
    return ChatMessage(
        id=row["id"],
        chat_jid=row["chat_jid"],
        sender=row["sender"] or "",
        sender_name=row["sender_name"] or "",
        content=row["content"] or "",
        timestamp=row["timestamp"] or "0",
        is_from_me=bool(row["is_from_me"]),
    )


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

def init_messages_db() -> None:
    """Create the messages table if it doesn't exist."""
    conn = _get_connection()
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                id TEXT NOT NULL,
                chat_jid TEXT NOT NULL,
                sender TEXT DEFAULT '',
                sender_name TEXT DEFAULT '',
                content TEXT NOT NULL DEFAULT '',
                timestamp TEXT DEFAULT '0',
                is_from_me INTEGER DEFAULT 0,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (id, chat_jid)
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_content
                ON messages(content)
        """)
        conn.commit()
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# CRUD operations
# ---------------------------------------------------------------------------

def store_message(message: ChatMessage) -> None:
    """Insert or replace a message.

    Raises:
        StorageError: If the write fails
    """
    row = message.to_row()
    conn = _get_connection()
    try:
        conn.execute(
            """INSERT OR REPLACE INTO messages
                   (id, chat_jid, sender, sender_name, content, timestamp, is_from_me)
               VALUES (:id, :chat_jid, :sender, :sender_name, :content, :timestamp, :is_from_me)""",
            row,
        )
        conn.commit()
    except sqlite3.Error as e:
        raise StorageError("store", str(e), key=message.key) from e
    finally:
        conn.close()


def update_message_content(message_id: str, chat_jid: str, content: str) -> bool:
    """Overwrite the content of a stored message.

    Args:
        message_id: WhatsApp message ID
        chat_jid: Chat JID
        content: New display content

    Returns:
        True if a row was updated, False if the message is unknown
    """
    conn = _get_connection()
    try:
        cursor = conn.execute(
            """UPDATE messages SET content = ?, updated_at = CURRENT_TIMESTAMP
               WHERE id = ? AND chat_jid = ?""",
            (content, message_id, chat_jid),
        )
        conn.commit()
        updated = cursor.rowcount > 0
    finally:
        conn.close()

    if not updated:
        logger.warning(f"update_message_content: no stored message {message_id}:{chat_jid}")
    return updated


def get_message(message_id: str, chat_jid: str) -> Optional[ChatMessage]:
    conn = _get_connection()
    try:
        row = conn.execute(
            "SELECT * FROM messages WHERE id = ? AND chat_jid = ?",
            (message_id, chat_jid),
        ).fetchone()
        return _row_to_message(row) if row else None
    finally:
        conn.close()


def get_messages_by_keys(keys: Sequence[str], content: Optional[str] = None) -> List[ChatMessage]:
    """Get stored messages by ``"<message_id>:<chat_jid>"`` key, in the order given.

    Keys with no stored row (or whose content differs from ``content``, when
    given) are skipped.

    Args:
        keys: Message keys, as produced by ``ChatMessage.key``
        content: Optional exact content the rows must still have

    Returns:
        List of ChatMessage
    """
    found: Dict[str, ChatMessage] = {}
    conn = _get_connection()
    try:
        for start in range(0, len(keys), _KEY_CHUNK_SIZE):
            chunk = list(keys[start:start + _KEY_CHUNK_SIZE])
            marks = ",".join("?" for _ in chunk)
            sql = f"SELECT * FROM messages WHERE (id || ':' || chat_jid) IN ({marks})"
            if content is not None:
                sql += " AND content = ?"
                chunk.append(content)
            for row in conn.execute(sql, chunk).fetchall():
                message = _row_to_message(row)
                found[message.key] = message
    finally:
        conn.close()

    return [found[key] for key in keys if key in found]


def count_messages() -> Dict[str, Any]:
    """Total number of stored messages."""
    conn = _get_connection()
    try:
        total = conn.execute("SELECT COUNT(*) FROM messages").fetchone()[0]
        return {"total": total}
    finally:
        conn.close()
