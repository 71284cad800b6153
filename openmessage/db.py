from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "openmessage"
DEFAULT_DB_PATH = DEFAULT_DATA_DIR / "messages.db"

SCHEMA_VERSION = 2


def connect(db_path: Path | str, check_same_thread: bool = True) -> sqlite3.Connection:
    if str(db_path) == ":memory:":
        conn = sqlite3.connect(":memory:", check_same_thread=check_same_thread)
    else:
        path = Path(db_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(path, check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.OperationalError:
        conn.execute("PRAGMA journal_mode = DELETE")
    conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def schema_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("PRAGMA user_version").fetchone()
    if row is None:
        return 0
    return int(row[0])


def initialize_schema(conn: sqlite3.Connection) -> None:
    if schema_version(conn) >= SCHEMA_VERSION:
        return
    _initialize_schema_v1(conn)
    _migrate_v2(conn)
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    conn.commit()


def _initialize_schema_v1(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS conversations (
            conversation_id TEXT PRIMARY KEY,
            name TEXT NOT NULL DEFAULT '',
            is_group INTEGER NOT NULL DEFAULT 0,
            participants TEXT NOT NULL DEFAULT '[]',
            last_message_ts INTEGER NOT NULL DEFAULT 0,
            unread_count INTEGER NOT NULL DEFAULT 0
        );
        CREATE INDEX IF NOT EXISTS idx_conversations_last_ts ON conversations(last_message_ts DESC);

        CREATE TABLE IF NOT EXISTS messages (
            message_id TEXT NOT NULL,
            conversation_id TEXT NOT NULL DEFAULT '',
            sender_name TEXT NOT NULL DEFAULT '',
            sender_number TEXT NOT NULL DEFAULT '',
            body TEXT NOT NULL DEFAULT '',
            timestamp_ms INTEGER NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT '',
            is_from_me INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (message_id, conversation_id)
        );
        CREATE INDEX IF NOT EXISTS idx_messages_conv_ts ON messages(conversation_id, timestamp_ms);
        CREATE INDEX IF NOT EXISTS idx_messages_ts ON messages(timestamp_ms DESC);
        CREATE INDEX IF NOT EXISTS idx_messages_sender ON messages(sender_number, timestamp_ms DESC);

        CREATE TABLE IF NOT EXISTS contacts (
            contact_id TEXT PRIMARY KEY,
            name TEXT NOT NULL DEFAULT '',
            number TEXT NOT NULL DEFAULT ''
        );

        CREATE TABLE IF NOT EXISTS drafts (
            draft_id TEXT PRIMARY KEY,
            conversation_id TEXT NOT NULL,
            body TEXT NOT NULL DEFAULT '',
            created_at INTEGER NOT NULL DEFAULT 0
        );
        CREATE INDEX IF NOT EXISTS idx_drafts_conversation ON drafts(conversation_id, created_at DESC);
        """
    )


def _migrate_v2(conn: sqlite3.Connection) -> None:
    # Media, reactions and reply linkage arrived after the first schema.
    _ensure_column(conn, "messages", "media_id", "TEXT NOT NULL DEFAULT ''")
    _ensure_column(conn, "messages", "mime_type", "TEXT NOT NULL DEFAULT ''")
    _ensure_column(conn, "messages", "decryption_key", "TEXT NOT NULL DEFAULT ''")
    _ensure_column(conn, "messages", "reactions", "TEXT NOT NULL DEFAULT ''")
    _ensure_column(conn, "messages", "reply_to_id", "TEXT NOT NULL DEFAULT ''")


def _ensure_column(conn: sqlite3.Connection, table: str, column: str, column_type: str) -> None:
    existing = {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}
    if column in existing:
        return
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")


def to_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def from_json_list(text: str | None) -> list[Any]:
    if not text:
        return []
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return []
    return value if isinstance(value, list) else []
