from __future__ import annotations

import sqlite3
from pathlib import Path

from openmessage import db


def _columns(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def test_initialize_schema_sets_user_version(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "messages.db")
    try:
        db.initialize_schema(conn)
        version = db.schema_version(conn)
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        }
    finally:
        conn.close()

    assert version == db.SCHEMA_VERSION
    assert {"conversations", "messages", "contacts", "drafts"} <= tables


def test_initialize_schema_skips_reinit_at_current_version(monkeypatch, tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "messages.db")
    try:
        db.initialize_schema(conn)

        def _unexpected_reinit(_conn):
            raise AssertionError("initialize_schema should not rerun at current version")

        monkeypatch.setattr(db, "_initialize_schema_v1", _unexpected_reinit)
        db.initialize_schema(conn)
    finally:
        conn.close()


def test_v1_database_gains_media_columns(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "messages.db")
    try:
        db._initialize_schema_v1(conn)
        conn.execute("PRAGMA user_version = 1")
        conn.execute(
            "INSERT INTO messages(message_id, conversation_id, body) VALUES ('m1', 'c1', 'hi')"
        )
        conn.commit()
        assert "media_id" not in _columns(conn, "messages")

        db.initialize_schema(conn)

        columns = _columns(conn, "messages")
        row = conn.execute("SELECT body, reactions FROM messages").fetchone()
    finally:
        conn.close()

    assert {"media_id", "mime_type", "decryption_key", "reactions", "reply_to_id"} <= columns
    assert row["body"] == "hi"
    assert row["reactions"] == ""


def test_messages_primary_key_is_id_and_conversation(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "messages.db")
    try:
        db.initialize_schema(conn)
        pk = [
            row[1]
            for row in sorted(
                conn.execute("PRAGMA table_info(messages)").fetchall(), key=lambda r: r[5]
            )
            if row[5]
        ]
    finally:
        conn.close()

    assert pk == ["message_id", "conversation_id"]


def test_from_json_list_tolerates_garbage() -> None:
    assert db.from_json_list(None) == []
    assert db.from_json_list("") == []
    assert db.from_json_list("{not json") == []
    assert db.from_json_list('{"a": 1}') == []
    assert db.from_json_list('[{"a": 1}]') == [{"a": 1}]
