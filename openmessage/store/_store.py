from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .. import db
from . import utils as store_utils
from .policy import (
    CONTACT_POLICY,
    CONVERSATION_POLICY,
    DRAFT_POLICY,
    MESSAGE_POLICY,
    FieldPolicy,
    merge_row,
)
from .types import (
    PLACEHOLDER_PREFIX,
    STATUS_OUTGOING_SENDING,
    Contact,
    Conversation,
    Draft,
    MediaRef,
    Message,
    MessageRecord,
)

_MESSAGE_SELECT = ", ".join(store_utils.MESSAGE_READ_COLUMNS)


class MessageStore:
    """Primary store for conversations, messages, contacts and drafts.

    One SQLite connection is shared by every caller (event dispatch, send
    paths, CLI). All access goes through ``_lock`` so a write transaction is
    never interleaved with another write or observed half-applied by a read.
    """

    DEFAULT_LIST_LIMIT = 50

    def __init__(self, db_path: Path | str = db.DEFAULT_DB_PATH):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path).expanduser()
        self.conn = db.connect(self.db_path, check_same_thread=False)
        db.initialize_schema(self.conn)
        self._lock = threading.RLock()

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    @contextmanager
    def _write(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self.conn
            except BaseException:
                self.conn.rollback()
                raise
            self.conn.commit()

    def _upsert(
        self,
        table: str,
        key: Mapping[str, Any],
        incoming: Mapping[str, Any],
        policy: Mapping[str, FieldPolicy],
    ) -> dict[str, Any]:
        where = " AND ".join(f"{column} = ?" for column in key)
        key_values = tuple(key.values())
        with self._write() as conn:
            row = conn.execute(f"SELECT * FROM {table} WHERE {where}", key_values).fetchone()
            current = dict(row) if row is not None else None
            merged = merge_row(policy, current, {**incoming, **key})
            if current is None:
                columns = list(merged)
                placeholders = ", ".join("?" for _ in columns)
                conn.execute(
                    f"INSERT INTO {table}({', '.join(columns)}) VALUES ({placeholders})",
                    tuple(merged[c] for c in columns),
                )
            elif merged != current:
                columns = [c for c in merged if c not in key]
                assignments = ", ".join(f"{c} = ?" for c in columns)
                conn.execute(
                    f"UPDATE {table} SET {assignments} WHERE {where}",
                    (*(merged[c] for c in columns), *key_values),
                )
        return merged

    # conversations

    def upsert_conversation(self, conv: Conversation) -> Conversation:
        if not conv.conversation_id:
            raise ValueError("conversation_id is required")
        row = store_utils.conversation_to_row(conv)
        merged = self._upsert(
            "conversations",
            {"conversation_id": row.pop("conversation_id")},
            row,
            CONVERSATION_POLICY,
        )
        return store_utils.conversation_from_row(merged)

    def bump_conversation(self, conversation_id: str, timestamp_ms: int) -> bool:
        """Move a conversation's recency forward after a local send.

        Goes through the same merge table as inbound updates, so an older
        timestamp never regresses the stored one. Unknown conversations are
        left alone; they are created when the protocol first reports them.
        """

        with self._lock:
            exists = self.conn.execute(
                "SELECT 1 FROM conversations WHERE conversation_id = ?", (conversation_id,)
            ).fetchone()
            if exists is None:
                return False
            self._upsert(
                "conversations",
                {"conversation_id": conversation_id},
                {"last_message_ts": int(timestamp_ms)},
                CONVERSATION_POLICY,
            )
        return True

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM conversations WHERE conversation_id = ?", (conversation_id,)
            ).fetchone()
        if row is None:
            return None
        return store_utils.conversation_from_row(row)

    def list_conversations(self, limit: int = DEFAULT_LIST_LIMIT) -> list[Conversation]:
        if limit <= 0:
            return []
        with self._lock:
            rows = self.conn.execute(
                """
                SELECT * FROM conversations
                ORDER BY last_message_ts DESC, conversation_id
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [store_utils.conversation_from_row(row) for row in rows]

    # messages

    def upsert_message(self, record: MessageRecord) -> Message:
        if not record.message_id:
            raise ValueError("message_id is required")
        row = store_utils.message_to_row(record)
        key = {
            "message_id": row.pop("message_id"),
            "conversation_id": row.pop("conversation_id"),
        }
        merged = self._upsert("messages", key, row, MESSAGE_POLICY)
        return store_utils.message_from_row(merged)

    def insert_placeholder_message(
        self,
        message_id: str,
        conversation_id: str,
        *,
        body: str,
        timestamp_ms: int,
        reply_to_id: str = "",
        media: MediaRef | None = None,
    ) -> Message:
        """Record an optimistic outgoing message before the server confirms it."""

        if not store_utils.is_placeholder_id(message_id):
            raise ValueError(f"placeholder ids must start with {PLACEHOLDER_PREFIX!r}")
        record = MessageRecord(
            message_id=message_id,
            conversation_id=conversation_id,
            body=body,
            timestamp_ms=timestamp_ms,
            status=STATUS_OUTGOING_SENDING,
            is_from_me=True,
            reply_to_id=reply_to_id,
        )
        if media is not None:
            record.media_id = media.media_id
            record.mime_type = media.mime_type
            record.decryption_key = media.decryption_key.hex()
        return self.upsert_message(record)

    def delete_placeholder_messages(self, conversation_id: str) -> int:
        with self._write() as conn:
            cur = conn.execute(
                "DELETE FROM messages WHERE conversation_id = ? AND message_id LIKE ? ESCAPE '\\'",
                (conversation_id, f"{store_utils.escape_like(PLACEHOLDER_PREFIX)}%"),
            )
        return int(cur.rowcount or 0)

    def get_message_by_id(self, message_id: str) -> Message | None:
        if not message_id:
            return None
        with self._lock:
            row = self.conn.execute(
                f"""
                SELECT {_MESSAGE_SELECT} FROM messages
                WHERE message_id = ?
                ORDER BY timestamp_ms DESC
                LIMIT 1
                """,
                (message_id,),
            ).fetchone()
        if row is None:
            return None
        return store_utils.message_from_row(row)

    def get_messages(
        self,
        sender_number: str = "",
        after_ms: int = 0,
        before_ms: int = 0,
        limit: int = 100,
    ) -> list[Message]:
        """Messages newest first, filtered by sender and an inclusive time range.

        Zero or empty filter values are ignored.
        """

        clauses: list[str] = []
        params: list[Any] = []
        if sender_number:
            clauses.append("sender_number = ?")
            params.append(sender_number)
        if after_ms > 0:
            clauses.append("timestamp_ms >= ?")
            params.append(after_ms)
        if before_ms > 0:
            clauses.append("timestamp_ms <= ?")
            params.append(before_ms)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return self._select_messages(where, params, limit)

    def get_messages_by_conversation(self, conversation_id: str, limit: int = 100) -> list[Message]:
        return self._select_messages("WHERE conversation_id = ?", [conversation_id], limit)

    def search_messages(self, query: str, sender_number: str = "", limit: int = 50) -> list[Message]:
        if not query.strip():
            return []
        clauses = ["body LIKE ? ESCAPE '\\'"]
        params: list[Any] = [store_utils.like_contains(query)]
        if sender_number:
            clauses.append("sender_number = ?")
            params.append(sender_number)
        return self._select_messages(f"WHERE {' AND '.join(clauses)}", params, limit)

    def _select_messages(self, where: str, params: list[Any], limit: int) -> list[Message]:
        if limit <= 0:
            return []
        with self._lock:
            rows = self.conn.execute(
                f"""
                SELECT {_MESSAGE_SELECT} FROM messages
                {where}
                ORDER BY timestamp_ms DESC, message_id
                LIMIT ?
                """,
                (*params, limit),
            ).fetchall()
        return [store_utils.message_from_row(row) for row in rows]

    def media_ref(self, message_id: str) -> MediaRef | None:
        """Internal accessor for downloading a message's attachment.

        This is the only path that returns decryption key material.
        """

        with self._lock:
            row = self.conn.execute(
                """
                SELECT media_id, mime_type, decryption_key FROM messages
                WHERE message_id = ? AND media_id != ''
                ORDER BY timestamp_ms DESC
                LIMIT 1
                """,
                (message_id,),
            ).fetchone()
        if row is None:
            return None
        try:
            key = bytes.fromhex(row["decryption_key"])
        except ValueError:
            key = b""
        return MediaRef(media_id=row["media_id"], mime_type=row["mime_type"], decryption_key=key)

    # contacts

    def upsert_contact(self, contact: Contact) -> Contact:
        if not contact.contact_id:
            raise ValueError("contact_id is required")
        merged = self._upsert(
            "contacts",
            {"contact_id": contact.contact_id},
            {"name": contact.name, "number": contact.number},
            CONTACT_POLICY,
        )
        return store_utils.contact_from_row(merged)

    def get_contact(self, contact_id: str) -> Contact | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM contacts WHERE contact_id = ?", (contact_id,)
            ).fetchone()
        if row is None:
            return None
        return store_utils.contact_from_row(row)

    def list_contacts(self, query: str = "", limit: int = 100) -> list[Contact]:
        if limit <= 0:
            return []
        where = ""
        params: list[Any] = []
        if query:
            pattern = store_utils.like_contains(query)
            where = "WHERE name LIKE ? ESCAPE '\\' OR number LIKE ? ESCAPE '\\'"
            params.extend([pattern, pattern])
        with self._lock:
            rows = self.conn.execute(
                f"SELECT * FROM contacts {where} ORDER BY name COLLATE NOCASE, contact_id LIMIT ?",
                (*params, limit),
            ).fetchall()
        return [store_utils.contact_from_row(row) for row in rows]

    # drafts

    def upsert_draft(self, draft: Draft) -> Draft:
        if not draft.draft_id:
            raise ValueError("draft_id is required")
        merged = self._upsert(
            "drafts",
            {"draft_id": draft.draft_id},
            {
                "conversation_id": draft.conversation_id,
                "body": draft.body,
                "created_at": int(draft.created_at),
            },
            DRAFT_POLICY,
        )
        return store_utils.draft_from_row(merged)

    def get_draft(self, draft_id: str) -> Draft | None:
        with self._lock:
            row = self.conn.execute("SELECT * FROM drafts WHERE draft_id = ?", (draft_id,)).fetchone()
        if row is None:
            return None
        return store_utils.draft_from_row(row)

    def list_drafts(self, conversation_id: str) -> list[Draft]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM drafts WHERE conversation_id = ? ORDER BY created_at DESC, draft_id",
                (conversation_id,),
            ).fetchall()
        return [store_utils.draft_from_row(row) for row in rows]

    def delete_draft(self, draft_id: str) -> bool:
        with self._write() as conn:
            cur = conn.execute("DELETE FROM drafts WHERE draft_id = ?", (draft_id,))
        return bool(cur.rowcount)

    def counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        with self._lock:
            for table in ("conversations", "messages", "contacts", "drafts"):
                row = self.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
                counts[table] = int(row[0]) if row else 0
        return counts
