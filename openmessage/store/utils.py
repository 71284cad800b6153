from __future__ import annotations

import sqlite3
from typing import Any

from .. import db
from .types import (
    PLACEHOLDER_PREFIX,
    Contact,
    Conversation,
    Draft,
    Message,
    MessageRecord,
    Participant,
    Reaction,
)

# decryption_key is never part of a read projection.
MESSAGE_READ_COLUMNS = (
    "message_id",
    "conversation_id",
    "sender_name",
    "sender_number",
    "body",
    "timestamp_ms",
    "status",
    "is_from_me",
    "media_id",
    "mime_type",
    "reactions",
    "reply_to_id",
)


def is_placeholder_id(message_id: str) -> bool:
    return message_id.startswith(PLACEHOLDER_PREFIX)


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def like_contains(value: str) -> str:
    return f"%{escape_like(value)}%"


def participants_to_json(participants: list[Participant]) -> str:
    return db.to_json([p.to_dict() for p in participants])


def participants_from_json(text: str | None) -> list[Participant]:
    participants: list[Participant] = []
    for item in db.from_json_list(text):
        if not isinstance(item, dict):
            continue
        participants.append(
            Participant(
                name=str(item.get("name") or ""),
                number=str(item.get("number") or ""),
                is_me=bool(item.get("is_me")),
            )
        )
    return participants


def reactions_to_json(reactions: list[Reaction] | None) -> str:
    if reactions is None:
        return ""
    return db.to_json([r.to_dict() for r in reactions])


def reactions_from_json(text: str | None) -> list[Reaction]:
    reactions: list[Reaction] = []
    for item in db.from_json_list(text):
        if not isinstance(item, dict):
            continue
        emoji = item.get("emoji")
        if not isinstance(emoji, str) or not emoji:
            continue
        try:
            count = int(item.get("count") or 0)
        except (TypeError, ValueError):
            count = 0
        reactions.append(Reaction(emoji=emoji, count=count))
    return reactions


def conversation_to_row(conv: Conversation) -> dict[str, Any]:
    return {
        "conversation_id": conv.conversation_id,
        "name": conv.name,
        "is_group": 1 if conv.is_group else 0,
        "participants": participants_to_json(conv.participants),
        "last_message_ts": int(conv.last_message_ts),
        "unread_count": int(conv.unread_count),
    }


def conversation_from_row(row: sqlite3.Row | dict[str, Any]) -> Conversation:
    return Conversation(
        conversation_id=row["conversation_id"],
        name=row["name"],
        is_group=bool(row["is_group"]),
        participants=participants_from_json(row["participants"]),
        last_message_ts=int(row["last_message_ts"]),
        unread_count=int(row["unread_count"]),
    )


def message_to_row(record: MessageRecord) -> dict[str, Any]:
    return {
        "message_id": record.message_id,
        "conversation_id": record.conversation_id,
        "sender_name": record.sender_name,
        "sender_number": record.sender_number,
        "body": record.body,
        "timestamp_ms": int(record.timestamp_ms),
        "status": record.status,
        "is_from_me": 1 if record.is_from_me else 0,
        "media_id": record.media_id,
        "mime_type": record.mime_type,
        "decryption_key": record.decryption_key,
        "reactions": reactions_to_json(record.reactions),
        "reply_to_id": record.reply_to_id,
    }


def message_from_row(row: sqlite3.Row | dict[str, Any]) -> Message:
    return Message(
        message_id=row["message_id"],
        conversation_id=row["conversation_id"],
        sender_name=row["sender_name"],
        sender_number=row["sender_number"],
        body=row["body"],
        timestamp_ms=int(row["timestamp_ms"]),
        status=row["status"],
        is_from_me=bool(row["is_from_me"]),
        media_id=row["media_id"],
        mime_type=row["mime_type"],
        reactions=reactions_from_json(row["reactions"]),
        reply_to_id=row["reply_to_id"],
    )


def contact_from_row(row: sqlite3.Row | dict[str, Any]) -> Contact:
    return Contact(contact_id=row["contact_id"], name=row["name"], number=row["number"])


def draft_from_row(row: sqlite3.Row | dict[str, Any]) -> Draft:
    return Draft(
        draft_id=row["draft_id"],
        conversation_id=row["conversation_id"],
        body=row["body"],
        created_at=int(row["created_at"]),
    )
