"""Pure extraction of canonical records from raw protocol payloads.

Raw message payload keys::

    message_id, conversation_id
    timestamp                  microseconds since the epoch
    message_status: {status}
    sender_participant: {full_name, formatted_number, id: {number}, is_me}
    message_info: [{message_content: {content}} | {media_content: {...}}]
        media_content: {media_id, mime_type, decryption_key (bytes or hex)}
    reactions: [{data: {unicode}, participant_ids: [...]}]
    reply_message: {message_id}

Raw conversation payload keys::

    conversation_id, name, is_group_chat
    participants: [participant, ...]
    last_message_timestamp     microseconds since the epoch
    unread                     bool

Every field is optional and may carry the wrong type; bad values degrade to
defaults instead of raising.
"""

from __future__ import annotations

import binascii
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .store.types import (
    STATUS_UNKNOWN,
    Conversation,
    MediaRef,
    MessageRecord,
    Participant,
    Reaction,
)

MAX_SQLITE_INT = 2**63 - 1


@dataclass
class NormalizedMessage:
    message_id: str
    conversation_id: str = ""
    sender_name: str = ""
    sender_number: str = ""
    body: str = ""
    timestamp_ms: int = 0
    status: str = STATUS_UNKNOWN
    is_from_me: bool = False
    media: MediaRef | None = None
    # None means the payload had no reaction field at all.
    reactions: list[Reaction] | None = None
    reply_to_id: str = ""

    def to_record(self) -> MessageRecord:
        record = MessageRecord(
            message_id=self.message_id,
            conversation_id=self.conversation_id,
            sender_name=self.sender_name,
            sender_number=self.sender_number,
            body=self.body,
            timestamp_ms=self.timestamp_ms,
            status=self.status,
            is_from_me=self.is_from_me,
            reactions=self.reactions,
            reply_to_id=self.reply_to_id,
        )
        if self.media is not None:
            record.media_id = self.media.media_id
            record.mime_type = self.media.mime_type
            record.decryption_key = self.media.decryption_key.hex()
        return record


@dataclass
class NormalizedConversation:
    conversation_id: str
    name: str = ""
    is_group: bool = False
    participants: list[Participant] = field(default_factory=list)
    last_message_ts: int = 0
    unread_count: int = 0

    def to_conversation(self) -> Conversation:
        return Conversation(
            conversation_id=self.conversation_id,
            name=self.name,
            is_group=self.is_group,
            participants=list(self.participants),
            last_message_ts=self.last_message_ts,
            unread_count=self.unread_count,
        )


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _bool(value: Any) -> bool:
    return value is True or (isinstance(value, int) and not isinstance(value, bool) and value != 0)


def micros_to_ms(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return 0
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        value = int(value)
    if not isinstance(value, int) or value < 0:
        return 0
    ms = value // 1000
    # Anything past SQLite INTEGER range cannot be stored.
    return ms if ms <= MAX_SQLITE_INT else 0


def _key_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return binascii.unhexlify(value.strip())
        except (binascii.Error, ValueError):
            return b""
    return b""


def normalize_participant(raw: Any) -> Participant:
    data = _mapping(raw)
    number = _str(_mapping(data.get("id")).get("number"))
    if not number:
        number = _str(data.get("formatted_number"))
    return Participant(
        name=_str(data.get("full_name")),
        number=number,
        is_me=_bool(data.get("is_me")),
    )


def extract_body(raw: Mapping[str, Any]) -> str:
    for part in _list(raw.get("message_info")):
        content = _str(_mapping(_mapping(part).get("message_content")).get("content"))
        if content:
            return content
    return ""


def extract_media(raw: Mapping[str, Any]) -> MediaRef | None:
    for part in _list(raw.get("message_info")):
        media = _mapping(part).get("media_content")
        if not isinstance(media, Mapping):
            continue
        return MediaRef(
            media_id=_str(media.get("media_id")),
            mime_type=_str(media.get("mime_type")),
            decryption_key=_key_bytes(media.get("decryption_key")),
        )
    return None


def extract_reactions(raw: Mapping[str, Any]) -> list[Reaction] | None:
    if "reactions" not in raw or raw.get("reactions") is None:
        return None
    counts: dict[str, int] = {}
    for entry in _list(raw.get("reactions")):
        data = _mapping(entry)
        emoji = _str(_mapping(data.get("data")).get("unicode"))
        if not emoji:
            continue
        count = len(_list(data.get("participant_ids"))) or 1
        counts[emoji] = counts.get(emoji, 0) + count
    return [Reaction(emoji=emoji, count=count) for emoji, count in counts.items()]


def normalize_message(raw: Any) -> NormalizedMessage:
    data = _mapping(raw)
    sender = normalize_participant(data.get("sender_participant"))
    status = _str(_mapping(data.get("message_status")).get("status")) or STATUS_UNKNOWN
    return NormalizedMessage(
        message_id=_str(data.get("message_id")),
        conversation_id=_str(data.get("conversation_id")),
        sender_name=sender.name,
        sender_number=sender.number,
        body=extract_body(data),
        timestamp_ms=micros_to_ms(data.get("timestamp")),
        status=status,
        is_from_me=sender.is_me,
        media=extract_media(data),
        reactions=extract_reactions(data),
        reply_to_id=_str(_mapping(data.get("reply_message")).get("message_id")),
    )


def normalize_conversation(raw: Any) -> NormalizedConversation:
    data = _mapping(raw)
    return NormalizedConversation(
        conversation_id=_str(data.get("conversation_id")),
        name=_str(data.get("name")),
        is_group=_bool(data.get("is_group_chat")),
        participants=[normalize_participant(p) for p in _list(data.get("participants"))],
        last_message_ts=micros_to_ms(data.get("last_message_timestamp")),
        unread_count=1 if _bool(data.get("unread")) else 0,
    )
