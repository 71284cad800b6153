from __future__ import annotations

import logging
import random
import sqlite3
import time
from dataclasses import dataclass
from typing import Any

from .client import MessagingClient, SendResult, UploadedMedia
from .store import MessageStore
from .store.types import PLACEHOLDER_PREFIX, MediaRef

logger = logging.getLogger(__name__)

DEFAULT_MIME = "application/octet-stream"
REACTION_ACTIONS = {"add": "ADD", "remove": "REMOVE", "switch": "SWITCH"}


@dataclass
class SendOutcome:
    success: bool
    status: str
    placeholder_id: str


def new_placeholder_id(rng: random.Random | None = None) -> str:
    value = (rng or random).randrange(10**12)
    return f"{PLACEHOLDER_PREFIX}{value:012d}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def self_participant_id(store: MessageStore, conversation_id: str) -> str:
    conv = store.get_conversation(conversation_id)
    if conv is None:
        return ""
    for participant in conv.participants:
        if participant.is_me:
            return participant.number
    return ""


def build_send_payload(
    conversation_id: str,
    body: str,
    *,
    reply_to_id: str = "",
    participant_id: str = "",
    tmp_id: str | None = None,
) -> dict[str, Any]:
    tmp_id = tmp_id or new_placeholder_id()
    payload: dict[str, Any] = {
        "conversation_id": conversation_id,
        "tmp_id": tmp_id,
        "participant_id": participant_id,
        "message_info": [{"message_content": {"content": body}}],
    }
    if reply_to_id:
        payload["reply"] = {"message_id": reply_to_id}
    return payload


def build_media_payload(
    conversation_id: str,
    media: UploadedMedia,
    *,
    participant_id: str = "",
    tmp_id: str | None = None,
) -> dict[str, Any]:
    tmp_id = tmp_id or new_placeholder_id()
    return {
        "conversation_id": conversation_id,
        "tmp_id": tmp_id,
        "participant_id": participant_id,
        "message_info": [
            {
                "media_content": {
                    "media_id": media.media_id,
                    "mime_type": media.mime_type,
                    "decryption_key": media.decryption_key,
                }
            }
        ],
    }


def build_reaction_payload(message_id: str, emoji: str, action: str = "add") -> dict[str, Any]:
    return {
        "message_id": message_id,
        "emoji": emoji,
        # Unknown actions fall back to ADD.
        "action": REACTION_ACTIONS.get(action.strip().lower(), "ADD"),
    }


def _record_sent(
    store: MessageStore,
    payload: dict[str, Any],
    *,
    body: str = "",
    reply_to_id: str = "",
    media: MediaRef | None = None,
) -> None:
    conversation_id = payload["conversation_id"]
    now = _now_ms()
    try:
        store.insert_placeholder_message(
            payload["tmp_id"],
            conversation_id,
            body=body,
            timestamp_ms=now,
            reply_to_id=reply_to_id,
            media=media,
        )
        store.bump_conversation(conversation_id, now)
    except sqlite3.Error:
        logger.error(
            "failed to store sent message %s",
            payload["tmp_id"],
            exc_info=True,
            extra={"message_id": payload["tmp_id"], "conversation_id": conversation_id},
        )


def _outcome(result: SendResult, payload: dict[str, Any]) -> SendOutcome:
    return SendOutcome(success=result.success, status=result.status, placeholder_id=payload["tmp_id"])


def send_text(
    client: MessagingClient,
    store: MessageStore,
    conversation_id: str,
    body: str,
    *,
    reply_to_id: str = "",
) -> SendOutcome:
    """Send a text message and record an optimistic placeholder on success.

    Transport failures propagate as ``TransportError``.
    """

    if not conversation_id:
        raise ValueError("conversation_id is required")
    if not body:
        raise ValueError("message body is required")
    payload = build_send_payload(
        conversation_id,
        body,
        reply_to_id=reply_to_id,
        participant_id=self_participant_id(store, conversation_id),
    )
    logger.info("sending message", extra={"conversation_id": conversation_id})
    result = client.send_message(payload)
    if result.success:
        _record_sent(store, payload, body=body, reply_to_id=reply_to_id)
    return _outcome(result, payload)


def send_media(
    client: MessagingClient,
    store: MessageStore,
    conversation_id: str,
    data: bytes,
    filename: str,
    mime: str = "",
) -> SendOutcome:
    if not conversation_id:
        raise ValueError("conversation_id is required")
    mime = mime or DEFAULT_MIME
    media = client.upload_media(data, filename, mime)
    payload = build_media_payload(
        conversation_id, media, participant_id=self_participant_id(store, conversation_id)
    )
    logger.info(
        "sending media message",
        extra={"conversation_id": conversation_id, "mime": mime, "size": len(data)},
    )
    result = client.send_message(payload)
    if result.success:
        ref = MediaRef(
            media_id=media.media_id,
            mime_type=media.mime_type or mime,
            decryption_key=media.decryption_key,
        )
        _record_sent(store, payload, media=ref)
    return _outcome(result, payload)


def send_draft(
    client: MessagingClient,
    store: MessageStore,
    draft_id: str,
    body: str | None = None,
) -> SendOutcome:
    """Send a stored draft, optionally with edited text. The draft is deleted on success."""

    draft = store.get_draft(draft_id)
    if draft is None:
        raise LookupError(f"draft not found: {draft_id}")
    text = body if body else draft.body
    if not text:
        raise ValueError("message body is required")
    payload = build_send_payload(
        draft.conversation_id,
        text,
        participant_id=self_participant_id(store, draft.conversation_id),
    )
    logger.info(
        "sending draft message",
        extra={"conversation_id": draft.conversation_id, "draft_id": draft_id},
    )
    result = client.send_message(payload)
    if result.success:
        _record_sent(store, payload, body=text)
        store.delete_draft(draft_id)
    return _outcome(result, payload)


def send_reaction(
    client: MessagingClient, message_id: str, emoji: str, action: str = "add"
) -> SendResult:
    if not message_id or not emoji:
        raise ValueError("message_id and emoji are required")
    return client.send_reaction(build_reaction_payload(message_id, emoji, action))
