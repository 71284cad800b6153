from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PLACEHOLDER_PREFIX = "tmp_"
STATUS_UNKNOWN = "unknown"
STATUS_OUTGOING_SENDING = "OUTGOING_SENDING"


@dataclass
class Participant:
    name: str = ""
    number: str = ""
    is_me: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "number": self.number}
        if self.is_me:
            data["is_me"] = True
        return data


@dataclass
class Conversation:
    conversation_id: str
    name: str = ""
    is_group: bool = False
    participants: list[Participant] = field(default_factory=list)
    last_message_ts: int = 0
    unread_count: int = 0


@dataclass(frozen=True, slots=True)
class Reaction:
    emoji: str
    count: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"emoji": self.emoji, "count": self.count}


@dataclass(frozen=True, slots=True)
class MediaRef:
    media_id: str
    mime_type: str = ""
    decryption_key: bytes = field(default=b"", repr=False)


@dataclass
class Message:
    """A stored message as returned by read accessors.

    Media decryption keys are deliberately absent; use
    ``MessageStore.media_ref`` when the raw bytes are needed to fetch media.
    """

    message_id: str
    conversation_id: str = ""
    sender_name: str = ""
    sender_number: str = ""
    body: str = ""
    timestamp_ms: int = 0
    status: str = ""
    is_from_me: bool = False
    media_id: str = ""
    mime_type: str = ""
    reactions: list[Reaction] = field(default_factory=list)
    reply_to_id: str = ""

    @property
    def is_placeholder(self) -> bool:
        return self.message_id.startswith(PLACEHOLDER_PREFIX)

    @property
    def display_sender(self) -> str:
        if self.is_from_me:
            return "Me"
        return self.sender_name or self.sender_number or "Unknown"


@dataclass
class MessageRecord:
    """Write-side message row.

    ``reactions`` is ``None`` when the source carried no reaction data, which
    leaves any stored reactions untouched. An empty list clears them.
    """

    message_id: str
    conversation_id: str = ""
    sender_name: str = ""
    sender_number: str = ""
    body: str = ""
    timestamp_ms: int = 0
    status: str = ""
    is_from_me: bool = False
    media_id: str = ""
    mime_type: str = ""
    decryption_key: str = field(default="", repr=False)
    reactions: list[Reaction] | None = None
    reply_to_id: str = ""

    @property
    def is_placeholder(self) -> bool:
        return self.message_id.startswith(PLACEHOLDER_PREFIX)


@dataclass
class Contact:
    contact_id: str
    name: str = ""
    number: str = ""


@dataclass
class Draft:
    draft_id: str
    conversation_id: str
    body: str = ""
    created_at: int = 0
