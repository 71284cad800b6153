"""Calls the pipeline makes into the messaging protocol client.

The client itself (pairing, transport encryption, long-polling) lives
outside this package. Adapters raise ``TransportError`` for any request
failure; nothing here retries.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

INBOX_FOLDER = "INBOX"


@dataclass
class MessagePage:
    messages: list[Mapping[str, Any]] = field(default_factory=list)
    # Opaque; None when there are no older messages.
    cursor: Any = None


@dataclass
class SendResult:
    success: bool
    status: str = ""


@dataclass(frozen=True, slots=True)
class UploadedMedia:
    media_id: str
    mime_type: str = ""
    decryption_key: bytes = field(default=b"", repr=False)


class MessagingClient(Protocol):
    def fetch_messages(
        self, conversation_id: str, limit: int, cursor: Any = None
    ) -> MessagePage: ...

    def list_conversations(
        self, limit: int, folder: str = INBOX_FOLDER
    ) -> list[Mapping[str, Any]]: ...

    def send_message(self, payload: dict[str, Any]) -> SendResult: ...

    def send_reaction(self, payload: dict[str, Any]) -> SendResult: ...

    def download_media(self, media_id: str, key: bytes) -> bytes: ...

    def upload_media(self, data: bytes, filename: str, mime: str) -> UploadedMedia: ...

    def session_data(self) -> dict[str, Any]: ...
