from __future__ import annotations

from typing import Protocol

from ..store.types import Contact, Conversation, Message


class MirrorWriter(Protocol):
    """Secondary store that receives copies of accepted primary writes.

    Implementations may block and may raise; callers run them off the
    event path through ``MirrorFanout``.
    """

    def upsert_conversation(self, conv: Conversation) -> None: ...

    def upsert_message(self, msg: Message) -> None: ...

    def upsert_contact(self, contact: Contact) -> None: ...


class NullMirror:
    """Disabled mirror. Every hook does nothing."""

    enabled = False

    def upsert_conversation(self, conv: Conversation) -> None:
        return None

    def upsert_message(self, msg: Message) -> None:
        return None

    def upsert_contact(self, contact: Contact) -> None:
        return None
