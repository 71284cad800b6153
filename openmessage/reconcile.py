from __future__ import annotations

import logging
import sqlite3
from typing import Any

from .mirror.base import MirrorWriter, NullMirror
from .mirror.fanout import MirrorFanout
from .normalize import (
    NormalizedConversation,
    NormalizedMessage,
    normalize_conversation,
    normalize_message,
)
from .store import MessageStore
from .store.types import Contact, Conversation, Message, Participant

logger = logging.getLogger(__name__)

# Values sqlite3 cannot bind (oversized ints) raise OverflowError, not sqlite3.Error.
STORE_ERRORS = (sqlite3.Error, OverflowError)


class Reconciler:
    """Applies normalized protocol records to the primary store.

    Every write is an upsert keyed by stable ids, so replaying an event is
    harmless. A write that fails is logged at error level and dropped; the
    mirror only hears about writes that succeeded, and only after every
    primary write for the record is done.

    A writer that may block or raise is wrapped in ``MirrorFanout`` so it
    always runs off the caller's thread.
    """

    def __init__(self, store: MessageStore, mirror: MirrorWriter | None = None) -> None:
        self.store = store
        if mirror is None:
            mirror = NullMirror()
        elif not isinstance(mirror, (MirrorFanout, NullMirror)):
            mirror = MirrorFanout(mirror)
        self.mirror: MirrorWriter = mirror

    def apply_conversation(self, raw: Any) -> Conversation | None:
        return self.upsert_conversation(normalize_conversation(raw))

    def apply_message(self, raw: Any, *, sweep_placeholders: bool = True) -> Message | None:
        return self.upsert_message(normalize_message(raw), sweep_placeholders=sweep_placeholders)

    def upsert_conversation(
        self, conv: NormalizedConversation | Conversation
    ) -> Conversation | None:
        if isinstance(conv, NormalizedConversation):
            conv = conv.to_conversation()
        if not conv.conversation_id:
            logger.warning("dropping conversation without id")
            return None
        try:
            stored = self.store.upsert_conversation(conv)
        except STORE_ERRORS:
            logger.error(
                "failed to store conversation %s",
                conv.conversation_id,
                exc_info=True,
                extra={"conversation_id": conv.conversation_id},
            )
            return None
        contacts: list[Contact] = []
        for participant in conv.participants:
            contact = self._upsert_participant_contact(participant)
            if contact is not None:
                contacts.append(contact)
        self.mirror.upsert_conversation(stored)
        for contact in contacts:
            self.mirror.upsert_contact(contact)
        logger.debug(
            "stored conversation %s",
            stored.conversation_id,
            extra={"conversation_id": stored.conversation_id},
        )
        return stored

    def _upsert_participant_contact(self, participant: Participant) -> Contact | None:
        if participant.is_me or not participant.number:
            return None
        contact = Contact(
            contact_id=participant.number, name=participant.name, number=participant.number
        )
        try:
            stored = self.store.upsert_contact(contact)
        except STORE_ERRORS:
            logger.error(
                "failed to store contact %s",
                contact.contact_id,
                exc_info=True,
                extra={"contact_id": contact.contact_id},
            )
            return None
        return stored

    def upsert_message(
        self, msg: NormalizedMessage, *, sweep_placeholders: bool = True
    ) -> Message | None:
        """Store one message.

        A confirmed from-me message deletes every placeholder in its
        conversation: confirmations do not echo the temporary id, so a
        conversation-wide sweep is the closest available match. It can also
        remove an unrelated placeholder from a second in-flight send.
        """

        if not msg.message_id:
            logger.warning(
                "dropping message without id",
                extra={"conversation_id": msg.conversation_id},
            )
            return None
        record = msg.to_record()
        try:
            stored = self.store.upsert_message(record)
        except STORE_ERRORS:
            logger.error(
                "failed to store message %s",
                record.message_id,
                exc_info=True,
                extra={"message_id": record.message_id, "conversation_id": record.conversation_id},
            )
            return None
        if sweep_placeholders and record.is_from_me and not record.is_placeholder:
            self.delete_superseded_placeholders(record.conversation_id)
        self.mirror.upsert_message(stored)
        logger.debug(
            "stored message %s",
            stored.message_id,
            extra={"message_id": stored.message_id, "conversation_id": stored.conversation_id},
        )
        return stored

    def delete_superseded_placeholders(self, conversation_id: str) -> int:
        try:
            deleted = self.store.delete_placeholder_messages(conversation_id)
        except STORE_ERRORS:
            logger.error(
                "failed to delete placeholders for %s",
                conversation_id,
                exc_info=True,
                extra={"conversation_id": conversation_id},
            )
            return 0
        if deleted:
            logger.debug(
                "deleted %s placeholder messages in %s",
                deleted,
                conversation_id,
                extra={"conversation_id": conversation_id},
            )
        return deleted
