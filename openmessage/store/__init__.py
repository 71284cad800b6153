from __future__ import annotations

from ._store import MessageStore
from .policy import CONVERSATION_POLICY, MESSAGE_POLICY, Merge, merge_row
from .types import (
    PLACEHOLDER_PREFIX,
    STATUS_OUTGOING_SENDING,
    STATUS_UNKNOWN,
    Contact,
    Conversation,
    Draft,
    MediaRef,
    Message,
    MessageRecord,
    Participant,
    Reaction,
)

__all__ = [
    "CONVERSATION_POLICY",
    "Contact",
    "Conversation",
    "Draft",
    "MESSAGE_POLICY",
    "MediaRef",
    "Merge",
    "Message",
    "MessageRecord",
    "MessageStore",
    "PLACEHOLDER_PREFIX",
    "Participant",
    "Reaction",
    "STATUS_OUTGOING_SENDING",
    "STATUS_UNKNOWN",
    "merge_row",
]
