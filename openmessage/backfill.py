from __future__ import annotations

import logging
from dataclasses import dataclass

from .client import INBOX_FOLDER, MessagingClient
from .errors import TransportError
from .reconcile import Reconciler

logger = logging.getLogger(__name__)

DEEP_PAGE_SIZE = 50


@dataclass
class BackfillStats:
    conversations: int = 0
    messages: int = 0
    failed_conversations: int = 0


def backfill(
    client: MessagingClient,
    reconciler: Reconciler,
    *,
    conversation_limit: int = 100,
    message_limit: int = 20,
) -> BackfillStats:
    """Store inbox conversations and their most recent messages.

    Listing failures raise ``TransportError``. A conversation whose messages
    cannot be fetched is logged and skipped. History never triggers the
    placeholder sweep.
    """

    stats = BackfillStats()
    logger.info("starting backfill")
    convos = client.list_conversations(conversation_limit, INBOX_FOLDER)
    logger.info("fetched %s conversations", len(convos))
    for raw in convos:
        conv = reconciler.apply_conversation(raw)
        if conv is None:
            stats.failed_conversations += 1
            continue
        stats.conversations += 1
        try:
            page = client.fetch_messages(conv.conversation_id, message_limit, None)
        except TransportError as exc:
            stats.failed_conversations += 1
            logger.warning(
                "failed to fetch messages for %s",
                conv.conversation_id,
                exc_info=exc,
                extra={"conversation_id": conv.conversation_id},
            )
            continue
        for raw_msg in page.messages:
            if reconciler.apply_message(raw_msg, sweep_placeholders=False) is not None:
                stats.messages += 1
    logger.info(
        "backfill complete: %s conversations, %s messages",
        stats.conversations,
        stats.messages,
    )
    return stats


def deep_backfill(
    client: MessagingClient,
    reconciler: Reconciler,
    *,
    conversation_limit: int = 100,
    page_size: int = DEEP_PAGE_SIZE,
) -> BackfillStats:
    """Store every message of every inbox conversation, paging with the cursor."""

    stats = BackfillStats()
    logger.info("starting deep backfill")
    try:
        convos = client.list_conversations(conversation_limit, INBOX_FOLDER)
    except TransportError as exc:
        logger.error("deep backfill: list conversations failed", exc_info=exc)
        return stats
    for raw in convos:
        conv = reconciler.apply_conversation(raw)
        if conv is None:
            stats.failed_conversations += 1
            continue
        stats.conversations += 1
        stats.messages += backfill_conversation(
            client, reconciler, conv.conversation_id, page_size=page_size
        )
    logger.info(
        "deep backfill complete: %s conversations, %s messages",
        stats.conversations,
        stats.messages,
    )
    return stats


def backfill_conversation(
    client: MessagingClient,
    reconciler: Reconciler,
    conversation_id: str,
    *,
    page_size: int = DEEP_PAGE_SIZE,
) -> int:
    total = 0
    cursor = None
    while True:
        try:
            page = client.fetch_messages(conversation_id, page_size, cursor)
        except TransportError as exc:
            logger.warning(
                "deep backfill: fetch messages failed for %s",
                conversation_id,
                exc_info=exc,
                extra={"conversation_id": conversation_id},
            )
            break
        if not page.messages:
            break
        for raw_msg in page.messages:
            if reconciler.apply_message(raw_msg, sweep_placeholders=False) is not None:
                total += 1
        if page.cursor is None:
            break
        cursor = page.cursor
        logger.debug(
            "deep backfill: fetched %s messages for %s (%s so far)",
            len(page.messages),
            conversation_id,
            total,
        )
    if total:
        logger.info("deep backfill: %s messages for %s", total, conversation_id)
    return total
