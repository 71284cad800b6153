from __future__ import annotations

import pytest

from openmessage.store.policy import (
    CONTACT_POLICY,
    CONVERSATION_POLICY,
    DRAFT_POLICY,
    MESSAGE_POLICY,
    Merge,
    merge_row,
)


def test_every_message_column_has_a_policy() -> None:
    assert set(MESSAGE_POLICY) == {
        "sender_name",
        "sender_number",
        "body",
        "timestamp_ms",
        "status",
        "is_from_me",
        "media_id",
        "mime_type",
        "decryption_key",
        "reactions",
        "reply_to_id",
    }


@pytest.mark.parametrize(
    ("table", "column", "merge"),
    [
        (CONVERSATION_POLICY, "name", Merge.COALESCE),
        (CONVERSATION_POLICY, "participants", Merge.COALESCE),
        (CONVERSATION_POLICY, "is_group", Merge.OVERWRITE),
        (CONVERSATION_POLICY, "unread_count", Merge.OVERWRITE),
        (CONVERSATION_POLICY, "last_message_ts", Merge.MONOTONIC_MAX),
        (MESSAGE_POLICY, "body", Merge.COALESCE),
        (MESSAGE_POLICY, "reactions", Merge.COALESCE),
        (MESSAGE_POLICY, "status", Merge.COALESCE),
        (MESSAGE_POLICY, "is_from_me", Merge.OVERWRITE),
        (CONTACT_POLICY, "name", Merge.COALESCE),
        (DRAFT_POLICY, "body", Merge.OVERWRITE),
        (DRAFT_POLICY, "created_at", Merge.COALESCE),
    ],
)
def test_policy_table(table, column, merge) -> None:
    assert table[column].merge is merge


def test_insert_fills_defaults_and_keeps_identity_columns() -> None:
    row = merge_row(CONVERSATION_POLICY, None, {"conversation_id": "c1", "name": "Alice"})

    assert row == {
        "conversation_id": "c1",
        "name": "Alice",
        "is_group": 0,
        "participants": "[]",
        "last_message_ts": 0,
        "unread_count": 0,
    }


def test_coalesce_keeps_stored_value_when_incoming_is_empty() -> None:
    current = {"conversation_id": "c1", "name": "Alice", "participants": '[{"name":"A"}]'}
    merged = merge_row(CONVERSATION_POLICY, current, {"name": "", "participants": "[]"})

    assert merged["name"] == "Alice"
    assert merged["participants"] == '[{"name":"A"}]'


def test_coalesce_replaces_with_non_empty_value() -> None:
    merged = merge_row(MESSAGE_POLICY, {"body": "old"}, {"body": "new"})

    assert merged["body"] == "new"


def test_monotonic_max_never_moves_backward() -> None:
    current = {"conversation_id": "c1", "last_message_ts": 2000}

    assert merge_row(CONVERSATION_POLICY, current, {"last_message_ts": 1000})["last_message_ts"] == 2000
    assert merge_row(CONVERSATION_POLICY, current, {"last_message_ts": 3000})["last_message_ts"] == 3000


def test_overwrite_takes_incoming_even_when_empty() -> None:
    current = {"status": "delivered", "is_from_me": 1, "unread_count": 3}

    assert merge_row(MESSAGE_POLICY, current, {"is_from_me": 0})["is_from_me"] == 0
    assert merge_row(CONVERSATION_POLICY, current, {"unread_count": 0})["unread_count"] == 0


def test_reactions_empty_snapshot_replaces_but_missing_does_not() -> None:
    current = {"reactions": '[{"emoji":"x","count":1}]'}

    assert merge_row(MESSAGE_POLICY, current, {"reactions": ""})["reactions"] == current["reactions"]
    assert merge_row(MESSAGE_POLICY, current, {"reactions": "[]"})["reactions"] == "[]"


def test_update_ignores_identity_columns() -> None:
    current = {"message_id": "m1", "conversation_id": "c1", "body": "x"}

    merged = merge_row(MESSAGE_POLICY, current, {"message_id": "other", "body": ""})

    assert merged["message_id"] == "m1"
    assert merged["body"] == "x"


@pytest.mark.parametrize("incoming", ["", "unknown", None])
def test_unknown_status_never_replaces_known_status(incoming) -> None:
    current = {"status": "delivered"}

    assert merge_row(MESSAGE_POLICY, current, {"status": incoming})["status"] == "delivered"


def test_known_status_replaces_placeholder_status() -> None:
    current = {"status": "OUTGOING_SENDING"}

    assert merge_row(MESSAGE_POLICY, current, {"status": "delivered"})["status"] == "delivered"
    inserted = merge_row(MESSAGE_POLICY, None, {"message_id": "m1", "status": "unknown"})
    assert inserted["status"] == "unknown"
