from __future__ import annotations

import threading
from dataclasses import asdict
from pathlib import Path

import pytest

from openmessage.store import (
    STATUS_OUTGOING_SENDING,
    Contact,
    Conversation,
    Draft,
    MediaRef,
    MessageRecord,
    MessageStore,
    Participant,
    Reaction,
)


def _msg(message_id: str, conversation_id: str = "c1", **kwargs) -> MessageRecord:
    return MessageRecord(message_id=message_id, conversation_id=conversation_id, **kwargs)


def test_conversation_round_trip(store: MessageStore) -> None:
    store.upsert_conversation(
        Conversation(
            conversation_id="c1",
            name="Hiking",
            is_group=True,
            participants=[
                Participant("Alice", "+15551111111"),
                Participant("Me", "+15550000000", is_me=True),
            ],
            last_message_ts=1000,
            unread_count=1,
        )
    )

    conv = store.get_conversation("c1")

    assert conv is not None
    assert conv.name == "Hiking"
    assert conv.is_group is True
    assert [p.name for p in conv.participants] == ["Alice", "Me"]
    assert conv.participants[1].is_me is True
    assert store.get_conversation("missing") is None


def test_participants_json_omits_is_me_when_false(store: MessageStore) -> None:
    store.upsert_conversation(
        Conversation(conversation_id="c1", participants=[Participant("Alice", "+1555")])
    )

    raw = store.conn.execute("SELECT participants FROM conversations").fetchone()[0]

    assert raw == '[{"name":"Alice","number":"+1555"}]'


def test_upsert_conversation_is_idempotent(store: MessageStore) -> None:
    conv = Conversation(conversation_id="c1", name="Alice", last_message_ts=5000, unread_count=1)
    store.upsert_conversation(conv)
    first = store.get_conversation("c1")
    for _ in range(3):
        store.upsert_conversation(conv)

    assert store.get_conversation("c1") == first
    assert store.counts()["conversations"] == 1


def test_last_message_ts_never_moves_backward(store: MessageStore) -> None:
    store.upsert_conversation(Conversation(conversation_id="c1", last_message_ts=2000))
    store.upsert_conversation(Conversation(conversation_id="c1", last_message_ts=1000))

    conv = store.get_conversation("c1")

    assert conv is not None
    assert conv.last_message_ts == 2000


def test_empty_name_does_not_erase_stored_name(store: MessageStore) -> None:
    store.upsert_conversation(Conversation(conversation_id="c1", name="Alice"))
    store.upsert_conversation(Conversation(conversation_id="c1", name="", unread_count=4))

    conv = store.get_conversation("c1")

    assert conv is not None
    assert conv.name == "Alice"
    assert conv.unread_count == 4


def test_list_conversations_orders_by_recency(store: MessageStore) -> None:
    store.upsert_conversation(Conversation(conversation_id="old", last_message_ts=1000))
    store.upsert_conversation(Conversation(conversation_id="new", last_message_ts=3000))
    store.upsert_conversation(Conversation(conversation_id="mid", last_message_ts=2000))

    assert [c.conversation_id for c in store.list_conversations()] == ["new", "mid", "old"]
    assert [c.conversation_id for c in store.list_conversations(limit=2)] == ["new", "mid"]
    assert store.list_conversations(limit=0) == []


def test_bump_conversation(store: MessageStore) -> None:
    store.upsert_conversation(Conversation(conversation_id="c1", last_message_ts=2000))

    assert store.bump_conversation("c1", 5000) is True
    assert store.bump_conversation("c1", 1000) is True
    assert store.bump_conversation("missing", 5000) is False

    conv = store.get_conversation("c1")
    assert conv is not None
    assert conv.last_message_ts == 5000
    assert store.get_conversation("missing") is None


def test_message_round_trip(store: MessageStore) -> None:
    store.upsert_message(
        _msg(
            "m1",
            sender_name="Alice",
            sender_number="+1555",
            body="hello",
            timestamp_ms=1000,
            status="delivered",
            reactions=[Reaction("👍", 2)],
            reply_to_id="m0",
        )
    )

    msg = store.get_message_by_id("m1")

    assert msg is not None
    assert msg.body == "hello"
    assert msg.status == "delivered"
    assert msg.reactions == [Reaction("👍", 2)]
    assert msg.reply_to_id == "m0"
    assert msg.display_sender == "Alice"


def test_message_upsert_is_idempotent(store: MessageStore) -> None:
    record = _msg("m1", body="hi", timestamp_ms=1000, status="delivered")
    for _ in range(4):
        store.upsert_message(record)

    assert store.counts()["messages"] == 1
    assert store.get_messages_by_conversation("c1")[0].body == "hi"


def test_message_coalesce_and_overwrite(store: MessageStore) -> None:
    store.upsert_message(
        _msg("m1", sender_name="Alice", body="hello", timestamp_ms=1000, status="sending")
    )
    store.upsert_message(_msg("m1", body="", timestamp_ms=0, status="delivered"))

    msg = store.get_message_by_id("m1")

    assert msg is not None
    assert msg.body == "hello"
    assert msg.sender_name == "Alice"
    assert msg.timestamp_ms == 1000
    assert msg.status == "delivered"


def test_reactions_missing_keeps_snapshot_and_empty_list_clears(store: MessageStore) -> None:
    store.upsert_message(_msg("m1", body="hi", reactions=[Reaction("❤️", 1)]))
    store.upsert_message(_msg("m1", body="hi", reactions=None))

    msg = store.get_message_by_id("m1")
    assert msg is not None
    assert msg.reactions == [Reaction("❤️", 1)]

    store.upsert_message(_msg("m1", body="hi", reactions=[]))

    msg = store.get_message_by_id("m1")
    assert msg is not None
    assert msg.reactions == []


def test_same_message_id_in_two_conversations(store: MessageStore) -> None:
    store.upsert_message(_msg("m1", "c1", body="one"))
    store.upsert_message(_msg("m1", "c2", body="two"))

    assert store.counts()["messages"] == 2


def test_decryption_key_is_not_exposed_by_reads(store: MessageStore) -> None:
    store.upsert_message(
        _msg("m1", media_id="media-1", mime_type="image/png", decryption_key=b"\x01\x02".hex())
    )

    msg = store.get_message_by_id("m1")

    assert msg is not None
    assert msg.media_id == "media-1"
    assert "decryption_key" not in asdict(msg)
    assert store.media_ref("m1") == MediaRef("media-1", "image/png", b"\x01\x02")
    assert store.media_ref("missing") is None


def test_media_key_survives_an_update_without_media(store: MessageStore) -> None:
    store.upsert_message(
        _msg("m1", media_id="media-1", mime_type="image/png", decryption_key="aabb")
    )
    store.upsert_message(_msg("m1", status="delivered"))

    ref = store.media_ref("m1")

    assert ref is not None
    assert ref.decryption_key == bytes.fromhex("aabb")


def test_get_message_by_id_empty(store: MessageStore) -> None:
    assert store.get_message_by_id("") is None
    assert store.get_message_by_id("nope") is None


def test_get_messages_by_sender_newest_first(store: MessageStore) -> None:
    store.upsert_message(_msg("m1", sender_number="+1555", body="a", timestamp_ms=1000))
    store.upsert_message(_msg("m2", sender_number="+1666", body="b", timestamp_ms=2000))
    store.upsert_message(_msg("m3", sender_number="+1555", body="c", timestamp_ms=3000))

    messages = store.get_messages(sender_number="+1555")

    assert [m.message_id for m in messages] == ["m3", "m1"]


def test_get_messages_time_range_is_inclusive(store: MessageStore) -> None:
    for i, ts in enumerate([1000, 2000, 3000, 4000, 5000]):
        store.upsert_message(_msg(f"m{i}", body="x", timestamp_ms=ts))

    messages = store.get_messages(after_ms=2000, before_ms=4000)

    assert [m.timestamp_ms for m in messages] == [4000, 3000, 2000]
    assert len(store.get_messages(limit=2)) == 2


def test_search_is_case_insensitive_and_escapes_wildcards(store: MessageStore) -> None:
    store.upsert_message(_msg("m1", body="Meet at the Cafe", timestamp_ms=1000))
    store.upsert_message(_msg("m2", body="It costs $100", timestamp_ms=2000))
    store.upsert_message(_msg("m3", body="50% off today", timestamp_ms=3000))
    store.upsert_message(_msg("m4", body="500 reasons", timestamp_ms=4000))
    store.upsert_message(_msg("m5", body="snake_case", timestamp_ms=5000))
    store.upsert_message(_msg("m6", body="snakeXcase", timestamp_ms=6000))

    assert [m.message_id for m in store.search_messages("cafe")] == ["m1"]
    assert [m.message_id for m in store.search_messages("$100")] == ["m2"]
    assert [m.message_id for m in store.search_messages("50%")] == ["m3"]
    assert [m.message_id for m in store.search_messages("e_c")] == ["m5"]
    assert store.search_messages("   ") == []


def test_search_filters_by_sender(store: MessageStore) -> None:
    store.upsert_message(_msg("m1", sender_number="+1555", body="lunch?", timestamp_ms=1000))
    store.upsert_message(_msg("m2", sender_number="+1666", body="lunch!", timestamp_ms=2000))

    assert [m.message_id for m in store.search_messages("lunch", sender_number="+1666")] == ["m2"]


def test_placeholder_insert_and_sweep(store: MessageStore) -> None:
    store.insert_placeholder_message("tmp_aaa", "c1", body="one", timestamp_ms=1000)
    store.insert_placeholder_message("tmp_bbb", "c1", body="two", timestamp_ms=2000)
    store.insert_placeholder_message("tmp_ccc", "c2", body="other", timestamp_ms=3000)
    store.upsert_message(_msg("real-1", "c1", body="one", is_from_me=True))
    store.upsert_message(_msg("tmpfile", "c1", body="not a placeholder"))

    placeholder = store.get_message_by_id("tmp_aaa")
    assert placeholder is not None
    assert placeholder.status == STATUS_OUTGOING_SENDING
    assert placeholder.is_from_me is True
    assert placeholder.is_placeholder is True

    deleted = store.delete_placeholder_messages("c1")

    assert deleted == 2
    assert store.get_message_by_id("tmp_aaa") is None
    assert store.get_message_by_id("tmp_bbb") is None
    assert store.get_message_by_id("real-1") is not None
    assert store.get_message_by_id("tmpfile") is not None
    assert store.get_message_by_id("tmp_ccc") is not None


def test_placeholder_requires_prefix(store: MessageStore) -> None:
    with pytest.raises(ValueError):
        store.insert_placeholder_message("real-1", "c1", body="x", timestamp_ms=1)


def test_contacts_query_matches_name_or_number(store: MessageStore) -> None:
    store.upsert_contact(Contact("c1", "Alice Smith", "+15551234567"))
    store.upsert_contact(Contact("c2", "Bob Jones", "+15559876543"))

    assert [c.name for c in store.list_contacts()] == ["Alice Smith", "Bob Jones"]
    assert [c.name for c in store.list_contacts("alice")] == ["Alice Smith"]
    assert [c.name for c in store.list_contacts("9876")] == ["Bob Jones"]
    assert store.list_contacts("nobody") == []


def test_contact_name_is_coalesced(store: MessageStore) -> None:
    store.upsert_contact(Contact("+1555", "Alice", "+1555"))
    store.upsert_contact(Contact("+1555", "", "+1555"))

    contact = store.get_contact("+1555")

    assert contact is not None
    assert contact.name == "Alice"


def test_drafts(store: MessageStore) -> None:
    store.upsert_draft(Draft("d1", "c1", "first", created_at=1000))
    store.upsert_draft(Draft("d2", "c1", "second", created_at=2000))
    store.upsert_draft(Draft("d1", "c1", "edited"))

    drafts = store.list_drafts("c1")

    assert [d.draft_id for d in drafts] == ["d2", "d1"]
    d1 = store.get_draft("d1")
    assert d1 is not None
    assert d1.body == "edited"
    assert d1.created_at == 1000
    assert store.delete_draft("d1") is True
    assert store.delete_draft("d1") is False
    assert store.get_draft("d1") is None


def test_concurrent_writers_do_not_lose_rows(tmp_path: Path) -> None:
    store = MessageStore(tmp_path / "messages.db")
    errors: list[BaseException] = []

    def _writer(prefix: str) -> None:
        try:
            for i in range(50):
                store.upsert_message(_msg(f"{prefix}-{i}", body="x", timestamp_ms=i))
                store.upsert_conversation(Conversation(conversation_id="c1", last_message_ts=i))
        except BaseException as exc:  # pragma: no cover
            errors.append(exc)

    threads = [threading.Thread(target=_writer, args=(name,)) for name in ("a", "b", "c")]
    try:
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        counts = store.counts()
    finally:
        store.close()

    assert errors == []
    assert counts["messages"] == 150
    assert counts["conversations"] == 1


def test_in_memory_store() -> None:
    store = MessageStore(":memory:")
    try:
        store.upsert_conversation(Conversation(conversation_id="c1"))
        assert store.counts()["conversations"] == 1
    finally:
        store.close()
