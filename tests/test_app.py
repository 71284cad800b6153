from __future__ import annotations

from pathlib import Path

from openmessage import events as ev
from openmessage.app import build_pipeline
from openmessage.config import OpenMessageConfig
from openmessage.demo import ME_NUMBER, seed_demo
from openmessage.mirror import NullMirror, SupabaseWriter
from openmessage.store import MessageStore


def test_build_pipeline_without_mirror(tmp_path: Path) -> None:
    pipeline = build_pipeline(OpenMessageConfig(data_dir=str(tmp_path)))
    try:
        assert isinstance(pipeline.mirror.writer, NullMirror)
        assert pipeline.store.db_path == tmp_path / "messages.db"
        pipeline.dispatcher.handle(ev.ConversationUpdated({"conversation_id": "c1"}))
        assert pipeline.store.get_conversation("c1") is not None
    finally:
        pipeline.close()


def test_build_pipeline_with_mirror(tmp_path: Path) -> None:
    config = OpenMessageConfig(
        data_dir=str(tmp_path), supabase_url="https://proj.supabase.co", supabase_key="k"
    )
    pipeline = build_pipeline(config)
    try:
        assert isinstance(pipeline.mirror.writer, SupabaseWriter)
        assert pipeline.mirror.enabled is True
    finally:
        pipeline.close()


def test_demo_pipeline_uses_seeded_temp_db(tmp_path: Path) -> None:
    pipeline = build_pipeline(OpenMessageConfig(data_dir=str(tmp_path), demo=True))
    try:
        assert pipeline.store.db_path.parent != tmp_path
        assert pipeline.store.counts()["conversations"] == 8
    finally:
        pipeline.close()
    assert not (tmp_path / "messages.db").exists()


def test_seed_demo_is_idempotent(store: MessageStore) -> None:
    first = seed_demo(store)
    seed_demo(store)

    assert first == {"conversations": 8, "messages": 27, "contacts": 7, "drafts": 1}
    assert store.counts()["messages"] == 27
    conversations = store.list_conversations()
    assert conversations[0].conversation_id == "conv1"
    group = store.get_conversation("conv3")
    assert group is not None and group.is_group is True
    mine = [m for m in store.get_messages(sender_number=ME_NUMBER) if m.is_from_me]
    assert mine
    assert store.get_draft("draft1") is not None
