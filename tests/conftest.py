from __future__ import annotations

from pathlib import Path

import pytest

from openmessage.config import CONFIG_ENV_OVERRIDES
from openmessage.store import MessageStore


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("OPENMESSAGE_CONFIG", str(tmp_path / "config.json"))
    for env_var in CONFIG_ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def store(tmp_path: Path):
    store = MessageStore(tmp_path / "messages.db")
    try:
        yield store
    finally:
        store.close()
