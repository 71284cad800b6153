from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .client import MessagingClient
from .config import OpenMessageConfig, load_config
from .demo import seed_demo
from .dispatch import EventDispatcher
from .mirror import MirrorFanout, SupabaseWriter, build_writer
from .reconcile import Reconciler
from .store import MessageStore

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=LOG_LEVELS.get(level.strip().lower(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@dataclass
class Pipeline:
    config: OpenMessageConfig
    store: MessageStore
    mirror: MirrorFanout
    reconciler: Reconciler
    dispatcher: EventDispatcher

    def close(self) -> None:
        self.mirror.stop()
        if isinstance(self.mirror.writer, SupabaseWriter):
            self.mirror.writer.close()
        self.store.close()


def resolve_db_path(config: OpenMessageConfig) -> Path:
    # Demo mode never touches the real database.
    if config.demo:
        return Path(tempfile.mkdtemp(prefix="openmessage-demo-")) / "demo.db"
    return config.resolved_db_path


def build_pipeline(
    config: OpenMessageConfig | None = None,
    *,
    client: MessagingClient | None = None,
    on_disconnect=None,
) -> Pipeline:
    """Wire store, mirror, reconciler and dispatcher from config."""

    config = config or load_config()
    db_path = resolve_db_path(config)
    store = MessageStore(db_path)
    if config.demo:
        seed_demo(store)
        logger.info("demo mode: seeded fake data at %s", db_path)
    mirror = MirrorFanout(
        build_writer(config),
        workers=config.mirror_workers,
        queue_size=config.mirror_queue_size,
    )
    reconciler = Reconciler(store, mirror)
    dispatcher = EventDispatcher(
        reconciler,
        client=client,
        session_path=config.resolved_session_path,
        on_disconnect=on_disconnect,
    )
    return Pipeline(
        config=config,
        store=store,
        mirror=mirror,
        reconciler=reconciler,
        dispatcher=dispatcher,
    )
