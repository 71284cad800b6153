from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from ..store.types import Contact, Conversation, Message
from .base import MirrorWriter, NullMirror

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MirrorJob:
    kind: str
    key: str
    call: Callable[[], None]


class MirrorFanout:
    """Runs mirror writes on a small pool of daemon threads.

    Hooks enqueue and return immediately. The queue is bounded; when it is
    full the oldest pending job is dropped to make room, since a mirror only
    needs the newest state of an entity. Failures are logged and discarded.
    Wrapping a ``NullMirror`` makes every hook a no-op and starts no threads.
    """

    def __init__(
        self,
        writer: MirrorWriter | None = None,
        *,
        workers: int = 2,
        queue_size: int = 1000,
    ) -> None:
        self.writer: MirrorWriter = writer if writer is not None else NullMirror()
        self.enabled = not isinstance(self.writer, NullMirror)
        self.workers = max(1, int(workers))
        self.queue_size = max(1, int(queue_size))
        self._queue: deque[MirrorJob] = deque()
        self._cond = threading.Condition()
        self._threads: list[threading.Thread] = []
        self._active = 0
        self._stopping = False
        self.submitted = 0
        self.dropped = 0
        self.failed = 0
        self.completed = 0

    # MirrorWriter hooks

    def upsert_conversation(self, conv: Conversation) -> None:
        self.submit(
            MirrorJob("conversation", conv.conversation_id, lambda: self.writer.upsert_conversation(conv))
        )

    def upsert_message(self, msg: Message) -> None:
        self.submit(MirrorJob("message", msg.message_id, lambda: self.writer.upsert_message(msg)))

    def upsert_contact(self, contact: Contact) -> None:
        self.submit(
            MirrorJob("contact", contact.contact_id, lambda: self.writer.upsert_contact(contact))
        )

    # pool

    def submit(self, job: MirrorJob) -> None:
        if not self.enabled:
            return
        with self._cond:
            if self._stopping:
                return
            self._ensure_started()
            if len(self._queue) >= self.queue_size:
                dropped = self._queue.popleft()
                self.dropped += 1
                logger.warning(
                    "mirror queue full; dropped %s %s",
                    dropped.kind,
                    dropped.key,
                    extra={"mirror_kind": dropped.kind, "mirror_key": dropped.key},
                )
            self._queue.append(job)
            self.submitted += 1
            self._cond.notify()

    def _ensure_started(self) -> None:
        if self._threads:
            return
        for index in range(self.workers):
            thread = threading.Thread(
                target=self._run, name=f"openmessage-mirror-{index}", daemon=True
            )
            self._threads.append(thread)
            thread.start()

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._queue and not self._stopping:
                    self._cond.wait()
                if not self._queue:
                    return
                job = self._queue.popleft()
                self._active += 1
            ok = self._execute(job)
            with self._cond:
                self._active -= 1
                if ok:
                    self.completed += 1
                else:
                    self.failed += 1
                self._cond.notify_all()

    def _execute(self, job: MirrorJob) -> bool:
        try:
            job.call()
        except Exception as exc:
            logger.warning(
                "mirror %s sync failed for %s",
                job.kind,
                job.key,
                exc_info=exc,
                extra={"mirror_kind": job.kind, "mirror_key": job.key},
            )
            return False
        return True

    def pending(self) -> int:
        with self._cond:
            return len(self._queue) + self._active

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every queued job has run. Returns False on timeout."""

        with self._cond:
            return self._cond.wait_for(lambda: not self._queue and self._active == 0, timeout)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Finish queued jobs, then stop the workers."""

        with self._cond:
            self._stopping = True
            self._cond.notify_all()
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)
