from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import events as ev
from .client import MessagingClient
from .reconcile import Reconciler
from .session import save_session

logger = logging.getLogger(__name__)


@dataclass
class ConnectionHealth:
    connected: bool = False
    phone_responsive: bool = True
    last_error: str = ""
    last_event_at: str | None = None
    events_handled: int = 0
    events_dropped: int = 0
    handler_errors: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "connected": self.connected,
            "phone_responsive": self.phone_responsive,
            "last_error": self.last_error,
            "last_event_at": self.last_event_at,
            "events_handled": self.events_handled,
            "events_dropped": self.events_dropped,
            "handler_errors": self.handler_errors,
        }


class EventDispatcher:
    """Single entry point for events from the protocol client.

    The client delivers events for one connection one at a time, in order,
    so ``handle`` holds no lock of its own. Writes from other threads (sends
    from an API) are serialized by the store.

    ``handle`` never raises: unknown events are dropped, and a handler that
    fails is logged so the event stream keeps flowing.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        *,
        client: MessagingClient | None = None,
        session_path: Path | str | None = None,
        on_disconnect: Callable[[], None] | None = None,
    ) -> None:
        self.reconciler = reconciler
        self.client = client
        self.session_path = session_path
        self.on_disconnect = on_disconnect
        self.health = ConnectionHealth()
        self._handlers: dict[type, Callable[[Any], None]] = {
            ev.ClientReady: self._on_client_ready,
            ev.MessageReceived: self._on_message,
            ev.ConversationUpdated: self._on_conversation,
            ev.AuthTokenRefreshed: self._on_auth_refresh,
            ev.PairSuccessful: self._on_pair_successful,
            ev.FatalConnectionError: self._on_fatal_error,
            ev.TransientConnectionError: self._on_transient_error,
            ev.ConnectionRecovered: self._on_recovered,
            ev.PhoneUnresponsive: self._on_phone_unresponsive,
            ev.PhoneResponsiveAgain: self._on_phone_responsive,
        }

    def __call__(self, event: object) -> None:
        self.handle(event)

    def handle(self, event: object) -> None:
        self.health.last_event_at = dt.datetime.now(dt.UTC).isoformat()
        handler = self._handlers.get(type(event))
        if handler is None:
            self.health.events_dropped += 1
            logger.debug("unhandled event %s", type(event).__name__)
            return
        try:
            handler(event)
        except Exception:
            self.health.handler_errors += 1
            logger.exception("event handler failed for %s", type(event).__name__)
            return
        self.health.events_handled += 1

    def _on_client_ready(self, event: ev.ClientReady) -> None:
        self.health.connected = True
        logger.info(
            "client ready with %s conversations",
            len(event.conversations),
            extra={"session_id": event.session_id},
        )
        for raw in event.conversations:
            self.reconciler.apply_conversation(raw)

    def _on_message(self, event: ev.MessageReceived) -> None:
        stored = self.reconciler.apply_message(event.payload)
        if stored is not None:
            logger.debug(
                "handled message %s",
                stored.message_id,
                extra={"message_id": stored.message_id, "is_old": event.is_old},
            )

    def _on_conversation(self, event: ev.ConversationUpdated) -> None:
        self.reconciler.apply_conversation(event.payload)

    def _on_auth_refresh(self, event: ev.AuthTokenRefreshed) -> None:
        if self.client is None or not self.session_path:
            return
        try:
            data = self.client.session_data()
        except Exception as exc:
            logger.error("failed to get session data for save", exc_info=exc)
            return
        try:
            save_session(self.session_path, data)
        except OSError as exc:
            logger.error("failed to save refreshed session", exc_info=exc)
            return
        logger.debug("saved refreshed auth token")

    def _on_pair_successful(self, event: ev.PairSuccessful) -> None:
        logger.info("pairing successful", extra={"phone_id": event.phone_id})

    def _on_fatal_error(self, event: ev.FatalConnectionError) -> None:
        self.health.connected = False
        self.health.last_error = event.error
        logger.error("listen fatal error: %s", event.error)
        if self.on_disconnect is not None:
            self.on_disconnect()

    def _on_transient_error(self, event: ev.TransientConnectionError) -> None:
        self.health.last_error = event.error
        logger.warning("listen temporary error: %s", event.error)

    def _on_recovered(self, event: ev.ConnectionRecovered) -> None:
        self.health.connected = True
        logger.info("listen recovered")

    def _on_phone_unresponsive(self, event: ev.PhoneUnresponsive) -> None:
        self.health.phone_responsive = False
        logger.warning("phone not responding")

    def _on_phone_responsive(self, event: ev.PhoneResponsiveAgain) -> None:
        self.health.phone_responsive = True
        logger.info("phone responding again")
