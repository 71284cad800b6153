"""Event values delivered by the protocol client to ``EventDispatcher.handle``.

Payloads are plain mappings in the shapes documented on
``openmessage.normalize``; the client adapter converts its wire objects into
them before dispatch.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

RawPayload = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ClientReady:
    session_id: str = ""
    conversations: list[RawPayload] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class MessageReceived:
    payload: RawPayload
    # True for messages replayed from history after a reconnect.
    is_old: bool = False


@dataclass(frozen=True, slots=True)
class ConversationUpdated:
    payload: RawPayload


@dataclass(frozen=True, slots=True)
class AuthTokenRefreshed:
    pass


@dataclass(frozen=True, slots=True)
class PairSuccessful:
    phone_id: str = ""


@dataclass(frozen=True, slots=True)
class FatalConnectionError:
    error: str = ""


@dataclass(frozen=True, slots=True)
class TransientConnectionError:
    error: str = ""


@dataclass(frozen=True, slots=True)
class ConnectionRecovered:
    pass


@dataclass(frozen=True, slots=True)
class PhoneUnresponsive:
    pass


@dataclass(frozen=True, slots=True)
class PhoneResponsiveAgain:
    pass


Event = (
    ClientReady
    | MessageReceived
    | ConversationUpdated
    | AuthTokenRefreshed
    | PairSuccessful
    | FatalConnectionError
    | TransientConnectionError
    | ConnectionRecovered
    | PhoneUnresponsive
    | PhoneResponsiveAgain
)
