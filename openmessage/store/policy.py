"""Per-field merge rules applied when an upsert hits an existing row.

Every mutable column of every table appears in exactly one table below, so
the full conflict policy can be read (and tested) in one place:

* ``OVERWRITE``: the incoming value always wins. Used where the protocol
  always sends the authoritative current value.
* ``COALESCE``: an incoming empty value never replaces a stored non-empty
  value. Used where partial updates are expected.
* ``MONOTONIC_MAX``: the stored value never decreases.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .types import STATUS_UNKNOWN


class Merge(str, Enum):
    OVERWRITE = "overwrite"
    COALESCE = "coalesce"
    MONOTONIC_MAX = "monotonic_max"


@dataclass(frozen=True, slots=True)
class FieldPolicy:
    merge: Merge
    default: Any = ""
    # Values treated as "no data" by COALESCE.
    empties: tuple[Any, ...] = ("",)


def overwrite(default: Any = "") -> FieldPolicy:
    return FieldPolicy(Merge.OVERWRITE, default, ())


def coalesce(default: Any = "", empties: tuple[Any, ...] | None = None) -> FieldPolicy:
    return FieldPolicy(Merge.COALESCE, default, empties if empties is not None else (default,))


def monotonic_max(default: int = 0) -> FieldPolicy:
    return FieldPolicy(Merge.MONOTONIC_MAX, default, ())


CONVERSATION_POLICY: dict[str, FieldPolicy] = {
    "name": coalesce(""),
    "is_group": overwrite(0),
    "participants": coalesce("[]", ("", "[]")),
    "last_message_ts": monotonic_max(0),
    "unread_count": overwrite(0),
}

MESSAGE_POLICY: dict[str, FieldPolicy] = {
    "sender_name": coalesce(""),
    "sender_number": coalesce(""),
    "body": coalesce(""),
    "timestamp_ms": coalesce(0),
    # A missing status arrives as "unknown" and never replaces a known one.
    "status": coalesce("", ("", STATUS_UNKNOWN)),
    "is_from_me": overwrite(0),
    "media_id": coalesce(""),
    "mime_type": coalesce(""),
    "decryption_key": coalesce(""),
    # "" means the event carried no reaction data; "[]" is an authoritative
    # empty snapshot and does replace what is stored.
    "reactions": coalesce(""),
    "reply_to_id": coalesce(""),
}

CONTACT_POLICY: dict[str, FieldPolicy] = {
    "name": coalesce(""),
    "number": coalesce(""),
}

DRAFT_POLICY: dict[str, FieldPolicy] = {
    "conversation_id": coalesce(""),
    "body": overwrite(""),
    "created_at": coalesce(0),
}


def is_empty(policy: FieldPolicy, value: Any) -> bool:
    return value is None or value in policy.empties


def merge_value(policy: FieldPolicy, current: Any, incoming: Any) -> Any:
    if policy.merge is Merge.OVERWRITE:
        return policy.default if incoming is None else incoming
    if policy.merge is Merge.COALESCE:
        if is_empty(policy, incoming):
            return policy.default if current is None else current
        return incoming
    if incoming is None:
        return policy.default if current is None else current
    if current is None or incoming >= current:
        return incoming
    return current


def merge_row(
    table_policy: Mapping[str, FieldPolicy],
    current: Mapping[str, Any] | None,
    incoming: Mapping[str, Any],
) -> dict[str, Any]:
    """Combine a stored row with an incoming partial row.

    Keys without an entry in ``table_policy`` (the identity columns) are
    copied from ``incoming`` on insert and never changed on update. On
    insert, missing policy columns take their defaults.
    """

    if current is None:
        row = {key: value for key, value in incoming.items() if key not in table_policy}
        for column, policy in table_policy.items():
            value = incoming.get(column)
            row[column] = policy.default if value is None else value
        return row
    merged = dict(current)
    for column, value in incoming.items():
        policy = table_policy.get(column)
        if policy is None:
            continue
        merged[column] = merge_value(policy, current.get(column), value)
    return merged
