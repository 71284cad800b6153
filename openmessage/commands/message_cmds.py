from __future__ import annotations

import datetime as dt
import json
from dataclasses import asdict

import typer
from rich import print
from rich.markup import escape

from ..store.types import Message


def _fmt_ts(ms: int) -> str:
    if ms <= 0:
        return "-"
    return dt.datetime.fromtimestamp(ms / 1000, dt.UTC).strftime("%Y-%m-%d %H:%M")


def _print_messages(messages: list[Message], as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps([asdict(m) for m in messages], ensure_ascii=False, indent=2))
        return
    if not messages:
        print("[dim]No messages[/dim]")
        return
    for msg in messages:
        media = f" [magenta]({msg.mime_type})[/magenta]" if msg.media_id else ""
        print(
            f"[dim]{_fmt_ts(msg.timestamp_ms)}[/dim] "
            f"[bold]{escape(msg.display_sender)}[/bold]: {escape(msg.body)}{media} "
            f"[dim]{msg.message_id}[/dim]"
        )


def conversations_cmd(*, store_from_path, db_path: str | None, limit: int, as_json: bool) -> None:
    store = store_from_path(db_path)
    try:
        convs = store.list_conversations(limit)
    finally:
        store.close()
    if as_json:
        typer.echo(json.dumps([asdict(c) for c in convs], ensure_ascii=False, indent=2))
        return
    if not convs:
        print("[dim]No conversations[/dim]")
        return
    for conv in convs:
        unread = f" [yellow]({conv.unread_count} unread)[/yellow]" if conv.unread_count else ""
        group = " [cyan]group[/cyan]" if conv.is_group else ""
        print(
            f"[bold]{escape(conv.name or conv.conversation_id)}[/bold]{group}{unread} "
            f"[dim]{conv.conversation_id} {_fmt_ts(conv.last_message_ts)}[/dim]"
        )


def messages_cmd(
    *,
    store_from_path,
    db_path: str | None,
    conversation_id: str | None,
    sender: str | None,
    after_ms: int,
    before_ms: int,
    limit: int,
    as_json: bool,
) -> None:
    store = store_from_path(db_path)
    try:
        if conversation_id:
            messages = store.get_messages_by_conversation(conversation_id, limit)
        else:
            messages = store.get_messages(
                sender_number=sender or "", after_ms=after_ms, before_ms=before_ms, limit=limit
            )
    finally:
        store.close()
    _print_messages(messages, as_json)


def search_cmd(
    *,
    store_from_path,
    db_path: str | None,
    query: str,
    sender: str | None,
    limit: int,
    as_json: bool,
) -> None:
    store = store_from_path(db_path)
    try:
        messages = store.search_messages(query, sender_number=sender or "", limit=limit)
    finally:
        store.close()
    _print_messages(messages, as_json)


def contacts_cmd(
    *, store_from_path, db_path: str | None, query: str, limit: int, as_json: bool
) -> None:
    store = store_from_path(db_path)
    try:
        contacts = store.list_contacts(query, limit)
    finally:
        store.close()
    if as_json:
        typer.echo(json.dumps([asdict(c) for c in contacts], ensure_ascii=False, indent=2))
        return
    if not contacts:
        print("[dim]No contacts[/dim]")
        return
    for contact in contacts:
        print(f"[bold]{escape(contact.name or '-')}[/bold] {escape(contact.number)}")


def drafts_cmd(
    *, store_from_path, db_path: str | None, conversation_id: str, as_json: bool
) -> None:
    store = store_from_path(db_path)
    try:
        drafts = store.list_drafts(conversation_id)
    finally:
        store.close()
    if as_json:
        typer.echo(json.dumps([asdict(d) for d in drafts], ensure_ascii=False, indent=2))
        return
    if not drafts:
        print("[dim]No drafts[/dim]")
        return
    for draft in drafts:
        print(f"[dim]{_fmt_ts(draft.created_at)} {draft.draft_id}[/dim] {escape(draft.body)}")
