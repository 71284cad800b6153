from __future__ import annotations

import typer

from . import __version__
from .app import configure_logging
from .commands.maintenance_cmds import config_show_cmd, init_db_cmd, seed_demo_cmd, stats_cmd
from .commands.message_cmds import (
    contacts_cmd,
    conversations_cmd,
    drafts_cmd,
    messages_cmd,
    search_cmd,
)
from .config import load_config
from .store import MessageStore

app = typer.Typer(help="openmessage: local message store and event pipeline")


def _store(db_path: str | None) -> MessageStore:
    if db_path:
        return MessageStore(db_path)
    return MessageStore(load_config().resolved_db_path)


@app.callback()
def main(
    log_level: str = typer.Option(None, help="Log level (debug, info, warn, error)"),
) -> None:
    try:
        level = log_level or load_config().log_level
    except ValueError:
        level = log_level or "info"
    configure_logging(level)


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)


@app.command()
def init_db(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Create the SQLite database (no-op if it already exists)."""
    init_db_cmd(store_from_path=_store, db_path=db_path)


@app.command()
def seed_demo(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Fill the database with demo conversations."""
    seed_demo_cmd(store_from_path=_store, db_path=db_path)


@app.command()
def stats(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Show row counts."""
    stats_cmd(store_from_path=_store, db_path=db_path)


@app.command()
def config_show() -> None:
    """Print the effective config (secrets redacted)."""
    config_show_cmd()


@app.command()
def conversations(
    limit: int = typer.Option(50, help="Max results"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """List conversations, most recent first."""
    conversations_cmd(store_from_path=_store, db_path=db_path, limit=limit, as_json=as_json)


@app.command()
def messages(
    conversation_id: str = typer.Option(None, "--conversation", help="Conversation id"),
    sender: str = typer.Option(None, help="Sender phone number"),
    after_ms: int = typer.Option(0, help="Only messages at or after this time (ms)"),
    before_ms: int = typer.Option(0, help="Only messages at or before this time (ms)"),
    limit: int = typer.Option(100, help="Max results"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Show messages, newest first."""
    messages_cmd(
        store_from_path=_store,
        db_path=db_path,
        conversation_id=conversation_id,
        sender=sender,
        after_ms=after_ms,
        before_ms=before_ms,
        limit=limit,
        as_json=as_json,
    )


@app.command()
def search(
    query: str,
    sender: str = typer.Option(None, help="Sender phone number"),
    limit: int = typer.Option(50, help="Max results"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Search message text (case-insensitive substring)."""
    search_cmd(
        store_from_path=_store,
        db_path=db_path,
        query=query,
        sender=sender,
        limit=limit,
        as_json=as_json,
    )


@app.command()
def contacts(
    query: str = typer.Argument("", help="Name or number substring"),
    limit: int = typer.Option(100, help="Max results"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """List contacts."""
    contacts_cmd(
        store_from_path=_store, db_path=db_path, query=query, limit=limit, as_json=as_json
    )


@app.command()
def drafts(
    conversation_id: str,
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """List drafts for a conversation."""
    drafts_cmd(
        store_from_path=_store,
        db_path=db_path,
        conversation_id=conversation_id,
        as_json=as_json,
    )


if __name__ == "__main__":
    app()
