from __future__ import annotations

import json

import typer
from rich import print

from ..config import get_config_path, load_config
from ..demo import seed_demo


def init_db_cmd(*, store_from_path, db_path: str | None) -> None:
    """Create the SQLite database (no-op if it already exists)."""

    store = store_from_path(db_path)
    try:
        print(f"Initialized database at {store.db_path}")
    finally:
        store.close()


def seed_demo_cmd(*, store_from_path, db_path: str | None) -> None:
    store = store_from_path(db_path)
    try:
        counts = seed_demo(store)
    finally:
        store.close()
    print(
        f"Seeded {counts['conversations']} conversations, {counts['messages']} messages, "
        f"{counts['contacts']} contacts, {counts['drafts']} draft"
    )


def stats_cmd(*, store_from_path, db_path: str | None) -> None:
    store = store_from_path(db_path)
    try:
        counts = store.counts()
        path = store.db_path
    finally:
        store.close()
    print("[bold]Database[/bold]")
    print(f"- Path: {path}")
    for table, count in counts.items():
        print(f"- {table.capitalize()}: {count}")


def config_show_cmd() -> None:
    try:
        cfg = load_config()
    except ValueError as exc:
        print(f"[red]Invalid config at {get_config_path()}: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    data = cfg.to_dict()
    data["mirror_enabled"] = cfg.mirror_enabled
    data["resolved_db_path"] = str(cfg.resolved_db_path)
    data["resolved_session_path"] = str(cfg.resolved_session_path)
    print(f"[dim]{get_config_path()}[/dim]")
    typer.echo(json.dumps(data, indent=2))
