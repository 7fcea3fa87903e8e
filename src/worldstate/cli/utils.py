"""
CLI utility helpers: settings overrides, storage wiring and output formatting.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from worldstate.core.errors import WorldStateError
from worldstate.core.settings import WorldStateSettings, get_settings
from worldstate.core.sqlite_conn import SqliteConnection
from worldstate.storage.archive_index import ArchiveIndex
from worldstate.storage.object_store import LocalObjectStore

console = Console()
err_console = Console(stderr=True)


# ── Settings / storage helpers ───────────────────────────────────────────


def load_settings(data_dir: str | None = None, database: str | None = None) -> WorldStateSettings:
    """Cached settings with command-line overrides applied."""
    settings = get_settings()
    update: dict[str, Any] = {}
    if data_dir:
        update["data_dir"] = Path(data_dir)
    if database:
        update["database_path"] = Path(database)
    return settings.model_copy(update=update) if update else settings


def open_index(settings: WorldStateSettings) -> ArchiveIndex:
    """Archive index on the configured SQLite file, schema applied."""
    index = ArchiveIndex(SqliteConnection(settings.resolved_database_path))
    index.ensure_schema()
    return index


def open_store(settings: WorldStateSettings) -> LocalObjectStore:
    return LocalObjectStore(settings.resolved_object_store_dir)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def fail(error: Exception) -> NoReturn:
    """Print a typed error and exit with status 1."""
    if isinstance(error, WorldStateError):
        err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}")
    else:
        err_console.print(f"[bold red]Error[/bold red]: {escape(str(error))}")
    raise typer.Exit(code=1)


def print_json(payload: Any) -> None:
    # plain echo: rich would soft-wrap long prompt strings
    typer.echo(json.dumps(payload, indent=2, default=str))


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of flat dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)


def print_dict(data: Any, *, title: str = "") -> None:
    """Render a single record as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in _to_dict(data).items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
