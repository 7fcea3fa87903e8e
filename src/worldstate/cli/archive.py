"""
CLI: ``worldstate archive``, browse and repair the archive index.
"""

from __future__ import annotations

import asyncio

import typer
from rich.markup import escape

from worldstate.cli.utils import (
    console,
    fail,
    load_settings,
    open_index,
    open_store,
    print_dict,
    print_json,
    print_table,
)
from worldstate.storage.archive_index import DEFAULT_PAGE_SIZE

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_items(
    limit: int = typer.Option(DEFAULT_PAGE_SIZE, "--limit", "-n", help="Page size (1-100)"),
    cursor: str | None = typer.Option(None, "--cursor", "-c", help="Cursor from a previous page"),
    start_date: str | None = typer.Option(None, "--start", help="First day, YYYY-MM-DD"),
    end_date: str | None = typer.Option(None, "--end", help="Last day (inclusive), YYYY-MM-DD"),
    data_dir: str | None = typer.Option(None, "--data-dir"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List archived artifacts, newest first."""
    index = open_index(load_settings(data_dir, database))
    result = index.list_items(limit=limit, cursor=cursor, start_date=start_date, end_date=end_date)
    if result.is_err():
        fail(result.error)
    page = result.value

    if json_out:
        print_json(
            {
                "items": [item.to_dict() for item in page.items],
                "cursor": page.cursor,
                "hasMore": page.has_more,
            }
        )
        return

    print_table(
        [
            {
                "id": item.id,
                "timestamp": item.timestamp,
                "paramsHash": item.params_hash,
                "seed": item.seed,
                "fileSize": item.file_size,
            }
            for item in page.items
        ],
        title=f"Archive ({index.count()} total)",
    )
    if page.has_more:
        console.print(f"\n[dim]More available: --cursor {page.cursor}[/dim]")


@app.command("show")
def show_item(
    item_id: str = typer.Argument(..., help="Artifact ID (filename without .webp)"),
    data_dir: str | None = typer.Option(None, "--data-dir"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one artifact's metadata."""
    index = open_index(load_settings(data_dir, database))
    result = index.get_by_id(item_id)
    if result.is_err():
        fail(result.error)
    metadata = result.value
    if metadata is None:
        console.print(f"[red]Not found: {escape(item_id)}[/red]")
        raise typer.Exit(code=1)

    if json_out:
        print_json(metadata.to_json_dict())
    else:
        print_dict(metadata.to_json_dict(), title=f"Artifact: {item_id}")


@app.command("backfill")
def backfill(
    batch_size: int = typer.Option(100, "--batch-size", help="Objects listed per page"),
    data_dir: str | None = typer.Option(None, "--data-dir"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Index every stored artifact missing from the archive index."""
    from worldstate.ops.backfill import backfill_archive_index

    settings = load_settings(data_dir, database)
    report = asyncio.run(
        backfill_archive_index(open_store(settings), open_index(settings), batch_size=batch_size)
    )

    if json_out:
        print_json(report.to_dict())
    else:
        print_dict(report, title="Backfill")
    if not report.complete:
        raise typer.Exit(code=1)
