"""
Root Typer application for the worldstate CLI.

``worldstate tick`` runs one pipeline tick; a scheduler (cron, systemd
timer) invokes it once per minute. ``worldstate archive`` browses and
repairs the archive index.
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime
from importlib.metadata import PackageNotFoundError, version as pkg_version

import httpx
import typer
from typer import Typer

from worldstate.cli.archive import app as archive_app
from worldstate.cli.utils import fail, load_settings, open_index, open_store, print_dict, print_json
from worldstate.core.errors import ValidationError
from worldstate.core.logging import configure_logging
from worldstate.core.result import Result
from worldstate.core.settings import WorldStateSettings, get_settings
from worldstate.core.timestamps import BUCKET_FORMAT, FixedClock
from worldstate.ops.generation import GenerationService, MinuteEvaluation
from worldstate.ops.prompt import PromptComposer
from worldstate.providers import resolve_provider
from worldstate.sources.market_cap import MarketCapClient, MarketDataSource, StaticMarketData
from worldstate.storage.archive_storage import ArchiveStorage
from worldstate.storage.state import StateStore

app = Typer(
    name="worldstate",
    help="worldstate: market caps in, one deterministic image per change out.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("worldstate")
        except PackageNotFoundError:
            v = "unknown"
        typer.echo(f"worldstate {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override WORLDSTATE_LOG_LEVEL."),
) -> None:
    """worldstate CLI: run ticks and browse the archive."""
    settings = get_settings()
    configure_logging(
        level=log_level or settings.log_level,
        json_format=settings.log_json,
        stream=sys.stderr,
    )


# ── tick ─────────────────────────────────────────────────────────────────


def _parse_caps(raw: str) -> dict[str, float]:
    try:
        caps = json.loads(raw)
    except ValueError as e:
        raise ValidationError(f"--caps is not valid JSON: {e}", field="caps", value=raw, cause=e) from e
    if not isinstance(caps, dict) or not all(
        isinstance(v, (int, float)) and not isinstance(v, bool) for v in caps.values()
    ):
        raise ValidationError("--caps must be a JSON object of numbers", field="caps", value=raw)
    return {str(k): float(v) for k, v in caps.items()}


def _parse_bucket(raw: str) -> str:
    try:
        datetime.strptime(raw, BUCKET_FORMAT)
    except ValueError as e:
        raise ValidationError(
            f"--bucket must look like 2025-11-14T12:34: {raw}", field="bucket", value=raw, cause=e
        ) from e
    return raw


async def run_tick(
    settings: WorldStateSettings,
    *,
    caps: dict[str, float] | None = None,
    bucket: str | None = None,
) -> Result[MinuteEvaluation]:
    """Wire one tick from settings and evaluate it."""
    store = open_store(settings)
    async with httpx.AsyncClient() as http:
        market: MarketDataSource
        if caps is not None:
            market = StaticMarketData(caps)
        else:
            market = MarketCapClient(http, base_url=settings.quote_base_url, timeout=settings.quote_timeout)
        service = GenerationService(
            market=market,
            composer=PromptComposer(FixedClock(bucket) if bucket else None),
            provider=resolve_provider(
                settings.image_provider,
                http=http,
                url=settings.image_provider_url,
                timeout=settings.image_timeout,
            ),
            archive_storage=ArchiveStorage(store, public_prefix=settings.public_path_prefix),
            state=StateStore(store),
            archive_index=open_index(settings),
            generation_rate=settings.generation_rate,
            image_model=settings.image_model,
        )
        return await service.evaluate_minute()


@app.command()
def tick(
    caps: str | None = typer.Option(
        None, "--caps", help='Replay a fixed cap map instead of fetching, e.g. \'{"CO2": 1.5e9}\''
    ),
    bucket: str | None = typer.Option(None, "--bucket", help="Pin the minute bucket (YYYY-MM-DDTHH:MM)"),
    data_dir: str | None = typer.Option(None, "--data-dir"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run one generation tick."""
    settings = load_settings(data_dir, database)
    try:
        cap_map = _parse_caps(caps) if caps is not None else None
        if bucket is not None:
            bucket = _parse_bucket(bucket)
        result = asyncio.run(run_tick(settings, caps=cap_map, bucket=bucket))
    except (ValidationError, ValueError) as e:
        fail(e)

    if result.is_err():
        fail(result.error)
    evaluation = result.value
    if json_out:
        print_json(evaluation.to_dict())
    else:
        print_dict(
            {
                "status": evaluation.status,
                "hash": evaluation.hash,
                "imageUrl": evaluation.image_url or "-",
                "seed": evaluation.seed or "-",
            },
            title="Tick",
        )


# ── Sub-command registration ─────────────────────────────────────────────

app.add_typer(archive_app, name="archive", help="Archive index browsing and backfill.")
