"""
Shared pytest fixtures for worldstate tests.

This module provides:
- A pinned minute bucket and clock
- In-memory object store, sqlite archive index and mock image provider
- A store whose writes can be made to fail per key
- Valid archive metadata factories

Usage:
    Fixtures are auto-discovered by pytest; request them as test arguments.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
import structlog

from worldstate.core.hashing import canonical_filename, minute_seed, params_hash
from worldstate.core.settings import clear_settings_cache
from worldstate.core.sqlite_conn import SqliteConnection
from worldstate.core.timestamps import FixedClock, bucket_to_iso
from worldstate.domain.archive import extract_id_from_filename
from worldstate.domain.mapping import baseline_visual_params
from worldstate.domain.tokens import SYMBOLS
from worldstate.providers.mock import MockImageProvider
from worldstate.storage.archive_index import ArchiveIndex
from worldstate.storage.object_store import InMemoryObjectStore

BUCKET = "2025-11-14T12:34"

SCENARIO_CAPS = {
    "CO2": 1_300_000,
    "ICE": 200_000,
    "FOREST": 900_000,
    "NUKE": 50_000,
    "MACHINE": 1_450_000,
    "PANDEMIC": 700_000,
    "FEAR": 1_100_000,
    "HOPE": 400_000,
}


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_process_state():
    """Fresh settings cache and logging context per test."""
    clear_settings_cache()
    structlog.contextvars.clear_contextvars()
    yield
    clear_settings_cache()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Pipeline collaborators
# =============================================================================


@pytest.fixture
def bucket() -> str:
    return BUCKET


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(BUCKET)


@pytest.fixture
def scenario_caps() -> dict[str, float]:
    return {symbol: float(value) for symbol, value in SCENARIO_CAPS.items()}


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def provider() -> MockImageProvider:
    return MockImageProvider()


@pytest.fixture
def index():
    conn = SqliteConnection(":memory:")
    archive_index = ArchiveIndex(conn)
    archive_index.ensure_schema()
    yield archive_index
    conn.close()


class FailingObjectStore(InMemoryObjectStore):
    """In-memory store whose puts (and optionally deletes) fail on matching keys."""

    def __init__(
        self,
        fail_put: Callable[[str], bool] = lambda key: False,
        fail_delete: Callable[[str], bool] = lambda key: False,
    ) -> None:
        super().__init__()
        self.fail_put = fail_put
        self.fail_delete = fail_delete
        self.put_calls: list[str] = []
        self.delete_calls: list[str] = []

    async def put(self, key: str, data: bytes | str, content_type: str | None = None) -> None:
        self.put_calls.append(key)
        if self.fail_put(key):
            raise OSError(f"simulated put failure: {key}")
        await super().put(key, data, content_type)

    async def delete(self, key: str) -> None:
        self.delete_calls.append(key)
        if self.fail_delete(key):
            raise OSError(f"simulated delete failure: {key}")
        await super().delete(key)


@pytest.fixture
def failing_store_factory() -> Callable[..., FailingObjectStore]:
    return FailingObjectStore


# =============================================================================
# Archive metadata
# =============================================================================


def build_metadata(minute_bucket: str = BUCKET, **overrides: Any) -> dict[str, Any]:
    """A valid camelCase metadata record for ``minute_bucket``."""
    visual_params = baseline_visual_params()
    vp_hash = params_hash(visual_params)
    seed = minute_seed(minute_bucket, vp_hash)
    filename = canonical_filename(minute_bucket, vp_hash, seed)
    record = {
        "id": extract_id_from_filename(filename),
        "timestamp": bucket_to_iso(minute_bucket),
        "minuteBucket": minute_bucket,
        "paramsHash": vp_hash,
        "seed": seed,
        "mcRounded": {symbol: 0.0 for symbol in SYMBOLS},
        "visualParams": visual_params,
        "imageUrl": "",
        "fileSize": 0,
        "prompt": "a prompt",
        "negative": "a negative prompt",
    }
    record.update(overrides)
    return record


@pytest.fixture
def metadata_factory() -> Callable[..., dict[str, Any]]:
    return build_metadata
