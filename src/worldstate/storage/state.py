"""
Published world state and per-symbol auxiliary state.

``state/global.json`` is the single record that says what is currently
published: the rounded-map hash it was generated from, when, and the image.
It carries a ``version`` counter; writes are conditional on the version the
writer read at the start of its tick, so two concurrent ticks cannot both
publish.

Architecture:
    ::

        read_global_state() ─► GlobalState(version=7) | None
                 ...tick...
        write_global_state(new, expected_version=7)
            ├── stored version == 7 ─► put version 8 ─► Ok(GlobalState(version=8))
            └── stored version != 7 ─► Err(StateConflictError)

        write_token_states([...])  asyncio.gather, first Err wins,
                                   successful writes are not undone

Keys:
    state/global.json        GlobalState
    state/{SYMBOL}.json      TokenState
    revenue/{bucket}.json    RevenueReport

Tags:
    state, compare-and-swap, storage
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any

from worldstate.core.errors import StateConflictError, StorageError
from worldstate.core.logging import get_logger
from worldstate.core.result import Err, Ok, Result, collect_results
from worldstate.storage.object_store import ObjectStore, get_json, put_json

logger = get_logger(__name__)

GLOBAL_STATE_KEY = "state/global.json"


def token_state_key(ticker: str) -> str:
    return f"state/{ticker}.json"


def revenue_key(minute_bucket: str) -> str:
    return f"revenue/{minute_bucket}.json"


@dataclass(frozen=True, slots=True)
class GlobalState:
    """What is currently published. ``last_ts`` is the artifact timestamp."""

    prev_hash: str | None = None
    last_ts: str | None = None
    image_url: str | None = None
    revenue_minute: str | None = None
    version: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "prevHash": self.prev_hash,
            "lastTs": self.last_ts,
            "imageUrl": self.image_url,
            "revenueMinute": self.revenue_minute,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GlobalState:
        version = data.get("version", 0)
        return cls(
            prev_hash=data.get("prevHash"),
            last_ts=data.get("lastTs"),
            image_url=data.get("imageUrl"),
            revenue_minute=data.get("revenueMinute"),
            version=version if isinstance(version, int) and not isinstance(version, bool) else 0,
        )


@dataclass(frozen=True, slots=True)
class TokenState:
    ticker: str
    thumbnail_url: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {"ticker": self.ticker, "thumbnailUrl": self.thumbnail_url, "updatedAt": self.updated_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenState:
        return cls(ticker=data["ticker"], thumbnail_url=data["thumbnailUrl"], updated_at=data["updatedAt"])


class StateStore:
    """Reads and writes state records in an :class:`ObjectStore`."""

    def __init__(self, store: ObjectStore):
        self.store = store
        self._write_lock = asyncio.Lock()

    # -- global ---------------------------------------------------------------

    async def read_global_state(self) -> Result[GlobalState | None]:
        result = await get_json(self.store, GLOBAL_STATE_KEY)
        match result:
            case Ok(None):
                return Ok(None)
            case Ok(dict() as data):
                return Ok(GlobalState.from_dict(data))
            case Ok(other):
                return Err(
                    StorageError(
                        f"Global state is not an object: {type(other).__name__}",
                        op="get",
                        key=GLOBAL_STATE_KEY,
                    )
                )
            case Err():
                return result

    async def write_global_state(
        self, state: GlobalState, *, expected_version: int | None
    ) -> Result[GlobalState]:
        """
        Conditional put: succeeds only if the stored version still equals
        ``expected_version`` (``None`` means "no state yet").

        Returns the written record with its version incremented.
        """
        async with self._write_lock:
            current = await self.read_global_state()
            if current.is_err():
                return current
            stored = current.value
            actual_version = stored.version if stored is not None else None
            if actual_version != expected_version:
                logger.warning(
                    "state.global.conflict",
                    expected_version=expected_version,
                    actual_version=actual_version,
                )
                return Err(
                    StateConflictError(
                        GLOBAL_STATE_KEY,
                        expected_version=expected_version,
                        actual_version=actual_version,
                    )
                )

            new_state = replace(state, version=(actual_version or 0) + 1)
            written = await put_json(self.store, GLOBAL_STATE_KEY, new_state.to_dict())
            if written.is_err():
                return Err(written.error)
            logger.debug("state.global.written", version=new_state.version, hash=new_state.prev_hash)
            return Ok(new_state)

    # -- per symbol -----------------------------------------------------------

    async def read_token_state(self, ticker: str) -> Result[TokenState | None]:
        key = token_state_key(ticker)
        result = await get_json(self.store, key)
        if result.is_err() or result.value is None:
            return result
        try:
            return Ok(TokenState.from_dict(result.value))
        except (KeyError, TypeError) as e:
            return Err(StorageError(f"Malformed token state: {e}", op="get", key=key, cause=e))

    async def write_token_states(self, states: list[TokenState]) -> Result[None]:
        """Write all records concurrently; report the first failure."""
        results = await asyncio.gather(
            *(put_json(self.store, token_state_key(s.ticker), s.to_dict()) for s in states)
        )
        return collect_results(results).map(lambda _: None)

    # -- revenue --------------------------------------------------------------

    async def write_revenue(self, report: dict[str, Any], minute_bucket: str) -> Result[None]:
        return await put_json(self.store, revenue_key(minute_bucket), report)

    async def read_revenue(self, minute_bucket: str) -> Result[dict[str, Any] | None]:
        return await get_json(self.store, revenue_key(minute_bucket))


__all__ = [
    "GLOBAL_STATE_KEY",
    "token_state_key",
    "revenue_key",
    "GlobalState",
    "TokenState",
    "StateStore",
]
