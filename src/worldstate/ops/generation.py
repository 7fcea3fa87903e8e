"""
Minute generation orchestrator.

One call to :meth:`GenerationService.evaluate_minute` is one tick. A tick
ends ``skipped`` (market data unchanged since the published state) or
``generated`` (new artifact stored and published), or it fails with a typed
error and publishes nothing.

Manifesto:
    - **Idempotent:** Unchanged rounded market data produces no writes
    - **Atomic publish:** GlobalState moves only after the artifact is stored
    - **Typed failures:** Every abort is an ``Err`` with a taxonomy error
    - **Best effort where harmless:** Revenue and index writes never block

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      evaluate_minute()                       │
        └─────────────────────────────────────────────────────────────┘

        1. fetch_cap_map ─► round ─► rounded_map_hash
        2. read GlobalState ── prevHash == hash ──► Ok(skipped)
        3. compose prompt ─► image provider ──────── Err ─► abort
        4. ArchiveStorage.store_artifact ─────────── Err ─► abort
           └─ ArchiveIndex.insert ────────────────── Err ─► log only
        5. revenue report ────────────────────────── Err ─► log only
        6. write GlobalState (CAS on version) ────── Err ─► abort
           write per-symbol TokenState (parallel) ── Err ─► abort
                                                    (applied writes stay)

Propagation:
    Steps run strictly in order. There are no retries; a failed tick is
    abandoned and the next scheduled tick starts over. The previous
    GlobalState stays authoritative until a tick publishes.

Tags:
    orchestration, idempotency, generation, pipeline
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from worldstate.core.hashing import rounded_map_hash
from worldstate.core.logging import LogContext, get_logger
from worldstate.core.result import Err, Ok, Result
from worldstate.core.timestamps import bucket_to_iso
from worldstate.domain.archive import extract_id_from_filename
from worldstate.domain.market import RoundedCapMap, complete_cap_map, round_cap_map
from worldstate.domain.prompt import prompt_token_summary
from worldstate.domain.tokens import SYMBOLS
from worldstate.ops.prompt import PromptComposer, PromptComposition
from worldstate.ops.revenue import (
    RevenueReport,
    TradeSnapshotSource,
    calculate_minute_revenue,
    no_trade_snapshots,
)
from worldstate.providers.base import ImageProvider, ImageRequest
from worldstate.sources.market_cap import MarketDataSource
from worldstate.storage.archive_index import ArchiveIndex
from worldstate.storage.archive_storage import ArchiveStorage, StoredArtifact
from worldstate.storage.state import GlobalState, StateStore, TokenState

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class MinuteEvaluation:
    status: Literal["skipped", "generated"]
    hash: str
    rounded_map: RoundedCapMap
    image_url: str | None = None
    params_hash: str | None = None
    seed: str | None = None
    artifact_id: str | None = None
    revenue: RevenueReport | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "hash": self.hash,
            "roundedMap": dict(self.rounded_map),
            "imageUrl": self.image_url,
            "paramsHash": self.params_hash,
            "seed": self.seed,
            "artifactId": self.artifact_id,
            "revenue": self.revenue.to_dict() if self.revenue else None,
        }


def build_token_states(image_url: str, minute_bucket: str) -> list[TokenState]:
    updated_at = bucket_to_iso(minute_bucket)
    return [TokenState(ticker=ticker, thumbnail_url=image_url, updated_at=updated_at) for ticker in SYMBOLS]


class GenerationService:
    """Runs the minute pipeline against injected collaborators."""

    def __init__(
        self,
        *,
        market: MarketDataSource,
        composer: PromptComposer,
        provider: ImageProvider,
        archive_storage: ArchiveStorage,
        state: StateStore,
        archive_index: ArchiveIndex | None = None,
        trade_snapshots: TradeSnapshotSource = no_trade_snapshots,
        generation_rate: float = 1.0,
        image_model: str | None = None,
    ):
        self.market = market
        self.composer = composer
        self.provider = provider
        self.archive_storage = archive_storage
        self.state = state
        self.archive_index = archive_index
        self.trade_snapshots = trade_snapshots
        self.generation_rate = generation_rate
        self.image_model = image_model

    async def evaluate_minute(self) -> Result[MinuteEvaluation]:
        raw = complete_cap_map(await self.market.fetch_cap_map())
        rounded = round_cap_map(raw)
        tick_hash = rounded_map_hash(rounded)
        logger.info("generation.mc", raw=raw, rounded=rounded, hash=tick_hash)

        async with LogContext(hash=tick_hash):
            return await self._evaluate(rounded, tick_hash)

    async def _evaluate(self, rounded: RoundedCapMap, tick_hash: str) -> Result[MinuteEvaluation]:
        previous = await self.state.read_global_state()
        if previous.is_err():
            return Err(previous.error)
        prev_state: GlobalState | None = previous.value
        prev_hash = prev_state.prev_hash if prev_state else None

        if prev_hash and prev_hash == tick_hash:
            logger.info("generation.skip", prev_hash=prev_hash)
            return Ok(MinuteEvaluation(status="skipped", hash=tick_hash, rounded_map=rounded))

        logger.info("generation.trigger", prev_hash=prev_hash)

        composed = self.composer.compose(rounded)
        if composed.is_err():
            return Err(composed.error)
        composition: PromptComposition = composed.value
        logger.info(
            "generation.composition",
            visual_params=composition.visual_params,
            params_hash=composition.params_hash,
            seed=composition.seed,
            size=composition.size,
        )

        request = ImageRequest(
            prompt=composition.prompt_text,
            negative=composition.negative_text,
            width=composition.width,
            height=composition.height,
            format=composition.format,
            seed=composition.seed,
            model=self.image_model,
        )
        logger.info(
            "generation.prompt.final",
            seed=request.seed,
            model=request.model,
            size=composition.size,
            tokens=prompt_token_summary(request.prompt, request.negative),
        )
        image = await self.provider.generate(request)
        if image.is_err():
            logger.error("generation.provider.error", provider=self.provider.name, error=str(image.error))
            return Err(image.error)

        stored = await self._store(composition, rounded, image.value.image_bytes)
        if stored.is_err():
            return Err(stored.error)
        artifact: StoredArtifact = stored.value

        revenue = await self._revenue(composition.minute_bucket)

        published = await self.state.write_global_state(
            GlobalState(
                prev_hash=tick_hash,
                last_ts=bucket_to_iso(composition.minute_bucket),
                image_url=artifact.image_url,
                revenue_minute=composition.minute_bucket if revenue is not None else None,
            ),
            expected_version=prev_state.version if prev_state else None,
        )
        if published.is_err():
            logger.error("generation.publish.error", error=str(published.error))
            return Err(published.error)

        token_states = await self.state.write_token_states(
            build_token_states(artifact.image_url, composition.minute_bucket)
        )
        if token_states.is_err():
            logger.error("generation.token_state.error", error=str(token_states.error))
            return Err(token_states.error)

        logger.info("generation.generated", image_url=artifact.image_url, id=artifact.metadata.id)
        return Ok(
            MinuteEvaluation(
                status="generated",
                hash=tick_hash,
                rounded_map=rounded,
                image_url=artifact.image_url,
                params_hash=composition.params_hash,
                seed=composition.seed,
                artifact_id=artifact.metadata.id,
                revenue=revenue,
            )
        )

    async def _store(
        self, composition: PromptComposition, rounded: RoundedCapMap, image_bytes: bytes
    ) -> Result[StoredArtifact]:
        # validated by store_artifact; imageUrl and fileSize are patched there
        metadata = {
            "id": extract_id_from_filename(composition.filename),
            "timestamp": bucket_to_iso(composition.minute_bucket),
            "minuteBucket": composition.minute_bucket,
            "paramsHash": composition.params_hash,
            "seed": composition.seed,
            "mcRounded": dict(rounded),
            "visualParams": dict(composition.visual_params),
            "imageUrl": "",
            "fileSize": len(image_bytes),
            "prompt": composition.prompt_text,
            "negative": composition.negative_text,
        }
        stored = await self.archive_storage.store_artifact(
            composition.minute_bucket, composition.filename, image_bytes, metadata
        )
        if stored.is_err():
            logger.error("generation.store.error", error=str(stored.error))
            return stored

        if self.archive_index is not None:
            indexed = self.archive_index.insert(stored.value.metadata, stored.value.image_key)
            if indexed.is_err():
                # backfill repairs the index from the stored metadata
                logger.warning("generation.index.skip", error=str(indexed.error))
        return stored

    async def _revenue(self, minute_bucket: str) -> RevenueReport | None:
        try:
            snapshots = await self.trade_snapshots()
        except Exception as e:  # noqa: BLE001
            logger.warning("generation.revenue.skip", reason="snapshot source failed", error=str(e))
            return None

        calculated = calculate_minute_revenue(snapshots, self.generation_rate)
        if calculated.is_err():
            logger.warning("generation.revenue.skip", error=str(calculated.error))
            return None

        report = calculated.value
        written = await self.state.write_revenue(report.to_dict(), minute_bucket)
        if written.is_err():
            logger.warning("generation.revenue.write_error", error=str(written.error))
        return report


__all__ = ["MinuteEvaluation", "GenerationService", "build_token_states"]
