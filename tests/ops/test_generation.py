"""
Tests for the minute generation orchestrator.

Every collaborator is in-process: static market data, the mock image
provider, the in-memory object store and an in-memory sqlite index.
"""

from __future__ import annotations

import json

import pytest

from worldstate.core.errors import ExternalApiError, StateConflictError, StorageError
from worldstate.core.result import Err
from worldstate.core.timestamps import FixedClock
from worldstate.domain.prompt import OPENING_LINE
from worldstate.domain.tokens import SYMBOLS
from worldstate.ops.generation import GenerationService, MinuteEvaluation, build_token_states
from worldstate.ops.prompt import PromptComposer
from worldstate.ops.revenue import TradeSnapshot
from worldstate.sources.market_cap import StaticMarketData
from worldstate.storage.archive_storage import ArchiveStorage
from worldstate.storage.state import (
    GLOBAL_STATE_KEY,
    GlobalState,
    StateStore,
    revenue_key,
    token_state_key,
)


def make_service(store, provider, caps, *, bucket="2025-11-14T12:34", **kwargs) -> GenerationService:
    return GenerationService(
        market=StaticMarketData(caps),
        composer=PromptComposer(FixedClock(bucket)),
        provider=provider,
        archive_storage=ArchiveStorage(store),
        state=StateStore(store),
        **kwargs,
    )


async def read_global(store) -> GlobalState | None:
    return (await StateStore(store).read_global_state()).unwrap()


class RejectingProvider:
    name = "rejecting"

    def __init__(self) -> None:
        self.calls = 0

    async def generate(self, request):
        self.calls += 1
        return Err(ExternalApiError("Provider error: 500", provider=self.name, status=500))


class RacingProvider:
    """Publishes a competing GlobalState while the image is being generated."""

    name = "racing"

    def __init__(self, inner, store) -> None:
        self.inner = inner
        self.store = store

    async def generate(self, request):
        rival = StateStore(self.store)
        current = (await rival.read_global_state()).unwrap()
        await rival.write_global_state(
            GlobalState(prev_hash="ffffffffffffffff"),
            expected_version=current.version if current else None,
        )
        return await self.inner.generate(request)


class BrokenIndex:
    def __init__(self) -> None:
        self.calls = 0

    def insert(self, metadata, object_key):
        self.calls += 1
        return Err(StorageError("database is locked", op="put", key=metadata.id))


async def exploding_snapshots():
    raise RuntimeError("trade feed down")


class TestFirstTick:
    @pytest.mark.asyncio
    async def test_generates_and_publishes(self, store, provider, scenario_caps):
        evaluation = (await make_service(store, provider, scenario_caps).evaluate_minute()).unwrap()

        assert evaluation.status == "generated"
        assert len(evaluation.hash) == 16
        assert evaluation.image_url == f"/api/r2/images/2025/11/14/{evaluation.artifact_id}.webp"
        assert provider.call_count == 1

        state = await read_global(store)
        assert state.prev_hash == evaluation.hash
        assert state.last_ts == "2025-11-14T12:34:00Z"
        assert state.image_url == evaluation.image_url
        assert state.version == 1

    @pytest.mark.asyncio
    async def test_artifact_pair_stored(self, store, provider, scenario_caps):
        evaluation = (await make_service(store, provider, scenario_caps).evaluate_minute()).unwrap()

        image_key = f"images/2025/11/14/{evaluation.artifact_id}.webp"
        metadata_key = f"images/2025/11/14/{evaluation.artifact_id}.json"
        assert image_key in store
        metadata = json.loads((await store.get(metadata_key)).text())
        assert metadata["id"] == evaluation.artifact_id
        assert metadata["paramsHash"] == evaluation.params_hash
        assert metadata["seed"] == evaluation.seed
        assert metadata["mcRounded"] == evaluation.rounded_map
        assert metadata["imageUrl"] == evaluation.image_url
        assert metadata["fileSize"] == (await store.get(image_key)).size

    @pytest.mark.asyncio
    async def test_provider_receives_composed_request(self, store, provider, scenario_caps):
        service = make_service(store, provider, scenario_caps, image_model="runware:100@1")
        evaluation = (await service.evaluate_minute()).unwrap()

        request = provider.requests[0]
        assert request.seed == evaluation.seed
        assert (request.width, request.height, request.format) == (1024, 1024, "webp")
        assert request.model == "runware:100@1"
        assert request.prompt.startswith(OPENING_LINE)

    @pytest.mark.asyncio
    async def test_token_states_written(self, store, provider, scenario_caps):
        evaluation = (await make_service(store, provider, scenario_caps).evaluate_minute()).unwrap()

        for symbol in SYMBOLS:
            token_state = (await StateStore(store).read_token_state(symbol)).unwrap()
            assert token_state.thumbnail_url == evaluation.image_url
            assert token_state.updated_at == "2025-11-14T12:34:00Z"

    @pytest.mark.asyncio
    async def test_missing_symbols_count_as_zero(self, store, provider):
        evaluation = (await make_service(store, provider, {"CO2": 5.0}).evaluate_minute()).unwrap()
        assert list(evaluation.rounded_map) == list(SYMBOLS)
        assert evaluation.rounded_map["ICE"] == 0.0

    @pytest.mark.asyncio
    async def test_to_dict(self, store, provider, scenario_caps):
        data = (await make_service(store, provider, scenario_caps).evaluate_minute()).unwrap().to_dict()
        assert data["status"] == "generated"
        assert set(data) == {
            "status",
            "hash",
            "roundedMap",
            "imageUrl",
            "paramsHash",
            "seed",
            "artifactId",
            "revenue",
        }


class TestSkip:
    @pytest.mark.asyncio
    async def test_unchanged_market_skips(self, store, provider, scenario_caps):
        await make_service(store, provider, scenario_caps).evaluate_minute()
        keys_before = store.keys()

        later = make_service(store, provider, scenario_caps, bucket="2025-11-14T12:35")
        evaluation = (await later.evaluate_minute()).unwrap()

        assert evaluation == MinuteEvaluation(
            status="skipped", hash=evaluation.hash, rounded_map=evaluation.rounded_map
        )
        assert provider.call_count == 1
        assert store.keys() == keys_before
        assert (await read_global(store)).version == 1

    @pytest.mark.asyncio
    async def test_noise_below_rounding_skips(self, store, provider):
        caps = {symbol: 1000.0 for symbol in SYMBOLS}
        await make_service(store, provider, caps).evaluate_minute()

        noisy = {symbol: 1000.00004 for symbol in SYMBOLS}
        evaluation = (await make_service(store, provider, noisy, bucket="2025-11-14T12:35").evaluate_minute()).unwrap()

        assert evaluation.status == "skipped"
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_changed_market_generates_again(self, store, provider, scenario_caps):
        first = (await make_service(store, provider, scenario_caps).evaluate_minute()).unwrap()

        moved = dict(scenario_caps, CO2=scenario_caps["CO2"] * 2)
        later = make_service(store, provider, moved, bucket="2025-11-14T12:35")
        second = (await later.evaluate_minute()).unwrap()

        assert second.status == "generated"
        assert second.hash != first.hash
        assert second.artifact_id != first.artifact_id
        state = await read_global(store)
        assert state.version == 2
        assert state.prev_hash == second.hash


class TestAborts:
    @pytest.mark.asyncio
    async def test_provider_error_publishes_nothing(self, store, scenario_caps):
        provider = RejectingProvider()
        result = await make_service(store, provider, scenario_caps).evaluate_minute()

        assert isinstance(result.error, ExternalApiError)
        assert result.error.status == 500
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_provider_error_keeps_previous_state(self, store, provider, scenario_caps):
        await make_service(store, provider, scenario_caps).evaluate_minute()
        before = await read_global(store)

        moved = dict(scenario_caps, ICE=1.0)
        result = await make_service(store, RejectingProvider(), moved, bucket="2025-11-14T12:35").evaluate_minute()

        assert result.is_err()
        assert await read_global(store) == before

    @pytest.mark.asyncio
    async def test_storage_failure_publishes_nothing(self, failing_store_factory, provider, scenario_caps):
        failing = failing_store_factory(fail_put=lambda key: key.startswith("images/"))
        result = await make_service(failing, provider, scenario_caps).evaluate_minute()

        assert isinstance(result.error, StorageError)
        assert provider.call_count == 1
        assert GLOBAL_STATE_KEY not in failing
        assert not any(key.startswith("state/") for key in failing.put_calls)

    @pytest.mark.asyncio
    async def test_corrupt_global_state(self, store, provider, scenario_caps):
        await store.put(GLOBAL_STATE_KEY, "{not json")
        result = await make_service(store, provider, scenario_caps).evaluate_minute()

        assert isinstance(result.error, StorageError)
        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_concurrent_publish_conflicts(self, store, provider, scenario_caps):
        racing = RacingProvider(provider, store)
        result = await make_service(store, racing, scenario_caps).evaluate_minute()

        assert isinstance(result.error, StateConflictError)
        assert (await read_global(store)).prev_hash == "ffffffffffffffff"
        assert not any(key.startswith("state/") and key != GLOBAL_STATE_KEY for key in store.keys())

    @pytest.mark.asyncio
    async def test_token_state_failure_after_publish(self, failing_store_factory, provider, scenario_caps):
        failing = failing_store_factory(fail_put=lambda key: key == token_state_key("NUKE"))
        result = await make_service(failing, provider, scenario_caps).evaluate_minute()

        assert isinstance(result.error, StorageError)
        assert result.error.key == token_state_key("NUKE")
        assert (await read_global(failing)).version == 1


class TestArchiveIndexing:
    @pytest.mark.asyncio
    async def test_index_row_written(self, store, provider, index, scenario_caps):
        service = make_service(store, provider, scenario_caps, archive_index=index)
        evaluation = (await service.evaluate_minute()).unwrap()

        metadata = index.get_by_id(evaluation.artifact_id).unwrap()
        assert metadata.image_url == evaluation.image_url
        assert index.count() == 1

    @pytest.mark.asyncio
    async def test_index_failure_is_not_fatal(self, store, provider, scenario_caps):
        broken = BrokenIndex()
        result = await make_service(store, provider, scenario_caps, archive_index=broken).evaluate_minute()

        assert result.unwrap().status == "generated"
        assert broken.calls == 1
        assert (await read_global(store)).version == 1


class TestRevenue:
    @pytest.mark.asyncio
    async def test_report_written_and_linked(self, store, provider, scenario_caps):
        async def snapshots():
            return [TradeSnapshot("CO2", 10, 200.0)]

        service = make_service(store, provider, scenario_caps, trade_snapshots=snapshots)
        evaluation = (await service.evaluate_minute()).unwrap()

        assert evaluation.revenue.per_token_fee["CO2"] == pytest.approx(1.0)
        assert (await read_global(store)).revenue_minute == "2025-11-14T12:34"
        saved = (await StateStore(store).read_revenue("2025-11-14T12:34")).unwrap()
        assert saved == evaluation.revenue.to_dict()

    @pytest.mark.asyncio
    async def test_snapshot_failure_is_not_fatal(self, store, provider, scenario_caps):
        service = make_service(store, provider, scenario_caps, trade_snapshots=exploding_snapshots)
        evaluation = (await service.evaluate_minute()).unwrap()

        assert evaluation.status == "generated"
        assert evaluation.revenue is None
        assert (await read_global(store)).revenue_minute is None
        assert revenue_key("2025-11-14T12:34") not in store

    @pytest.mark.asyncio
    async def test_invalid_rate_is_not_fatal(self, store, provider, scenario_caps):
        service = make_service(store, provider, scenario_caps, generation_rate=float("nan"))
        evaluation = (await service.evaluate_minute()).unwrap()
        assert evaluation.revenue is None

    @pytest.mark.asyncio
    async def test_revenue_write_failure_is_not_fatal(self, failing_store_factory, provider, scenario_caps):
        failing = failing_store_factory(fail_put=lambda key: key.startswith("revenue/"))
        evaluation = (await make_service(failing, provider, scenario_caps).evaluate_minute()).unwrap()
        assert evaluation.status == "generated"
        assert evaluation.revenue is not None


class TestBuildTokenStates:
    def test_one_per_symbol(self):
        states = build_token_states("/api/r2/a.webp", "2025-11-14T12:34")
        assert [s.ticker for s in states] == list(SYMBOLS)
        assert {s.updated_at for s in states} == {"2025-11-14T12:34:00Z"}

