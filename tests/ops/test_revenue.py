"""Tests for the per-minute revenue model."""

import math

import pytest

from worldstate.core.errors import ValidationError
from worldstate.domain.tokens import SYMBOLS
from worldstate.ops.revenue import TradeSnapshot, calculate_minute_revenue, no_trade_snapshots

MONTHLY_COST_AT_FULL_RATE = 0.002 * 1440 * 30


class TestCalculateMinuteRevenue:
    def test_no_trades(self):
        report = calculate_minute_revenue([], 1.0).unwrap()
        assert report.per_token_fee == {s: 0.0 for s in SYMBOLS}
        assert report.total_fee == 0.0
        assert report.monthly_cost == pytest.approx(MONTHLY_COST_AT_FULL_RATE)
        assert report.net_profit == pytest.approx(-MONTHLY_COST_AT_FULL_RATE)

    def test_fee_per_symbol(self):
        snapshots = [TradeSnapshot("CO2", 10, 200.0), TradeSnapshot("ICE", 4, 50.0)]
        report = calculate_minute_revenue(snapshots, 1.0).unwrap()

        assert report.per_token_fee["CO2"] == pytest.approx(1.0)
        assert report.per_token_fee["ICE"] == pytest.approx(0.1)
        assert report.per_token_fee["HOPE"] == 0.0
        assert report.total_fee == pytest.approx(1.1)

    def test_first_snapshot_per_symbol_wins(self):
        snapshots = [TradeSnapshot("CO2", 10, 200.0), TradeSnapshot("CO2", 1000, 1000.0)]
        assert calculate_minute_revenue(snapshots, 1.0).unwrap().per_token_fee["CO2"] == pytest.approx(1.0)

    def test_unknown_symbols_ignored(self):
        report = calculate_minute_revenue([TradeSnapshot("DOGE", 10, 10.0)], 1.0).unwrap()
        assert "DOGE" not in report.per_token_fee
        assert report.total_fee == 0.0

    @pytest.mark.parametrize("bad", [-5.0, math.nan, math.inf])
    def test_bad_inputs_count_as_zero(self, bad):
        report = calculate_minute_revenue([TradeSnapshot("CO2", bad, 100.0)], 1.0).unwrap()
        assert report.per_token_fee["CO2"] == 0.0

    def test_rate_scales_cost(self):
        half = calculate_minute_revenue([], 0.5).unwrap()
        assert half.monthly_cost == pytest.approx(MONTHLY_COST_AT_FULL_RATE / 2)

    def test_negative_rate_is_free(self):
        assert calculate_minute_revenue([], -1.0).unwrap().monthly_cost == 0.0

    def test_non_finite_rate(self):
        result = calculate_minute_revenue([], math.nan)
        assert isinstance(result.error, ValidationError)
        assert result.error.field == "generation_rate"

    def test_rounded_to_micro_units(self):
        up = calculate_minute_revenue([TradeSnapshot("CO2", 1, 0.0012345678)], 0.0).unwrap()
        down = calculate_minute_revenue([TradeSnapshot("CO2", 1, 0.0008)], 0.0).unwrap()
        assert up.per_token_fee["CO2"] == pytest.approx(1e-6, abs=1e-12)
        assert down.per_token_fee["CO2"] == 0.0

    def test_to_dict_is_camel_case(self):
        data = calculate_minute_revenue([], 1.0).unwrap().to_dict()
        assert set(data) == {"perTokenFee", "totalFee", "monthlyCost", "netProfit"}


class TestSnapshotSource:
    @pytest.mark.asyncio
    async def test_default_source_is_empty(self):
        assert await no_trade_snapshots() == []
