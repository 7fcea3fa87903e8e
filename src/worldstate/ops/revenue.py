"""
Revenue and cost model for one minute.

Fees come from per-symbol trade snapshots; cost is what generating an
image every minute would cost over a 30-day month at the configured
generation rate. Everything is rounded to 1e-6.

    fee[symbol]  = trades_per_minute * average_trade_usd * 0.0005
    monthly_cost = 0.002 * 1440 * 30 * max(generation_rate, 0)
    net_profit   = sum(fee) - monthly_cost
"""

from __future__ import annotations

import math
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from worldstate.core.errors import ValidationError
from worldstate.core.numeric import js_round
from worldstate.core.result import Err, Ok, Result
from worldstate.domain.tokens import SYMBOLS

FEE_RATE = 0.0005
COST_PER_IMAGE = 0.002
MINUTES_PER_DAY = 1440
DAYS_PER_MONTH = 30
OUTPUT_PRECISION = 1e-6


@dataclass(frozen=True, slots=True)
class TradeSnapshot:
    ticker: str
    trades_per_minute: float
    average_trade_usd: float


@dataclass(frozen=True, slots=True)
class RevenueReport:
    per_token_fee: dict[str, float]
    total_fee: float
    monthly_cost: float
    net_profit: float

    def to_dict(self) -> dict:
        return {
            "perTokenFee": dict(self.per_token_fee),
            "totalFee": self.total_fee,
            "monthlyCost": self.monthly_cost,
            "netProfit": self.net_profit,
        }


TradeSnapshotSource = Callable[[], Awaitable[list[TradeSnapshot]]]


async def no_trade_snapshots() -> list[TradeSnapshot]:
    return []


def _sanitize(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return value if value > 0 else 0.0


def _round(value: float) -> float:
    return js_round(value / OUTPUT_PRECISION) * OUTPUT_PRECISION


def calculate_minute_revenue(
    snapshots: Iterable[TradeSnapshot], generation_rate: float
) -> Result[RevenueReport]:
    """Fee, cost and profit for one minute; symbols without a snapshot earn 0."""
    if not math.isfinite(generation_rate):
        return Err(ValidationError("generation_rate must be finite", field="generation_rate", value=generation_rate))

    by_ticker = {}
    for snapshot in snapshots:
        by_ticker.setdefault(snapshot.ticker, snapshot)

    per_token_fee: dict[str, float] = {}
    for ticker in SYMBOLS:
        snapshot = by_ticker.get(ticker)
        if snapshot is None:
            per_token_fee[ticker] = 0.0
            continue
        fee = _sanitize(snapshot.trades_per_minute) * _sanitize(snapshot.average_trade_usd) * FEE_RATE
        per_token_fee[ticker] = _round(fee)

    total_fee = _round(sum(per_token_fee.values()))
    monthly_cost = _round(COST_PER_IMAGE * MINUTES_PER_DAY * DAYS_PER_MONTH * max(generation_rate, 0))
    return Ok(
        RevenueReport(
            per_token_fee=per_token_fee,
            total_fee=total_fee,
            monthly_cost=monthly_cost,
            net_profit=_round(total_fee - monthly_cost),
        )
    )


__all__ = [
    "TradeSnapshot",
    "RevenueReport",
    "TradeSnapshotSource",
    "no_trade_snapshots",
    "calculate_minute_revenue",
]
