"""Market-cap maps: price to cap, and rounding for hash stability."""

from __future__ import annotations

import math
from collections.abc import Mapping

from worldstate.core.numeric import round_half_up
from worldstate.domain.tokens import SYMBOLS

CAP_ROUND_DECIMALS = 4

RawCapMap = dict[str, float]
RoundedCapMap = dict[str, float]


def market_cap(price: float | None, supply: float | None) -> float:
    """``price * supply``; 0 when either is missing, non-finite or not positive."""
    if price is None or supply is None:
        return 0.0
    if not (math.isfinite(price) and math.isfinite(supply)):
        return 0.0
    if supply <= 0 or price <= 0:
        return 0.0
    return price * supply


def round_cap_map(raw: Mapping[str, float], decimals: int = CAP_ROUND_DECIMALS) -> RoundedCapMap:
    """
    Round every value half-up to ``decimals`` places.

    Rounding is the only step allowed to absorb noise: two raw maps that
    differ only beyond the 4th decimal round to the same map and hash to
    the same value.

    >>> round_cap_map({"CO2": 1300000.00004, "ICE": 2.00006})
    {'CO2': 1300000.0, 'ICE': 2.0001}
    """
    return {symbol: round_half_up(value or 0.0, decimals) for symbol, value in raw.items()}


def complete_cap_map(raw: Mapping[str, float]) -> RawCapMap:
    """Every tracked symbol present, in symbol order; missing ones are 0."""
    return {symbol: float(raw.get(symbol, 0.0) or 0.0) for symbol in SYMBOLS}


__all__ = [
    "CAP_ROUND_DECIMALS",
    "RawCapMap",
    "RoundedCapMap",
    "market_cap",
    "round_cap_map",
    "complete_cap_map",
]
