"""Normalize rounded caps into [0, 1] per symbol window."""

from __future__ import annotations

import math
from collections.abc import Mapping

from worldstate.core.numeric import clamp01
from worldstate.domain.tokens import SYMBOLS, TOKEN_CONFIG_MAP

NormalizedCapMap = dict[str, float]


def normalize_value(value: float, minimum: float, maximum: float) -> float:
    """
    Clamp to the window, take the ratio, ease with a square root.

    Square-root easing keeps small caps visible on a window that spans
    billions. Non-finite values and empty windows give 0.

    >>> normalize_value(500_000_000, 0, 2_000_000_000)
    0.5
    """
    if not math.isfinite(value):
        return 0.0
    if maximum <= minimum:
        return 0.0
    clamped = min(max(value, minimum), maximum)
    ratio = (clamped - minimum) / (maximum - minimum)
    return clamp01(math.sqrt(ratio))


def normalize_cap_map(caps: Mapping[str, float]) -> NormalizedCapMap:
    """Normalize every tracked symbol; absent symbols count as 0."""
    normalized: NormalizedCapMap = {}
    for symbol in SYMBOLS:
        window = TOKEN_CONFIG_MAP[symbol].normalization
        normalized[symbol] = normalize_value(caps.get(symbol, 0.0) or 0.0, window.min, window.max)
    return normalized


__all__ = ["NormalizedCapMap", "normalize_value", "normalize_cap_map"]
