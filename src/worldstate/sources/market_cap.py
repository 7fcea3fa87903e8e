"""
Market-data aggregation from a DexScreener-compatible quote source.

For each tracked symbol the client fetches ``{base_url}/{address}``, picks
the price of the single pair with the highest USD liquidity and multiplies
it by the symbol's total supply. Failures never propagate: a symbol whose
fetch fails, returns non-2xx or has no usable pair is recorded as 0 and the
event is logged. The next tick corrects it.

Architecture:
    ::

        fetch_cap_map()
            │  asyncio.gather (one request per symbol, all settle)
            ├── CO2 ─► GET /tokens/{address} ─► best pair ─► price * supply
            ├── ICE ─► ... ─► 0.0 (HTTP 503, logged)
            └── ...
            ▼
        RawCapMap ──round_cap_map()──► RoundedCapMap

Examples:
    >>> async with httpx.AsyncClient() as http:
    ...     client = MarketCapClient(http)
    ...     caps = await client.fetch_rounded_cap_map()

Tags:
    market-data, httpx, asyncio, dexscreener
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

import httpx

from worldstate.core.errors import ExternalApiError
from worldstate.core.logging import get_logger
from worldstate.domain.market import RawCapMap, RoundedCapMap, market_cap, round_cap_map
from worldstate.domain.tokens import TOKENS, TokenConfig

logger = get_logger(__name__)

DEXSCREENER_BASE = "https://api.dexscreener.com/latest/dex/tokens"
PROVIDER_NAME = "DexScreener"


class MarketDataSource(Protocol):
    """Anything that can produce a raw cap map for one tick."""

    async def fetch_cap_map(self) -> RawCapMap:
        ...


def _as_price(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None


def select_highest_liquidity_price(payload: Mapping[str, Any] | None, ticker: str) -> float | None:
    """
    Price of the pair with the highest numeric ``liquidity.usd``.

    Pairs without numeric liquidity or without a finite ``priceUsd`` are
    skipped. Returns None when no pair qualifies.
    """
    pairs = (payload or {}).get("pairs")
    if not isinstance(pairs, list) or not pairs:
        logger.warning("market_cap.price.no_pairs", ticker=ticker)
        return None

    best_price: float | None = None
    highest_liquidity = -1.0
    without_liquidity = 0
    invalid_price = 0

    for pair in pairs:
        if not isinstance(pair, dict) or not isinstance(pair.get("liquidity"), dict):
            without_liquidity += 1
            continue
        liquidity = pair["liquidity"].get("usd")
        if (
            not isinstance(liquidity, (int, float))
            or isinstance(liquidity, bool)
            or not math.isfinite(liquidity)
        ):
            without_liquidity += 1
            continue
        if liquidity <= highest_liquidity:
            continue
        price = _as_price(pair.get("priceUsd"))
        if price is None:
            invalid_price += 1
            continue
        highest_liquidity = float(liquidity)
        best_price = price

    if best_price is None:
        logger.warning(
            "market_cap.price.no_valid_pair",
            ticker=ticker,
            total_pairs=len(pairs),
            pairs_without_liquidity=without_liquidity,
            pairs_with_invalid_price=invalid_price,
        )
    return best_price


class MarketCapClient:
    """
    Concurrent per-symbol market-cap fetcher.

    The ``httpx.AsyncClient`` is injected so callers own its lifecycle and
    tests can mount an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        tokens: Iterable[TokenConfig] = TOKENS,
        base_url: str = DEXSCREENER_BASE,
        timeout: float = 10.0,
    ):
        self.http = http
        self.tokens = tuple(tokens)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch_token_cap(self, token: TokenConfig) -> float:
        """Market cap of one symbol; 0.0 on any failure."""
        url = f"{self.base_url}/{token.address}"
        try:
            response = await self.http.get(url, timeout=self.timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = ExternalApiError(
                f"{PROVIDER_NAME} request failed: {e}",
                provider=PROVIDER_NAME,
                ticker=token.ticker,
                cause=e,
            ).with_context(url=url, stage="market_cap")
            logger.error("market_cap.fetch.exception", **error.to_dict())
            return 0.0

        if not response.is_success:
            error = ExternalApiError(
                f"{PROVIDER_NAME} returned HTTP {response.status_code}",
                provider=PROVIDER_NAME,
                status=response.status_code,
                ticker=token.ticker,
            ).with_context(url=url, stage="market_cap")
            logger.error("market_cap.fetch.error", **error.to_dict())
            return 0.0

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("market_cap.fetch.invalid_json", ticker=token.ticker, url=url, error=str(e))
            return 0.0

        price = select_highest_liquidity_price(payload if isinstance(payload, dict) else None, token.ticker)
        if not price:
            return 0.0
        if not token.supply or token.supply <= 0:
            logger.warning("market_cap.supply.missing", ticker=token.ticker, supply=token.supply)
            return 0.0
        return market_cap(price, token.supply)

    async def fetch_cap_map(self) -> RawCapMap:
        """Fetch every symbol concurrently; returns once all have settled."""
        caps = await asyncio.gather(*(self.fetch_token_cap(token) for token in self.tokens))
        cap_map = {token.ticker: cap for token, cap in zip(self.tokens, caps, strict=True)}
        logger.debug("market_cap.fetch.done", caps=cap_map)
        return cap_map

    async def fetch_rounded_cap_map(self) -> RoundedCapMap:
        return round_cap_map(await self.fetch_cap_map())


class StaticMarketData:
    """Fixed cap map; used for replays and tests."""

    def __init__(self, caps: Mapping[str, float]):
        self.caps = dict(caps)
        self.calls = 0

    async def fetch_cap_map(self) -> RawCapMap:
        self.calls += 1
        return dict(self.caps)


__all__ = [
    "DEXSCREENER_BASE",
    "MarketDataSource",
    "MarketCapClient",
    "StaticMarketData",
    "select_highest_liquidity_price",
]
