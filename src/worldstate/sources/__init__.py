"""Market-data sources."""

from worldstate.sources.market_cap import MarketCapClient, MarketDataSource, StaticMarketData

__all__ = ["MarketCapClient", "MarketDataSource", "StaticMarketData"]
