"""Stock research aggregation from free market data and news providers."""

__version__ = "0.1.0"
