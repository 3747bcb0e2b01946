"""Price data and pattern clients."""

from app.clients.coingecko import CoinGeckoPriceProvider
from app.clients.providers import NullPatternSource, PatternSource, PriceDataProvider

__all__ = [
    "CoinGeckoPriceProvider",
    "NullPatternSource",
    "PatternSource",
    "PriceDataProvider",
]
