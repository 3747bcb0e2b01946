"""Collaborator interfaces consumed by the scheduler."""

from typing import Protocol

from core.models import PatternSignal, PriceQuote


class PriceDataProvider(Protocol):
    async def get_batch_prices(self, symbols: list[str]) -> dict[str, PriceQuote]:
        """Current quote per symbol. Symbols that could not be priced are absent."""
        ...


class PatternSource(Protocol):
    async def get_patterns(self, symbol: str, timeframe: str) -> list[PatternSignal]:
        ...


class NullPatternSource:
    """Pattern source that never reports patterns."""

    async def get_patterns(self, symbol: str, timeframe: str) -> list[PatternSignal]:
        return []
