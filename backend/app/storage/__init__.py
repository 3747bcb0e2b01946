"""In-memory storage: caches and accumulated price history."""

from app.storage.cache import BoundedCache
from app.storage.price_history import PriceHistoryStore
from app.storage.regime_cache import RegimeCache
from app.storage.signal_cache import SignalCache

__all__ = ["BoundedCache", "PriceHistoryStore", "RegimeCache", "SignalCache"]
