"""Latest-signal cache keyed by (symbol, timeframe).

Writes go through a BoundedCache owned by this class; after every write a
new read-only snapshot is published in a single assignment. Readers only
touch the snapshot, so they never block on a calculation pass and always
see the last fully written Signal for each key.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from app.storage.cache import BoundedCache, Clock
from core.models import Direction, Signal

logger = logging.getLogger(__name__)

SignalKey = tuple[str, str]

DEFAULT_MAX_SIGNALS = 5000


class SignalCache:
    """Latest Signal per (symbol, timeframe)."""

    def __init__(self, max_entries: int = DEFAULT_MAX_SIGNALS, clock: Clock | None = None):
        kwargs = {"clock": clock} if clock is not None else {}
        self._store: BoundedCache[SignalKey, Signal] = BoundedCache(
            max_entries=max_entries, name="signals", **kwargs
        )
        self._snapshot: Mapping[SignalKey, Signal] = MappingProxyType({})

    def _publish(self) -> None:
        self._snapshot = MappingProxyType(dict(self._store.items()))

    def put(self, signal: Signal) -> None:
        """Replace the cached signal for the signal's key."""
        self._store.set(signal.key, signal)
        self._publish()

    def put_many(self, signals: list[Signal]) -> None:
        for signal in signals:
            self._store.set(signal.key, signal)
        self._publish()

    def get(self, symbol: str, timeframe: str) -> Signal | None:
        return self._snapshot.get((symbol, timeframe))

    def get_signals(self, symbol: str | None = None, timeframe: str | None = None) -> list[Signal]:
        """Cached signals filtered by symbol and/or timeframe."""
        snapshot = self._snapshot
        return [
            signal
            for (sym, tf), signal in snapshot.items()
            if (symbol is None or sym == symbol) and (timeframe is None or tf == timeframe)
        ]

    def snapshot(self) -> Mapping[SignalKey, Signal]:
        return self._snapshot

    def invalidate(self, symbol: str | None = None, timeframe: str | None = None) -> int:
        """Drop matching entries (all entries when no filter is given)."""
        if symbol is None and timeframe is None:
            removed = self._store.invalidate()
        else:
            removed = 0
            for sym, tf in self._store.keys():
                if (symbol is None or sym == symbol) and (timeframe is None or tf == timeframe):
                    removed += self._store.invalidate((sym, tf))
        self._publish()
        if removed:
            logger.info("Invalidated %d cached signals", removed)
        return removed

    def distribution(self) -> dict[str, int]:
        """Count of cached signals per direction."""
        counts = {d.name: 0 for d in Direction}
        for signal in self._snapshot.values():
            counts[signal.direction.name] += 1
        return counts

    def __len__(self) -> int:
        return len(self._snapshot)
