"""Performance tracker for issued signals.

Every LONG/SHORT signal gets a PENDING SignalPerformanceRecord carrying
the indicators that voted with it. A record resolves either:

1. from a later price crossing the signal's target (SUCCESS) or stop (FAILURE)
2. from an external outcome report via `resolve()`

Resolved records queue up until the scheduler drains them into the
adaptive weight manager.
"""

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Awaitable, Callable

from core.models import (
    Direction,
    PerformanceOutcome,
    PriceQuote,
    Signal,
    SignalPerformanceRecord,
)

logger = logging.getLogger(__name__)

# Type alias for outcome callback
OutcomeCallback = Callable[[SignalPerformanceRecord], Awaitable[None]]

DEFAULT_MAX_PENDING = 2000


def record_from_signal(signal: Signal) -> SignalPerformanceRecord:
    """PENDING record whose context is each indicator's vote aligned to the signal.

    A positive context value means the indicator voted with the signal.
    """
    sign = signal.direction.value
    return SignalPerformanceRecord(
        signal_id=signal.id,
        symbol=signal.symbol,
        timeframe=signal.timeframe,
        direction=signal.direction,
        entry_price=signal.entry_price,
        indicator_context={k: v * sign for k, v in signal.indicator_contributions.items()},
        created_at=signal.timestamp,
    )


def realized_return(signal: Signal, price: float) -> float:
    """Signed return of the signal at price, as a fraction of entry."""
    return (price - signal.entry_price) / signal.entry_price * signal.direction.value


class PerformanceTracker:
    """Track pending signals and resolve their outcomes."""

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING):
        self.max_pending = max_pending

        # Pending signals by id, oldest first
        self._pending: OrderedDict[str, tuple[Signal, SignalPerformanceRecord]] = OrderedDict()

        # Resolved records not yet handed to the weight manager
        self._resolved: list[SignalPerformanceRecord] = []

        self._outcome_callbacks: list[OutcomeCallback] = []
        self._lock = asyncio.Lock()
        self._counts = {PerformanceOutcome.SUCCESS.value: 0, PerformanceOutcome.FAILURE.value: 0}
        self._dropped = 0

    def on_outcome(self, callback: OutcomeCallback) -> None:
        """Register callback for resolved records.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._outcome_callbacks:
            self._outcome_callbacks.append(callback)

    async def track(self, signal: Signal) -> SignalPerformanceRecord | None:
        """Start tracking a signal. NEUTRAL and already tracked signals are ignored."""
        if signal.direction == Direction.NEUTRAL:
            return None
        async with self._lock:
            if signal.id in self._pending:
                return None
            record = record_from_signal(signal)
            self._pending[signal.id] = (signal, record)
            while len(self._pending) > self.max_pending:
                dropped_id, _ = self._pending.popitem(last=False)
                self._dropped += 1
                logger.debug("Dropped oldest pending signal %s (max %d)", dropped_id, self.max_pending)
            return record

    async def check_prices(self, quote: PriceQuote, when: datetime) -> list[SignalPerformanceRecord]:
        """Resolve pending signals for the quote's symbol whose stop or target was crossed."""
        resolved: list[SignalPerformanceRecord] = []
        async with self._lock:
            for signal_id, (signal, record) in list(self._pending.items()):
                if signal.symbol != quote.symbol:
                    continue
                outcome = signal.check_outcome(quote.price)
                if outcome is None:
                    continue
                record.resolve(outcome, realized_return(signal, quote.price), when)
                self._finish(signal_id, record)
                resolved.append(record)

        for record in resolved:
            await self._notify(record)
        return resolved

    async def resolve(
        self,
        signal_id: str,
        outcome: PerformanceOutcome,
        realized_return: float = 0.0,
        when: datetime | None = None,
    ) -> SignalPerformanceRecord | None:
        """Resolve a pending signal from an external outcome report.

        Returns:
            The resolved record, or None if the signal is not pending
        """
        if outcome == PerformanceOutcome.PENDING:
            raise ValueError("cannot resolve a signal to PENDING")
        async with self._lock:
            entry = self._pending.get(signal_id)
            if entry is None:
                logger.warning("Outcome for unknown or resolved signal %s ignored", signal_id)
                return None
            _, record = entry
            record.resolve(outcome, realized_return, when)
            self._finish(signal_id, record)

        await self._notify(record)
        return record

    def _finish(self, signal_id: str, record: SignalPerformanceRecord) -> None:
        del self._pending[signal_id]
        self._resolved.append(record)
        self._counts[record.outcome.value] += 1
        logger.info(
            "Signal %s %s %s %s: %s (%.2f%%)",
            signal_id[:8],
            record.symbol,
            record.timeframe,
            record.direction.name,
            record.outcome.value,
            record.realized_return * 100,
        )

    async def _notify(self, record: SignalPerformanceRecord) -> None:
        for callback in self._outcome_callbacks:
            try:
                await callback(record)
            except Exception:
                logger.exception("Outcome callback failed for %s", record.signal_id)

    def drain_resolved(self) -> list[SignalPerformanceRecord]:
        """Hand over resolved records collected since the last drain."""
        records, self._resolved = self._resolved, []
        return records

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def get_stats(self) -> dict:
        return {
            "pending": len(self._pending),
            "awaiting_weight_update": len(self._resolved),
            "outcomes": dict(self._counts),
            "dropped": self._dropped,
        }
