"""Error taxonomy for the signal pipeline.

None of these are fatal to the process. Each one is isolated to a single
(symbol, timeframe) key or a single weight update and is handled where it
is raised or one level up in the scheduler.
"""


class SignalEngineError(Exception):
    """Base class for all signal pipeline errors."""


class DataUnavailableError(SignalEngineError):
    """Price missing or invalid for a symbol this tick."""

    def __init__(self, symbol: str, reason: str = "missing"):
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Price data unavailable for {symbol}: {reason}")


class InsufficientHistoryError(SignalEngineError):
    """Rolling window is shorter than the number of points required."""

    def __init__(self, symbol: str, timeframe: str, have: int, need: int):
        self.symbol = symbol
        self.timeframe = timeframe
        self.have = have
        self.need = need
        super().__init__(
            f"Insufficient history for {symbol} {timeframe}: have {have}, need {need}"
        )


class CalculationError(SignalEngineError):
    """Unexpected failure while computing one (symbol, timeframe) pair."""


class RegimeStaleError(SignalEngineError):
    """Regime recomputation failed; the previous regime is still served."""


class WeightBoundsViolation(SignalEngineError):
    """An adaptive update pushed a weight outside [min_weight, max_weight].

    Raised internally only for reporting; the update is applied with the
    clamped value.
    """
