"""Signal, confluence result and performance record models."""

import hashlib
from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer, model_validator

from core.models.indicator import IndicatorKind
from core.models.regime import RegimeType


class Direction(int, Enum):
    """Signal direction. The value doubles as the sign of the move."""

    LONG = 1
    SHORT = -1
    NEUTRAL = 0

    @classmethod
    def from_sign(cls, value: float) -> "Direction":
        if value > 0:
            return cls.LONG
        if value < 0:
            return cls.SHORT
        return cls.NEUTRAL


def _parse_direction(value):
    """Accept a Direction, its name ('LONG') or its sign (1/-1/0)."""
    if isinstance(value, str) and value.upper() in Direction.__members__:
        return Direction[value.upper()]
    return value


# Serialized by name in JSON, so API consumers see LONG/SHORT/NEUTRAL
DirectionField = Annotated[
    Direction,
    BeforeValidator(_parse_direction),
    PlainSerializer(lambda d: d.name, return_type=str, when_used="json"),
]


class PerformanceOutcome(str, Enum):
    """Realized outcome of an issued signal."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"  # Take profit hit or positive realized return
    FAILURE = "FAILURE"  # Stop loss hit or negative realized return


def _generate_signal_id(symbol: str, timeframe: str, timestamp: datetime, direction: int) -> str:
    """Generate deterministic signal ID based on signal attributes.

    The same pass over the same inputs produces the same ID, so a
    recomputed signal replaces rather than duplicates its predecessor.
    """
    ts_str = timestamp.strftime("%Y%m%d%H%M%S%f")
    key = f"{symbol}:{timeframe}:{ts_str}:{direction}"
    return hashlib.sha256(key.encode()).hexdigest()[:32]


class ConfluenceResult(BaseModel):
    """Fused score of all confluence components for one pair."""

    model_config = ConfigDict(frozen=True)

    direction: DirectionField
    raw_score: float
    confidence: float = Field(ge=25, le=95)
    component_breakdown: dict[str, float] = Field(default_factory=dict)
    reasoning: list[str] = Field(default_factory=list)
    candidate_direction: DirectionField = Direction.NEUTRAL
    indicator_contributions: dict[IndicatorKind, float] = Field(default_factory=dict)


class Signal(BaseModel):
    """Latest directional signal for one (symbol, timeframe).

    Replaced once per cycle; lives until the next successful recalculation
    or process restart.
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""  # Will be set in model_post_init
    symbol: str
    timeframe: str
    direction: DirectionField
    confidence: float = Field(ge=25, le=95)
    entry_price: float = Field(gt=0)
    stop_loss: float | None = None  # None for NEUTRAL
    take_profit: float | None = None  # None for NEUTRAL
    timestamp: datetime
    raw_score: float = 0.0
    regime: RegimeType | None = None
    synthetic_history: bool = False
    indicator_snapshot: dict[str, dict] = Field(default_factory=dict)
    # Signed vote per indicator (bullish positive), kept for outcome attribution
    indicator_contributions: dict[IndicatorKind, float] = Field(default_factory=dict)
    component_breakdown: dict[str, float] = Field(default_factory=dict)
    reasoning: list[str] = Field(default_factory=list)

    def model_post_init(self, __context) -> None:
        """Generate deterministic ID after model initialization."""
        if not self.id:
            object.__setattr__(
                self,
                "id",
                _generate_signal_id(
                    self.symbol, self.timeframe, self.timestamp, self.direction.value
                ),
            )

    @model_validator(mode="after")
    def _check_levels(self):
        if self.direction == Direction.NEUTRAL:
            return self
        if self.stop_loss is None or self.take_profit is None:
            raise ValueError(f"{self.direction.name} signal requires stop_loss and take_profit")
        if self.direction == Direction.LONG:
            if not (self.stop_loss < self.entry_price < self.take_profit):
                raise ValueError(
                    f"LONG levels out of order: sl={self.stop_loss} "
                    f"entry={self.entry_price} tp={self.take_profit}"
                )
        elif not (self.take_profit < self.entry_price < self.stop_loss):
            raise ValueError(
                f"SHORT levels out of order: tp={self.take_profit} "
                f"entry={self.entry_price} sl={self.stop_loss}"
            )
        return self

    @property
    def key(self) -> tuple[str, str]:
        return (self.symbol, self.timeframe)

    @property
    def risk_amount(self) -> float:
        """Get the risk amount (distance to stop loss)."""
        if self.stop_loss is None:
            return 0.0
        return abs(self.entry_price - self.stop_loss)

    @property
    def reward_amount(self) -> float:
        """Get the reward amount (distance to take profit)."""
        if self.take_profit is None:
            return 0.0
        return abs(self.take_profit - self.entry_price)

    def check_outcome(self, price: float) -> PerformanceOutcome | None:
        """Return SUCCESS/FAILURE if price has reached the target/stop, else None."""
        if self.direction == Direction.LONG:
            if price >= self.take_profit:
                return PerformanceOutcome.SUCCESS
            if price <= self.stop_loss:
                return PerformanceOutcome.FAILURE
        elif self.direction == Direction.SHORT:
            if price <= self.take_profit:
                return PerformanceOutcome.SUCCESS
            if price >= self.stop_loss:
                return PerformanceOutcome.FAILURE
        return None


class SignalPerformanceRecord(BaseModel):
    """Tracks how an issued signal played out.

    Created PENDING when a signal is issued, resolved asynchronously,
    then consumed in batches by the adaptive weight manager.
    """

    signal_id: str
    symbol: str
    timeframe: str = ""
    direction: DirectionField = Direction.NEUTRAL
    entry_price: float = 0.0
    indicator_context: dict[IndicatorKind, float] = Field(default_factory=dict)
    outcome: PerformanceOutcome = PerformanceOutcome.PENDING
    realized_return: float = 0.0
    created_at: datetime | None = None
    resolved_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.outcome != PerformanceOutcome.PENDING

    def resolve(
        self,
        outcome: PerformanceOutcome,
        realized_return: float = 0.0,
        when: datetime | None = None,
    ) -> None:
        """Mark this record as resolved (no-op if already resolved)."""
        if self.is_resolved:
            return
        self.outcome = outcome
        self.realized_return = realized_return
        self.resolved_at = when
