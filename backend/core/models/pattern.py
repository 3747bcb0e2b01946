"""Chart pattern signal supplied by an external pattern recognition source."""

from dataclasses import dataclass

from core.models.signal import Direction


@dataclass(slots=True, frozen=True)
class PatternSignal:
    type: str  # e.g. "double_bottom"
    direction: Direction
    confidence: float  # 0-100

    @property
    def score(self) -> float:
        """Signed strength in [-1, 1]."""
        return self.direction.value * max(0.0, min(100.0, self.confidence)) / 100
