"""Market regime classification (pure logic, no I/O)."""

from core.regime.detector import RegimeDetector, default_regime

__all__ = ["RegimeDetector", "default_regime"]
