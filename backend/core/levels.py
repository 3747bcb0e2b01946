"""Entry/exit level derivation.

stop_pct = max(stop_floor_pct, |change24h| * risk_factor) * timeframe multiplier,
capped at max_stop_pct; target_pct = stop_pct * risk_reward_ratio.
LONG puts the stop below entry and the target above; SHORT the inverse.
"""

from core.models.config import RiskConfig
from core.models.signal import Direction


def stop_loss_pct(change24h: float, timeframe: str, config: RiskConfig) -> float:
    """Stop distance as a fraction of entry price."""
    base = max(config.stop_floor_pct, abs(change24h) * config.risk_factor)
    return min(config.max_stop_pct, base * config.timeframe_multiplier(timeframe))


def compute_levels(
    direction: Direction,
    entry_price: float,
    change24h: float,
    timeframe: str,
    config: RiskConfig | None = None,
) -> tuple[float | None, float | None]:
    """
    Derive stop loss and take profit for a signal.

    Args:
        direction: Signal direction
        entry_price: Current price (must be positive)
        change24h: 24h price change, percent
        timeframe: Signal timeframe, selects the volatility multiplier
        config: Risk parameters

    Returns:
        Tuple of (stop_loss, take_profit); (None, None) for NEUTRAL
    """
    if direction == Direction.NEUTRAL:
        return None, None

    config = config or RiskConfig()
    stop_pct = stop_loss_pct(change24h, timeframe, config)
    target_pct = stop_pct * config.risk_reward_ratio
    sign = direction.value

    stop_loss = entry_price * (1 - sign * stop_pct)
    take_profit = entry_price * (1 + sign * target_pct)
    return stop_loss, take_profit
