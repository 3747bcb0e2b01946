"""Tracked-symbol configuration loaded from tracking.yaml.

Maps each tracked symbol to its price provider id. Example:

    symbols:
      - symbol: BTC/USDT
        provider_id: bitcoin
        category: major
      - symbol: DOGE/USDT
        provider_id: dogecoin
        category: meme
        enabled: false

No YAML file = the built-in major pairs.
"""

import logging
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

logger = logging.getLogger(__name__)


class TrackedSymbol(BaseModel):
    """A single tracked symbol entry."""

    symbol: str
    provider_id: str
    name: str = ""
    category: str = "altcoin"
    enabled: bool = True


DEFAULT_TRACKED_SYMBOLS = [
    TrackedSymbol(symbol="BTC/USDT", provider_id="bitcoin", name="Bitcoin", category="major"),
    TrackedSymbol(symbol="ETH/USDT", provider_id="ethereum", name="Ethereum", category="major"),
    TrackedSymbol(symbol="BNB/USDT", provider_id="binancecoin", name="Binance Coin", category="major"),
    TrackedSymbol(symbol="XRP/USDT", provider_id="ripple", name="Ripple", category="major"),
    TrackedSymbol(symbol="SOL/USDT", provider_id="solana", name="Solana", category="layer1"),
]


class TrackingConfig(BaseModel):
    """Top-level tracking.yaml configuration."""

    symbols: list[TrackedSymbol] = list(DEFAULT_TRACKED_SYMBOLS)

    @model_validator(mode="after")
    def _validate(self):
        seen: set[str] = set()
        for entry in self.symbols:
            if entry.symbol in seen:
                raise ValueError(f"duplicate symbol '{entry.symbol}' in tracking config")
            seen.add(entry.symbol)
        return self

    def enabled_symbols(self) -> list[str]:
        return [s.symbol for s in self.symbols if s.enabled]

    def provider_ids(self) -> dict[str, str]:
        """symbol -> provider id for enabled symbols."""
        return {s.symbol: s.provider_id for s in self.symbols if s.enabled}

    def restrict_to(self, symbols: list[str]) -> "TrackingConfig":
        """Keep only entries for the given symbols, in their order."""
        by_symbol = {s.symbol: s for s in self.symbols}
        missing = [s for s in symbols if s not in by_symbol]
        if missing:
            logger.warning("No provider id configured for %s, they will not be tracked", missing)
        return TrackingConfig(symbols=[by_symbol[s] for s in symbols if s in by_symbol])


_DEFAULT_PATH = Path(__file__).parent.parent / "tracking.yaml"


def load_tracking_config(path: Path | None = None) -> TrackingConfig:
    """Load tracking config from YAML file.

    Falls back to the built-in symbols if the file doesn't exist.
    """
    config_path = path or _DEFAULT_PATH

    # Load .env into os.environ so settings overrides next to the YAML apply
    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        logger.info(
            "No tracking.yaml found at %s, using %d built-in symbols",
            config_path,
            len(DEFAULT_TRACKED_SYMBOLS),
        )
        return TrackingConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = TrackingConfig(**raw)
    logger.info(
        "Loaded tracking config: %d symbols (%d enabled)",
        len(config.symbols),
        len(config.enabled_symbols()),
    )
    return config
