"""CoinGecko REST client for batch spot prices."""

import logging
import math
from typing import Any

import httpx

from core.models import PriceQuote

logger = logging.getLogger(__name__)


class CoinGeckoPriceProvider:
    """Batch price provider backed by the CoinGecko simple/price endpoint."""

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        provider_ids: dict[str, str],
        base_url: str | None = None,
        api_key: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            provider_ids: symbol -> CoinGecko coin id (e.g. "BTC/USDT" -> "bitcoin")
            base_url: API root, defaults to the public API
            api_key: Optional API key sent as x-cg-pro-api-key
            timeout: Request timeout in seconds
            client: Preconfigured client (tests)
        """
        self.provider_ids = dict(provider_ids)
        self.base_url = base_url or self.BASE_URL
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"accept": "application/json"}
            if self.api_key:
                headers["x-cg-pro-api-key"] = self.api_key
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, endpoint: str, params: dict[str, Any]) -> Any:
        client = await self._get_client()
        response = await client.get(endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def get_batch_prices(self, symbols: list[str]) -> dict[str, PriceQuote]:
        """
        Fetch current quotes for many symbols in one request.

        Args:
            symbols: Tracked symbols (e.g. ["BTC/USDT", "ETH/USDT"])

        Returns:
            symbol -> PriceQuote; symbols without a provider id or without a
            usable price in the response are left out

        Raises:
            httpx.HTTPError: If the request itself fails
        """
        ids = {self.provider_ids[s]: s for s in symbols if s in self.provider_ids}
        unmapped = [s for s in symbols if s not in self.provider_ids]
        if unmapped:
            logger.warning("No provider id for %s", unmapped)
        if not ids:
            return {}

        data = await self._request(
            "/simple/price",
            {
                "ids": ",".join(sorted(ids)),
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_market_cap": "true",
                "include_24hr_vol": "true",
            },
        )

        quotes: dict[str, PriceQuote] = {}
        for coin_id, symbol in ids.items():
            quote = self._parse_quote(symbol, data.get(coin_id))
            if quote is not None:
                quotes[symbol] = quote
        return quotes

    @staticmethod
    def _parse_quote(symbol: str, item: Any) -> PriceQuote | None:
        if not isinstance(item, dict):
            return None
        try:
            price = float(item["usd"])
        except (KeyError, TypeError, ValueError):
            return None

        def _field(name: str) -> float:
            try:
                value = float(item.get(name) or 0.0)
            except (TypeError, ValueError):
                return 0.0
            return value if math.isfinite(value) else 0.0

        return PriceQuote(
            symbol=symbol,
            price=price,
            change24h=_field("usd_24h_change"),
            market_cap=_field("usd_market_cap"),
            volume24h=_field("usd_24h_vol"),
        )
