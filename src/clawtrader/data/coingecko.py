"""
CoinGecko market data client for ClawTrader.

Fetches the current market summary for a coin and, optionally, a daily price
history from which RSI, MACD and moving averages are computed.

Example Usage:
    ```python
    from clawtrader.data.coingecko import CoinGeckoClient

    async with CoinGeckoClient() as client:
        snapshot = await client.fetch_snapshot("bitcoin")

    print(snapshot.current_price, snapshot.rsi)
    ```
"""

from typing import Any

import httpx

from clawtrader.analysis.indicators import IndicatorSet, PriceHistoryAnalyzer
from clawtrader.utils import get_logger

from .market import MarketSnapshot

logger = get_logger(__name__)


class CoinGeckoClient:
    """Client for the CoinGecko public API.

    A failed summary request propagates (the caller must not decide on missing
    data); a failed history request only drops the indicator fields.
    """

    BASE_URL = "https://api.coingecko.com/api/v3"
    TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str = BASE_URL,
        api_key: str | None = None,
        timeout: float = TIMEOUT,
        history_days: int = 365,
        include_indicators: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize CoinGecko client.

        Args:
            base_url: API base URL
            api_key: Optional demo/pro API key
            timeout: HTTP request timeout in seconds
            history_days: Days of daily closes used for indicators
            include_indicators: Whether to fetch history and compute indicators
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.history_days = history_days
        self.include_indicators = include_indicators
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client.

        Returns:
            Configured httpx AsyncClient with optional auth header
        """
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.api_key:
                headers["x-cg-demo-api-key"] = self.api_key

            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client and cleanup resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CoinGeckoClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    async def fetch_snapshot(self, coin_id: str) -> MarketSnapshot:
        """Fetch a market snapshot, with indicators when history is available.

        Args:
            coin_id: CoinGecko coin id (e.g. "bitcoin")

        Returns:
            MarketSnapshot for the coin

        Raises:
            httpx.HTTPError: If the summary request fails
            ValueError: If the summary response is malformed
        """
        client = await self._get_client()

        logger.debug("fetching_market_summary", coin_id=coin_id)

        response = await client.get(
            f"/coins/{coin_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "community_data": "false",
                "developer_data": "false",
            },
        )
        response.raise_for_status()
        summary = self._parse_summary(coin_id, response.json())

        indicators = IndicatorSet()
        if self.include_indicators:
            indicators = await self._fetch_indicators(coin_id)

        snapshot = MarketSnapshot(
            symbol=summary["symbol"],
            current_price=summary["current_price"],
            price_change_24h=summary["price_change_24h"],
            price_change_7d=summary["price_change_7d"],
            high_24h=summary["high_24h"],
            low_24h=summary["low_24h"],
            volume_24h=summary["volume_24h"],
            rsi=indicators.rsi,
            macd=indicators.macd,
            moving_averages=indicators.moving_averages,
        )

        logger.info(
            "market_snapshot_fetched",
            coin_id=coin_id,
            price=snapshot.current_price,
            change_24h=snapshot.price_change_24h,
            full_indicators=snapshot.has_full_indicators,
        )
        return snapshot

    async def fetch_price_history(self, coin_id: str) -> list[float]:
        """Fetch daily closing prices, oldest first.

        Raises:
            httpx.HTTPError: If request fails
            ValueError: If response is malformed
        """
        client = await self._get_client()
        response = await client.get(
            f"/coins/{coin_id}/market_chart",
            params={"vs_currency": "usd", "days": self.history_days, "interval": "daily"},
        )
        response.raise_for_status()

        try:
            return [float(point[1]) for point in response.json()["prices"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ValueError(f"Failed to parse price history for {coin_id}: {e}") from e

    async def _fetch_indicators(self, coin_id: str) -> IndicatorSet:
        try:
            closes = await self.fetch_price_history(coin_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("price_history_unavailable", coin_id=coin_id, error=str(e))
            return IndicatorSet()
        return PriceHistoryAnalyzer(closes).indicators()

    def _parse_summary(self, coin_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Extract the summary fields from a /coins/{id} response.

        Raises:
            ValueError: If required fields are missing or the price is not positive
        """
        try:
            market = data["market_data"]
            price = float(market["current_price"]["usd"])
            summary = {
                "symbol": str(data.get("symbol", coin_id)).upper(),
                "current_price": price,
                "price_change_24h": float(market.get("price_change_percentage_24h") or 0.0),
                "price_change_7d": _usd_or_none(market.get("price_change_percentage_7d")),
                "high_24h": _usd_or_none((market.get("high_24h") or {}).get("usd")),
                "low_24h": _usd_or_none((market.get("low_24h") or {}).get("usd")),
                "volume_24h": _usd_or_none((market.get("total_volume") or {}).get("usd")),
            }
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Failed to parse market data for {coin_id}: {e}") from e

        if price <= 0:
            raise ValueError(f"Non-positive price for {coin_id}: {price}")
        return summary


def _usd_or_none(value: Any) -> float | None:
    return float(value) if value is not None else None
