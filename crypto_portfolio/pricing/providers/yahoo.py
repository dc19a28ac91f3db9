"""Yahoo Finance chart API client and price-history adapter."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable

import httpx
from opentelemetry import trace

from crypto_portfolio.domain.money import is_fiat
from crypto_portfolio.domain.result import Result
from crypto_portfolio.pricing.rate_limiter import RateLimiter
from crypto_portfolio.pricing.records import PriceRecord

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{ticker}"
DEFAULT_REQUESTS_PER_MINUTE = 60
DEFAULT_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; crypto-portfolio/0.1)"}

# Yahoo lists some coins under a disambiguated ticker.
TICKER_ALIASES = {
    "IMX": "IMX10603",
    "GRT": "GRT6719",
    "RNDR": "RENDER",
    "UNI": "UNI7083",
    "BEAM": "BEAM28298",
}


class YahooFinanceError(RuntimeError):
    """Raised when the chart endpoint reports an error."""


class YahooFinanceClient:
    def __init__(
        self,
        *,
        requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._rate_limiter = rate_limiter or RateLimiter(requests_per_minute)
        self._client = client or httpx.AsyncClient(headers=DEFAULT_HEADERS)
        self._owns_client = client is None
        self._timeout = timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def chart(self, ticker: str, params: dict[str, Any]) -> dict[str, Any]:
        await self._rate_limiter.ensure_rate_limit()
        response = await self._client.get(CHART_URL.format(ticker=ticker), params=params, timeout=self._timeout)
        response.raise_for_status()
        payload = response.json().get("chart") or {}
        error = payload.get("error")
        if error:
            description = error.get("description") if isinstance(error, dict) else error
            raise YahooFinanceError(str(description))
        results = payload.get("result") or []
        if not results:
            raise YahooFinanceError(f"No chart data returned for {ticker}")
        return results[0]

    async def daily_history(self, ticker: str, start: date, end: date) -> dict[str, Any]:
        return await self.chart(
            ticker,
            {
                "period1": _epoch(start),
                "period2": _epoch(end + timedelta(days=1)),
                "interval": "1d",
                "events": "history",
            },
        )

    async def latest(self, ticker: str) -> dict[str, Any]:
        return await self.chart(ticker, {"range": "1d", "interval": "1d"})


class YahooFinancePriceHistoryApi:
    def __init__(self, client: YahooFinanceClient, *, today: Callable[[], date] | None = None) -> None:
        self._client = client
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    def determine_trading_pair(self, from_symbol: str, to_symbol: str) -> str:
        if is_fiat(from_symbol) and is_fiat(to_symbol):
            return f"{from_symbol}{to_symbol}=X"
        return f"{TICKER_ALIASES.get(from_symbol, from_symbol)}-{to_symbol}"

    async def fetch_price_history(
        self, currency_pair: str, start: date, end: date
    ) -> Result[list[PriceRecord]]:
        with tracer.start_as_current_span("yahoo.fetch_price_history") as span:
            span.set_attribute("price.currency_pair", currency_pair)
            try:
                chart = await self._client.daily_history(currency_pair, start, end)
                records = self._parse_candles(currency_pair, chart)
            except (YahooFinanceError, httpx.HTTPError) as exc:
                logger.error("Yahoo Finance fetch for %s failed: %s", currency_pair, exc)
                return Result.fail(f"Yahoo Finance request failed for {currency_pair}: {exc}")
            except (KeyError, IndexError, TypeError, ValueError, InvalidOperation) as exc:
                logger.error("Unexpected Yahoo Finance payload for %s: %s", currency_pair, exc)
                return Result.fail(f"Unexpected Yahoo Finance payload for {currency_pair}.")

        logger.info("Fetched %s Yahoo Finance prices for %s (%s to %s)", len(records), currency_pair, start, end)
        return Result.ok(records)

    async def fetch_current_price(
        self, symbols: Iterable[str], currency: str
    ) -> Result[list[PriceRecord]]:
        records: list[PriceRecord] = []
        for symbol in symbols:
            pair = self.determine_trading_pair(symbol, currency)
            try:
                chart = await self._client.latest(pair)
                price = chart["meta"]["regularMarketPrice"]
            except (YahooFinanceError, httpx.HTTPError) as exc:
                logger.error("Yahoo Finance quote for %s failed: %s", pair, exc)
                return Result.fail(f"Yahoo Finance request failed for {pair}: {exc}")
            except (KeyError, TypeError):
                logger.error("Unexpected Yahoo Finance quote payload for %s", pair)
                return Result.fail(f"Unexpected Yahoo Finance payload for {pair}.")
            records.append(PriceRecord(pair, self._today(), Decimal(str(price))))
        return Result.ok(records)

    def _parse_candles(self, currency_pair: str, chart: dict[str, Any]) -> list[PriceRecord]:
        timestamps = chart.get("timestamp") or []
        closes = chart["indicators"]["quote"][0].get("close") or []
        offset = int(chart.get("meta", {}).get("gmtoffset", 0))
        today = self._today()
        by_day: dict[date, PriceRecord] = {}
        for ts, close in zip(timestamps, closes):
            if close is None:
                continue
            day = datetime.fromtimestamp(int(ts) + offset, tz=timezone.utc).date()
            # The chart API sometimes stamps the running session with tomorrow's date.
            if day > today:
                day = today
            by_day[day] = PriceRecord(currency_pair, day, Decimal(str(close)))
        return [by_day[day] for day in sorted(by_day)]


def _epoch(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp())


__all__ = [
    "CHART_URL",
    "TICKER_ALIASES",
    "YahooFinanceClient",
    "YahooFinanceError",
    "YahooFinancePriceHistoryApi",
]
