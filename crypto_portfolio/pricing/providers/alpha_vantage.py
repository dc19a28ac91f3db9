"""Alpha Vantage client and price-history adapter."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import httpx
from opentelemetry import trace

from crypto_portfolio.domain.money import is_fiat
from crypto_portfolio.domain.result import Result
from crypto_portfolio.pricing.rate_limiter import RateLimiter
from crypto_portfolio.pricing.records import PriceRecord

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

BASE_URL = "https://www.alphavantage.co/query"
DEFAULT_REQUESTS_PER_MINUTE = 5

DIGITAL_SERIES_KEY = "Time Series (Digital Currency Daily)"
FX_SERIES_KEY = "Time Series FX (Daily)"
EXCHANGE_RATE_KEY = "Realtime Currency Exchange Rate"


class AlphaVantageError(RuntimeError):
    """Raised when Alpha Vantage returns an error payload."""


class AlphaVantageClient:
    """Throttled Alpha Vantage client with convenience helpers."""

    def __init__(
        self,
        api_key: str,
        *,
        requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._rate_limiter = rate_limiter or RateLimiter(requests_per_minute)
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._timeout = timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, params: dict[str, Any]) -> dict[str, Any]:
        await self._rate_limiter.ensure_rate_limit()
        query = {**params, "apikey": self._api_key}
        response = await self._client.get(BASE_URL, params=query, timeout=self._timeout)
        response.raise_for_status()
        payload = response.json()
        for key in ("Note", "Information", "Error Message"):
            if key in payload:
                raise AlphaVantageError(str(payload[key]))
        return payload

    async def digital_currency_daily(self, symbol: str, market: str) -> dict[str, Any]:
        return await self._request({"function": "DIGITAL_CURRENCY_DAILY", "symbol": symbol, "market": market})

    async def fx_daily(self, from_symbol: str, to_symbol: str) -> dict[str, Any]:
        return await self._request(
            {"function": "FX_DAILY", "from_symbol": from_symbol, "to_symbol": to_symbol, "outputsize": "full"}
        )

    async def currency_exchange_rate(self, from_currency: str, to_currency: str) -> dict[str, Any]:
        return await self._request(
            {"function": "CURRENCY_EXCHANGE_RATE", "from_currency": from_currency, "to_currency": to_currency}
        )


class AlphaVantagePriceHistoryApi:
    """Expose :class:`AlphaVantageClient` through the price-history contract.

    Trading pairs are written ``BASE/QUOTE``. Fiat bases are served by
    ``FX_DAILY``; everything else by ``DIGITAL_CURRENCY_DAILY``.
    """

    def __init__(self, client: AlphaVantageClient) -> None:
        self._client = client

    def determine_trading_pair(self, from_symbol: str, to_symbol: str) -> str:
        return f"{from_symbol}/{to_symbol}"

    async def fetch_price_history(
        self, currency_pair: str, start: date, end: date
    ) -> Result[list[PriceRecord]]:
        base, quote = _split_pair(currency_pair)
        with tracer.start_as_current_span("alpha_vantage.fetch_price_history") as span:
            span.set_attribute("price.currency_pair", currency_pair)
            try:
                if is_fiat(base):
                    payload = await self._client.fx_daily(base, quote)
                    series = payload.get(FX_SERIES_KEY, {})
                    close_keys = ("4. close",)
                else:
                    payload = await self._client.digital_currency_daily(base, quote)
                    series = payload.get(DIGITAL_SERIES_KEY, {})
                    close_keys = (f"4a. close ({quote})", "4. close")
                records = _parse_series(currency_pair, series, close_keys, start, end)
            except (AlphaVantageError, httpx.HTTPError) as exc:
                logger.error("Alpha Vantage fetch for %s failed: %s", currency_pair, exc)
                return Result.fail(f"Alpha Vantage request failed for {currency_pair}: {exc}")
            except (KeyError, ValueError, InvalidOperation) as exc:
                logger.error("Unexpected Alpha Vantage payload for %s: %s", currency_pair, exc)
                return Result.fail(f"Unexpected Alpha Vantage payload for {currency_pair}.")

        logger.info("Fetched %s Alpha Vantage prices for %s (%s to %s)", len(records), currency_pair, start, end)
        return Result.ok(records)

    async def fetch_current_price(
        self, symbols: Iterable[str], currency: str
    ) -> Result[list[PriceRecord]]:
        records: list[PriceRecord] = []
        for symbol in symbols:
            pair = self.determine_trading_pair(symbol, currency)
            try:
                payload = await self._client.currency_exchange_rate(symbol, currency)
                quote = payload[EXCHANGE_RATE_KEY]
                refreshed = str(quote.get("6. Last Refreshed", ""))[:10]
                close_date = date.fromisoformat(refreshed) if refreshed else date.today()
                records.append(PriceRecord(pair, close_date, Decimal(str(quote["5. Exchange Rate"]))))
            except (AlphaVantageError, httpx.HTTPError) as exc:
                logger.error("Alpha Vantage quote for %s failed: %s", pair, exc)
                return Result.fail(f"Alpha Vantage request failed for {pair}: {exc}")
            except (KeyError, ValueError, InvalidOperation):
                logger.error("Unexpected Alpha Vantage quote payload for %s", pair)
                return Result.fail(f"Unexpected Alpha Vantage payload for {pair}.")
        return Result.ok(records)


def _split_pair(currency_pair: str) -> tuple[str, str]:
    base, _, quote = currency_pair.partition("/")
    return base, quote


def _parse_series(
    currency_pair: str,
    series: dict[str, dict[str, Any]],
    close_keys: tuple[str, ...],
    start: date,
    end: date,
) -> list[PriceRecord]:
    records: list[PriceRecord] = []
    for day_str, values in series.items():
        day = datetime.strptime(day_str, "%Y-%m-%d").date()
        if day < start or day > end:
            continue
        close_value = next((values[key] for key in close_keys if key in values), None)
        if close_value is None:
            continue
        records.append(PriceRecord(currency_pair, day, Decimal(str(close_value))))
    records.sort(key=lambda record: record.close_date)
    return records


__all__ = [
    "AlphaVantageClient",
    "AlphaVantageError",
    "AlphaVantagePriceHistoryApi",
    "BASE_URL",
    "DEFAULT_REQUESTS_PER_MINUTE",
]
