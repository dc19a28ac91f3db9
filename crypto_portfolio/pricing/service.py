"""Layered price lookup: TTL cache, in-memory history, storage, then provider.

History for a trading pair is loaded from storage once per service instance
and kept as a ``date -> PriceRecord`` map. Gaps trigger a windowed provider
fetch whose new records are merged into the map and persisted. Fiat pairs
tolerate weekend and holiday gaps by falling back to the closest of the
previous few days.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Iterable, Protocol

from opentelemetry import trace

from crypto_portfolio.domain.errors import ERR_PRICE_NOT_FOUND, ERR_SAME_SYMBOLS
from crypto_portfolio.domain.money import is_fiat
from crypto_portfolio.domain.result import Result
from crypto_portfolio.pricing.api import DEFAULT_ATTEMPTS, PriceHistoryApi
from crypto_portfolio.pricing.cache import SingleFlight, TtlCache
from crypto_portfolio.pricing.records import PriceRecord
from crypto_portfolio.pricing.storage import PriceHistoryStorage

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_CURRENT_PRICE_TTL_SECONDS = 60
DEFAULT_FIAT_FALLBACK_DAYS = 4
DEFAULT_HISTORY_WINDOW_DAYS = 365

History = dict[date, PriceRecord]


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class PriceLookup(Protocol):
    """What the valuation engine needs from a price service."""

    @property
    def default_currency(self) -> str:
        ...

    async def get_price_at_close_time(self, symbol: str, on_date: date | datetime) -> Result[Decimal]:
        """Return the closing price of ``symbol`` in the default currency."""

        symbol = symbol.upper()
        day = on_date.date() if isinstance(on_date, datetime) else on_date

        if symbol == self._default_currency:
            logger.warning("Price requested for the default currency %s itself", symbol)
            return Result.fail(ERR_SAME_SYMBOLS)

        pair = self.trading_pair(symbol)
        is_today = day == self._today()
        if is_today:
            cached = self._today_prices.get((pair, day))
            if cached is not None:
                return Result.ok(cached)

        history = await self._histories.get_or_create(pair, lambda: self._load_history(pair))
        price = self._lookup(history, symbol, day)
        if price is None:
            fetched = await self._fetch_and_merge(
                pair, history, day, lambda: self._lookup(history, symbol, day) is not None
            )
            if fetched.is_failure:
                return Result.fail(fetched.error)
            price = self._lookup(history, symbol, day)
            if price is None:
                return Result.fail(ERR_PRICE_NOT_FOUND.format(symbol=symbol, date=day.isoformat()))

        if is_today:
            self._today_prices.set((pair, day), price)
        return Result.ok(price)

    async def get_price_with_retry(
        self, symbol: str, on_date: date | datetime, attempts: int = DEFAULT_ATTEMPTS
    ) -> Result[Decimal]:
        result: Result[Decimal] = Result.fail(f"No price lookup attempted for {symbol}.")
        for attempt in range(1, attempts + 1):
            result = await self.get_price_at_close_time(symbol, on_date)
            if result.is_success:
                return result
            logger.warning("Price lookup %s/%s for %s failed: %s", attempt, attempts, symbol, result.error)
        return result

    async def get_current_prices(self, symbols: Iterable[str]) -> Result[dict[str, Decimal]]:
        prices: dict[str, Decimal] = {}
        missing: list[str] = []
        for symbol in dict.fromkeys(s.upper() for s in symbols):
            if symbol == self._default_currency:
                prices[symbol] = Decimal("1")
                continue
            cached = self._current_prices.get(symbol)
            if cached is not None:
                prices[symbol] = cached
            else:
                missing.append(symbol)

        if not missing:
            return Result.ok(prices)

        result = await self._api.fetch_current_price(missing, self._default_currency)
        if result.is_failure:
            logger.error("Current price fetch for %s failed: %s", ", ".join(missing), result.error)
            return Result.fail(result.error)

        by_pair = {self.trading_pair(symbol): symbol for symbol in missing}
        for record in result.value or []:
            symbol = by_pair.get(record.currency_pair, record.currency_pair)
            if record.close_price > 0:
                prices[symbol] = record.close_price
                self._current_prices.set(symbol, record.close_price)

        unresolved = [symbol for symbol in missing if symbol not in prices]
        if unresolved:
            logger.warning("No current price returned for %s", ", ".join(unresolved))
        return Result.ok(prices)

    # Helpers

    async def _load_history(self, pair: str) -> History:
        result = await self._storage.load_history(pair)
        if result.is_success:
            return {
                record.close_date: record
                for record in result.value or []
                if record.close_price > 0
            }

        logger.info("No stored price history for %s (%s); registering an empty series", pair, result.error)
        saved = await self._storage.save_history(pair, [])
        if saved.is_failure:
            logger.error("Failed to persist empty price history for %s: %s", pair, saved.error)
        return {}

    def _lookup(self, history: History, symbol: str, day: date) -> Decimal | None:
        record = history.get(day)
        if record is not None:
            return record.close_price
        if is_fiat(symbol):
            for offset in range(1, self._fiat_fallback_days + 1):
                record = history.get(day - timedelta(days=offset))
                if record is not None:
                    logger.debug("Using %s close for %s on %s", record.close_date, symbol, day)
                    return record.close_price
        return None

    def _window_end(self, day: date) -> date:
        end = day + self._history_window
        limit = self._today() + timedelta(days=1)
        return limit if end > limit else end

    async def _fetch_and_merge(
        self,
        pair: str,
        history: History,
        day: date,
        satisfied: Callable[[], bool],
    ) -> Result[None]:
        lock = self._fetch_locks.setdefault(pair, asyncio.Lock())
        async with lock:
            # Another caller may have fetched this window while we waited.
            if satisfied():
                return Result.ok()

            end = self._window_end(day)
            with tracer.start_as_current_span("price_history.fetch") as span:
                span.set_attribute("price.currency_pair", pair)
                span.set_attribute("price.start", day.isoformat())
                span.set_attribute("price.end", end.isoformat())
                result = await self._api.fetch_price_history(pair, day, end)
            if result.is_failure:
                return Result.fail(result.error)

            delta: list[PriceRecord] = []
            for record in result.value or []:
                if record.close_price <= 0:
                    continue
                if record.close_date not in history:
                    history[record.close_date] = record
                    delta.append(record)

            if delta:
                saved = await self._storage.save_history(pair, delta)
                if saved.is_failure:
                    logger.error("Failed to persist %s new prices for %s: %s", len(delta), pair, saved.error)
            else:
                logger.info("No new price records to save for %s", pair)
            return Result.ok()


__all__ = [
    "DEFAULT_CURRENT_PRICE_TTL_SECONDS",
    "DEFAULT_FIAT_FALLBACK_DAYS",
    "DEFAULT_HISTORY_WINDOW_DAYS",
    "PriceHistoryService",
    "PriceLookup",
    "utc_today",
]
