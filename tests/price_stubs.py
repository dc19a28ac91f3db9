"""In-memory collaborators shared by the test modules."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from crypto_portfolio.domain.result import Result
from crypto_portfolio.pricing.records import PriceRecord


def as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


class StubPrices:
    """Price lookup answering from fixed tables."""

    def __init__(
        self,
        prices: dict[tuple[str, date], Decimal | str] | None = None,
        current: dict[str, Decimal | str] | None = None,
        default_currency: str = "USD",
    ) -> None:
        self.prices = {key: Decimal(str(value)) for key, value in (prices or {}).items()}
        self.current = {key: Decimal(str(value)) for key, value in (current or {}).items()}
        self.default_currency = default_currency
        self.calls: list[tuple[str, date]] = []

    async def get_price_at_close_time(self, symbol: str, on_date: date | datetime) -> Result[Decimal]:
        day = as_date(on_date)
        self.calls.append((symbol, day))
        price = self.prices.get((symbol, day))
        if price is None:
            return Result.fail(f"no price for {symbol} on {day}")
        return Result.ok(price)

    async def get_current_prices(self, symbols: Iterable[str]) -> Result[dict[str, Decimal]]:
        return Result.ok({s: self.current[s] for s in symbols if s in self.current})


class StubApi:
    """Price API serving records from a table of ``pair -> {date: price}``."""

    def __init__(self, series: dict[str, dict[date, str]] | None = None) -> None:
        self.series = series or {}
        self.current: dict[str, str] = {}
        self.history_calls: list[tuple[str, date, date]] = []
        self.current_calls: list[tuple[list[str], str]] = []
        self.fail_history = False

    def determine_trading_pair(self, from_symbol: str, to_symbol: str) -> str:
        return f"{from_symbol}-{to_symbol}"

    async def fetch_price_history(self, currency_pair: str, start: date, end: date) -> Result[list[PriceRecord]]:
        self.history_calls.append((currency_pair, start, end))
        if self.fail_history:
            return Result.fail("provider down")
        return Result.ok(
            [
                PriceRecord(currency_pair, day, Decimal(price))
                for day, price in sorted(self.series.get(currency_pair, {}).items())
                if start <= day <= end
            ]
        )

    async def fetch_current_price(self, symbols: Iterable[str], currency: str) -> Result[list[PriceRecord]]:
        symbols = list(symbols)
        self.current_calls.append((symbols, currency))
        return Result.ok(
            [
                PriceRecord(self.determine_trading_pair(s, currency), date.today(), Decimal(self.current[s]))
                for s in symbols
                if s in self.current
            ]
        )


class MemoryStorage:
    def __init__(self, stored: dict[str, list[PriceRecord]] | None = None) -> None:
        self.stored = {pair: list(records) for pair, records in (stored or {}).items()}
        self.loads: list[str] = []
        self.saves: list[tuple[str, list[PriceRecord]]] = []

    async def load_history(self, currency_pair: str) -> Result[list[PriceRecord]]:
        self.loads.append(currency_pair)
        if currency_pair not in self.stored:
            return Result.fail("missing")
        return Result.ok(list(self.stored[currency_pair]))

    async def save_history(self, currency_pair: str, records: Iterable[PriceRecord]) -> Result[None]:
        records = list(records)
        self.saves.append((currency_pair, records))
        merged = {r.close_date: r for r in self.stored.get(currency_pair, [])}
        merged.update({r.close_date: r for r in records})
        self.stored[currency_pair] = [merged[d] for d in sorted(merged)]
        return Result.ok()
