from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from crypto_portfolio.domain.result import Result
from crypto_portfolio.pricing.api import PriceHistoryApiWithRetry
from crypto_portfolio.pricing.records import PriceRecord


class FlakyApi:
    def __init__(self, failures: int, *, raise_errors: bool = False) -> None:
        self.failures = failures
        self.raise_errors = raise_errors
        self.calls = 0

    def determine_trading_pair(self, from_symbol: str, to_symbol: str) -> str:
        return f"{from_symbol}-{to_symbol}"

    async def fetch_price_history(self, currency_pair, start, end):
        self.calls += 1
        if self.calls <= self.failures:
            if self.raise_errors:
                raise ConnectionError("reset by peer")
            return Result.fail("temporary")
        return Result.ok([PriceRecord(currency_pair, start, Decimal("1"))])

    async def fetch_current_price(self, symbols, currency):
        self.calls += 1
        if self.calls <= self.failures:
            return Result.fail("temporary")
        return Result.ok([PriceRecord(f"{s}-{currency}", date(2024, 1, 1), Decimal("2")) for s in symbols])


@pytest.mark.asyncio
async def test_succeeds_within_attempt_budget():
    inner = FlakyApi(failures=2)
    api = PriceHistoryApiWithRetry(inner, attempts=3)
    result = await api.fetch_price_history("BTC-USD", date(2024, 1, 1), date(2024, 1, 2))
    assert result.is_success
    assert inner.calls == 3


@pytest.mark.asyncio
async def test_returns_last_failure_after_exhausting_attempts():
    inner = FlakyApi(failures=5)
    api = PriceHistoryApiWithRetry(inner, attempts=3)
    result = await api.fetch_current_price(["BTC"], "USD")
    assert result.is_failure
    assert result.error == "temporary"
    assert inner.calls == 3


@pytest.mark.asyncio
async def test_raised_errors_count_as_failed_attempts():
    inner = FlakyApi(failures=1, raise_errors=True)
    api = PriceHistoryApiWithRetry(inner)
    result = await api.fetch_price_history("BTC-USD", date(2024, 1, 1), date(2024, 1, 2))
    assert result.is_success
    assert inner.calls == 2


def test_delegates_trading_pair_and_validates_attempts():
    api = PriceHistoryApiWithRetry(FlakyApi(0))
    assert api.determine_trading_pair("BTC", "USD") == "BTC-USD"
    assert api.attempts == 3
    with pytest.raises(ValueError):
        PriceHistoryApiWithRetry(FlakyApi(0), attempts=0)
