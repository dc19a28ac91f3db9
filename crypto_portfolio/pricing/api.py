"""Price provider contract and the retrying decorator around it."""

from __future__ import annotations

import logging
from datetime import date
from typing import Awaitable, Callable, Iterable, Protocol, TypeVar

from crypto_portfolio.domain.result import Result
from crypto_portfolio.pricing.records import PriceRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3


class PriceHistoryApi(Protocol):
    async def fetch_price_history(
        self, currency_pair: str, start: date, end: date
    ) -> Result[list[PriceRecord]]:
        ...

    async def fetch_current_price(
        self, symbols: Iterable[str], currency: str
    ) -> Result[list[PriceRecord]]:
        ...

    def determine_trading_pair(self, from_symbol: str, to_symbol: str) -> str:
        ...


class PriceHistoryApiWithRetry:
    """Repeat failed provider calls up to ``attempts`` times without delay."""

    def __init__(self, inner: PriceHistoryApi, attempts: int = DEFAULT_ATTEMPTS) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self._inner = inner
        self._attempts = attempts

    @property
    def attempts(self) -> int:
        return self._attempts

    async def fetch_price_history(
        self, currency_pair: str, start: date, end: date
    ) -> Result[list[PriceRecord]]:
        return await self._with_retry(
            "fetch price history",
            currency_pair,
            lambda: self._inner.fetch_price_history(currency_pair, start, end),
        )

    async def fetch_current_price(
        self, symbols: Iterable[str], currency: str
    ) -> Result[list[PriceRecord]]:
        symbols = list(symbols)
        return await self._with_retry(
            "fetch current price",
            ",".join(symbols),
            lambda: self._inner.fetch_current_price(symbols, currency),
        )

    def determine_trading_pair(self, from_symbol: str, to_symbol: str) -> str:
        return self._inner.determine_trading_pair(from_symbol, to_symbol)

    async def _with_retry(
        self,
        operation: str,
        subject: str,
        call: Callable[[], Awaitable[Result[T]]],
    ) -> Result[T]:
        result: Result[T] = Result.fail(f"Failed to {operation} for {subject}.")
        for attempt in range(1, self._attempts + 1):
            try:
                result = await call()
            except Exception as exc:  # noqa: BLE001 - provider errors count as a failed attempt
                logger.warning(
                    "Attempt %s/%s to %s for %s raised: %s", attempt, self._attempts, operation, subject, exc
                )
                result = Result.fail(str(exc) or exc.__class__.__name__)
                continue
            if result.is_success:
                return result
            logger.warning(
                "Attempt %s/%s to %s for %s failed: %s", attempt, self._attempts, operation, subject, result.error
            )
        return result


__all__ = ["DEFAULT_ATTEMPTS", "PriceHistoryApi", "PriceHistoryApiWithRetry"]
