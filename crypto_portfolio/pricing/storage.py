"""Persistence contract for cached price history."""

from __future__ import annotations

from typing import Iterable, Protocol

from crypto_portfolio.domain.result import Result
from crypto_portfolio.pricing.records import PriceRecord


class PriceHistoryStorage(Protocol):
    """Durable store of closing prices keyed by ``(currency_pair, close_date)``.

    ``load_history`` fails when nothing has ever been saved for the pair.
    ``save_history`` merges into what is already stored; saving an empty
    iterable registers the pair with no records.
    """

    async def load_history(self, currency_pair: str) -> Result[list[PriceRecord]]:
        ...

    async def save_history(self, currency_pair: str, records: Iterable[PriceRecord]) -> Result[None]:
        ...


__all__ = ["PriceHistoryStorage"]
