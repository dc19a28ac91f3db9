"""Closing price records exchanged between providers, storage and cache."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class PriceRecord:
    currency_pair: str
    close_date: date
    close_price: Decimal

    @property
    def key(self) -> tuple[str, date]:
        return (self.currency_pair, self.close_date)


__all__ = ["PriceRecord"]
