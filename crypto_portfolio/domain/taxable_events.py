"""Realized disposal records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from crypto_portfolio.domain.result import Result


@dataclass(frozen=True)
class TaxableEvent:
    """A disposal of ``amount`` units of ``disposed_asset``.

    ``average_cost`` and ``value_at_disposal`` are both unit prices expressed
    in ``currency`` (the portfolio default currency).
    """

    date_time: datetime
    disposed_asset: str
    average_cost: Decimal
    value_at_disposal: Decimal
    amount: Decimal
    currency: str

    @property
    def cost_basis(self) -> Decimal:
        return self.average_cost * self.amount

    @property
    def proceeds(self) -> Decimal:
        return self.value_at_disposal * self.amount

    @property
    def gain(self) -> Decimal:
        return self.proceeds - self.cost_basis

    @classmethod
    def create(
        cls,
        date_time: datetime,
        disposed_asset: str,
        average_cost: Decimal,
        value_at_disposal: Decimal,
        amount: Decimal,
        currency: str,
    ) -> Result["TaxableEvent"]:
        if not disposed_asset or not disposed_asset.strip():
            return Result.fail("Disposed asset cannot be empty.")
        if not currency or not currency.strip():
            return Result.fail("Currency cannot be empty.")
        if amount <= 0:
            return Result.fail("Disposed amount must be greater than zero.")
        return Result.ok(
            cls(
                date_time=date_time,
                disposed_asset=disposed_asset,
                average_cost=average_cost,
                value_at_disposal=value_at_disposal,
                amount=amount,
                currency=currency,
            )
        )


__all__ = ["TaxableEvent"]
