"""Per-asset running position."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from crypto_portfolio.domain.errors import ErrorType


@dataclass
class Holding:
    asset: str
    balance: Decimal = Decimal("0")
    average_bought_price: Decimal = Decimal("0")
    current_price: Decimal = Decimal("0")
    error_type: ErrorType = ErrorType.NONE
    error_message: str = ""

    @property
    def market_value(self) -> Decimal:
        return self.balance * self.current_price

    @property
    def cost_basis(self) -> Decimal:
        return self.balance * self.average_bought_price

    def flag(self, error_type: ErrorType, message: str) -> None:
        self.error_type = error_type
        self.error_message = message

    def clear_flag(self) -> None:
        self.error_type = ErrorType.NONE
        self.error_message = ""


__all__ = ["Holding"]
