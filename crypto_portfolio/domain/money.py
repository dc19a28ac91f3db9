"""Money value object and the set of recognised fiat currency codes."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, getcontext

getcontext().prec = 28

FIAT_CURRENCIES: frozenset[str] = frozenset(
    {
        "USD", "EUR", "JPY", "GBP", "AUD", "CAD", "CHF", "CNY", "SEK", "NZD",
        "MXN", "SGD", "HKD", "NOK", "KRW", "TRY", "RUB", "INR", "BRL", "ZAR",
        "AOA", "ARS", "BND", "BZD", "CLP", "COP", "CRC", "CZK", "DJF", "DKK",
        "DOP", "FJD", "FKP", "GEL", "GTQ", "HNL", "HUF", "IDR", "ILS", "ISK",
        "KES", "KGS", "KMF", "KZT", "MDL", "MGA", "MRU", "MWK", "MYR", "OMR",
        "PEN", "PGK", "PHP", "PLN", "PYG", "RON", "RWF", "SBD", "SCR", "SRD",
        "STN", "SZL", "TJS", "TMT", "TOP", "UYU", "VND", "XCD",
    }
)


def is_fiat(code: str) -> bool:
    return code.upper() in FIAT_CURRENCIES


class CurrencyMismatchError(ValueError):
    """Raised when arithmetic combines amounts of different currencies."""


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency_code: str

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))

    @property
    def is_empty(self) -> bool:
        return self.currency_code == "" and self.amount == 0

    @property
    def absolute_amount(self) -> Decimal:
        return abs(self.amount)

    @property
    def is_fiat_currency(self) -> bool:
        return is_fiat(self.currency_code)

    def to_absolute_amount_money(self) -> "Money":
        return Money(self.absolute_amount, self.currency_code)

    def add(self, other: "Money | None") -> "Money":
        if other is None or other.is_empty:
            return self
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency_code)

    def subtract(self, other: "Money | None") -> "Money":
        if other is None or other.is_empty:
            return self
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency_code)

    def _check_currency(self, other: "Money") -> None:
        if self.currency_code != other.currency_code:
            raise CurrencyMismatchError(
                f"Cannot combine {self.currency_code} with {other.currency_code}"
            )

    def __str__(self) -> str:
        rounded = self.amount.quantize(Decimal("0.01")).normalize()
        return f"{rounded:f} {self.currency_code}".strip()


EMPTY_MONEY = Money(Decimal("0"), "")


def money_or_empty(value: Money | None) -> Money:
    return EMPTY_MONEY if value is None else value


__all__ = [
    "CurrencyMismatchError",
    "EMPTY_MONEY",
    "FIAT_CURRENCIES",
    "Money",
    "is_fiat",
    "money_or_empty",
]
