"""Domain model: money, transactions, holdings, taxable events and the portfolio aggregate."""

from crypto_portfolio.domain.errors import ErrorType
from crypto_portfolio.domain.holdings import Holding
from crypto_portfolio.domain.money import EMPTY_MONEY, FIAT_CURRENCIES, CurrencyMismatchError, Money
from crypto_portfolio.domain.result import Result
from crypto_portfolio.domain.taxable_events import TaxableEvent
from crypto_portfolio.domain.transactions import (
    RawTransaction,
    TransactionType,
    create_deposit,
    create_trade,
    create_withdrawal,
)

__all__ = [
    "CurrencyMismatchError",
    "EMPTY_MONEY",
    "ErrorType",
    "FIAT_CURRENCIES",
    "Holding",
    "Money",
    "RawTransaction",
    "Result",
    "TaxableEvent",
    "TransactionType",
    "create_deposit",
    "create_trade",
    "create_withdrawal",
]
