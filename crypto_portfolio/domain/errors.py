"""Error taxonomy attached to transactions and holdings."""

from __future__ import annotations

from enum import Enum


class ErrorType(str, Enum):
    NONE = "None"
    INVALID_CURRENCY = "InvalidCurrency"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    PRICE_HISTORY_UNAVAILABLE = "PriceHistoryUnavailable"
    MANUAL_REVIEW_REQUIRED = "ManualReviewRequired"
    DATA_CORRUPTION = "DataCorruption"
    TAX_EVENT_NOT_CREATED = "TaxEventNotCreated"


ERR_SAME_SYMBOLS = "Symbol and default currency must differ."
ERR_PRICE_NOT_FOUND = "Price history not found for {symbol} on {date}."
ERR_NO_WALLETS = "No wallets to process. Start by adding a wallet."
ERR_WALLET_EXISTS = "Wallet already exists."
ERR_UNKNOWN_CURRENCY = "Currency code unknown."
ERR_DUPLICATE_TRANSACTION = "Transaction already exists."
ERR_TRANSACTION_NOT_FOUND = "Transaction not found."


__all__ = [
    "ErrorType",
    "ERR_SAME_SYMBOLS",
    "ERR_PRICE_NOT_FOUND",
    "ERR_NO_WALLETS",
    "ERR_WALLET_EXISTS",
    "ERR_UNKNOWN_CURRENCY",
    "ERR_DUPLICATE_TRANSACTION",
    "ERR_TRANSACTION_NOT_FOUND",
]
