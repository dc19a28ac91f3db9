"""Pydantic schema exports."""

from .portfolio import (
    HoldingSchema,
    MoneySchema,
    PortfolioDocument,
    PortfolioReport,
    TaxableEventSchema,
    TransactionIssueSchema,
    TransactionSchema,
    WalletSchema,
)

__all__ = [
    "HoldingSchema",
    "MoneySchema",
    "PortfolioDocument",
    "PortfolioReport",
    "TaxableEventSchema",
    "TransactionIssueSchema",
    "TransactionSchema",
    "WalletSchema",
]
