"""Pydantic schemas for portfolio input documents and valuation reports."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crypto_portfolio.domain.errors import ErrorType
from crypto_portfolio.domain.holdings import Holding
from crypto_portfolio.domain.money import Money
from crypto_portfolio.domain.portfolio import Portfolio, Wallet
from crypto_portfolio.domain.result import Result
from crypto_portfolio.domain.taxable_events import TaxableEvent
from crypto_portfolio.domain.transactions import (
    RawTransaction,
    TransactionType,
    create_deposit,
    create_trade,
    create_withdrawal,
)


class MoneySchema(BaseModel):
    amount: Decimal = Field(..., examples=["0.5"])
    currency: str = Field(..., min_length=1, max_length=16, examples=["BTC"])

    @field_validator("currency")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()

    def to_money(self) -> Money:
        return Money(self.amount, self.currency)


class TransactionSchema(BaseModel):
    type: TransactionType
    date_time: datetime
    received: MoneySchema | None = None
    sent: MoneySchema | None = None
    fee: MoneySchema | None = None
    account: str = Field(..., description="Exchange or wallet account reference")
    transaction_ids: list[str] = Field(..., min_length=1)
    note: str = ""

    def to_domain(self) -> Result[RawTransaction]:
        received = self.received.to_money() if self.received else None
        sent = self.sent.to_money() if self.sent else None
        fee = self.fee.to_money() if self.fee else None
        if self.type is TransactionType.DEPOSIT:
            return create_deposit(self.date_time, received, fee, self.account, self.transaction_ids, self.note)
        if self.type is TransactionType.WITHDRAWAL:
            return create_withdrawal(self.date_time, sent, fee, self.account, self.transaction_ids, self.note)
        return create_trade(self.date_time, received, sent, fee, self.account, self.transaction_ids, self.note)


class WalletSchema(BaseModel):
    name: str = Field(..., examples=["Ledger"])
    transactions: list[TransactionSchema] = Field(default_factory=list)


class PortfolioDocument(BaseModel):
    default_currency: str = Field(default="USD", examples=["USD"])
    wallets: list[WalletSchema] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "default_currency": "USD",
                "wallets": [
                    {
                        "name": "Ledger",
                        "transactions": [
                            {
                                "type": "Deposit",
                                "date_time": "2024-03-01T10:00:00Z",
                                "received": {"amount": "1", "currency": "BTC"},
                                "account": "ledger-main",
                                "transaction_ids": ["0xabc"],
                            }
                        ],
                    }
                ],
            }
        }
    )

    def to_portfolio(self) -> Result[Portfolio]:
        """Build a domain portfolio, failing on the first invalid wallet or transaction."""

        portfolio = Portfolio()
        currency = portfolio.set_default_currency(self.default_currency)
        if currency.is_failure:
            return Result.fail(currency.error)

        for wallet_doc in self.wallets:
            created = Wallet.create(wallet_doc.name)
            if created.is_failure:
                return Result.fail(created.error)
            wallet = created.unwrap()
            for index, tx_doc in enumerate(wallet_doc.transactions):
                tx = tx_doc.to_domain()
                if tx.is_failure:
                    return Result.fail(f"{wallet.name} transaction #{index + 1}: {tx.error}")
                added = wallet.add_transaction(tx.unwrap())
                if added.is_failure:
                    return Result.fail(f"{wallet.name} transaction #{index + 1}: {added.error}")
            added = portfolio.add_wallet(wallet)
            if added.is_failure:
                return Result.fail(f"{wallet.name}: {added.error}")
        return Result.ok(portfolio)


class HoldingSchema(BaseModel):
    asset: str
    balance: Decimal
    average_bought_price: Decimal
    current_price: Decimal
    market_value: Decimal
    error_type: ErrorType = ErrorType.NONE
    error_message: str = ""

    @classmethod
    def from_domain(cls, holding: Holding) -> "HoldingSchema":
        return cls(
            asset=holding.asset,
            balance=holding.balance,
            average_bought_price=holding.average_bought_price,
            current_price=holding.current_price,
            market_value=holding.market_value,
            error_type=holding.error_type,
            error_message=holding.error_message,
        )


class TaxableEventSchema(BaseModel):
    date_time: datetime
    disposed_asset: str
    amount: Decimal
    average_cost: Decimal
    value_at_disposal: Decimal
    gain: Decimal
    currency: str

    @classmethod
    def from_domain(cls, event: TaxableEvent) -> "TaxableEventSchema":
        return cls(
            date_time=event.date_time,
            disposed_asset=event.disposed_asset,
            amount=event.amount,
            average_cost=event.average_cost,
            value_at_disposal=event.value_at_disposal,
            gain=event.gain,
            currency=event.currency,
        )


class TransactionIssueSchema(BaseModel):
    id: str
    type: TransactionType
    date_time: datetime
    transaction_ids: list[str]
    error_type: ErrorType
    error_message: str


class PortfolioReport(BaseModel):
    default_currency: str
    holdings: list[HoldingSchema]
    taxable_events: list[TaxableEventSchema]
    flagged_transactions: list[TransactionIssueSchema] = Field(default_factory=list)
    realized_gain: Decimal = Decimal("0")

    @classmethod
    def from_portfolio(
        cls, portfolio: Portfolio, flagged: list[RawTransaction] | None = None
    ) -> "PortfolioReport":
        events = portfolio.taxable_events
        return cls(
            default_currency=portfolio.default_currency,
            holdings=[HoldingSchema.from_domain(h) for h in sorted(portfolio.holdings, key=lambda h: h.asset)],
            taxable_events=[TaxableEventSchema.from_domain(e) for e in events],
            flagged_transactions=[
                TransactionIssueSchema(
                    id=tx.id,
                    type=tx.type,
                    date_time=tx.date_time,
                    transaction_ids=tx.transaction_ids,
                    error_type=tx.error_type,
                    error_message=tx.error_message,
                )
                for tx in flagged or []
            ],
            realized_gain=sum((e.gain for e in events), Decimal("0")),
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
