"""Wallets and the portfolio aggregate that values them."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from opentelemetry import trace

from crypto_portfolio.domain.errors import (
    ERR_DUPLICATE_TRANSACTION,
    ERR_NO_WALLETS,
    ERR_TRANSACTION_NOT_FOUND,
    ERR_UNKNOWN_CURRENCY,
    ERR_WALLET_EXISTS,
    ErrorType,
)
from crypto_portfolio.domain.holdings import Holding
from crypto_portfolio.domain.money import is_fiat
from crypto_portfolio.domain.result import Result
from crypto_portfolio.domain.taxable_events import TaxableEvent
from crypto_portfolio.domain.transactions import RawTransaction
from crypto_portfolio.pricing.service import PriceLookup
from crypto_portfolio.services.processor import ProcessingReport, TransactionProcessor

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_CURRENCY = "USD"


@dataclass
class Wallet:
    name: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    transactions: list[RawTransaction] = field(default_factory=list)

    @classmethod
    def create(cls, name: str) -> Result["Wallet"]:
        if not name or not name.strip():
            return Result.fail("Wallet name cannot be empty.")
        return Result.ok(cls(name=name.strip()))

    def add_transaction(self, tx: RawTransaction) -> Result[None]:
        if any(existing.is_same_transaction(tx) for existing in self.transactions):
            return Result.fail(ERR_DUPLICATE_TRANSACTION)
        tx.wallet_id = self.id
        self.transactions.append(tx)
        return Result.ok()

    def remove_transaction(self, tx: RawTransaction) -> Result[None]:
        for index, existing in enumerate(self.transactions):
            if existing.id == tx.id:
                del self.transactions[index]
                return Result.ok()
        return Result.fail(ERR_TRANSACTION_NOT_FOUND)


class Portfolio:
    """Owns wallets, the per-asset holdings ledger and realized taxable events.

    Holdings and taxable events are derived state: :meth:`calculate_trades`
    rebuilds them from scratch by replaying every wallet's transactions in
    date order.
    """

    def __init__(self, default_currency: str = DEFAULT_CURRENCY) -> None:
        self._default_currency = default_currency.upper()
        self._wallets: list[Wallet] = []
        self._holdings: dict[str, Holding] = {}
        self._taxable_events: list[TaxableEvent] = []

    @property
    def default_currency(self) -> str:
        return self._default_currency

    @property
    def wallets(self) -> list[Wallet]:
        return list(self._wallets)

    @property
    def holdings(self) -> list[Holding]:
        return list(self._holdings.values())

    @property
    def taxable_events(self) -> list[TaxableEvent]:
        return list(self._taxable_events)

    def get_holding(self, asset: str) -> Holding | None:
        return self._holdings.get(asset)

    def add_wallet(self, wallet: Wallet) -> Result[None]:
        if any(existing.name == wallet.name for existing in self._wallets):
            return Result.fail(ERR_WALLET_EXISTS)
        self._wallets.append(wallet)
        return Result.ok()

    def remove_wallet(self, name: str) -> Result[None]:
        for index, wallet in enumerate(self._wallets):
            if wallet.name == name:
                del self._wallets[index]
                return Result.ok()
        return Result.fail(f"Wallet {name} not found.")

    def set_default_currency(self, code: str) -> Result[None]:
        code = (code or "").strip().upper()
        if not is_fiat(code):
            return Result.fail(ERR_UNKNOWN_CURRENCY)
        self._default_currency = code
        return Result.ok()

    def get_or_create_holding(self, asset: str) -> Holding:
        holding = self._holdings.get(asset)
        if holding is None:
            holding = Holding(asset=asset)
            self._holdings[asset] = holding
        return holding

    def record_taxable_event(self, event: TaxableEvent) -> None:
        self._taxable_events.append(event)

    def transactions_in_order(self) -> list[RawTransaction]:
        transactions = [tx for wallet in self._wallets for tx in wallet.transactions]
        # sorted() is stable: same-timestamp transactions keep wallet order.
        return sorted(transactions, key=lambda tx: tx.date_time)

    def reset(self) -> None:
        self._holdings.clear()
        self._taxable_events.clear()
        for wallet in self._wallets:
            for tx in wallet.transactions:
                tx.reset_valuation()

    async def calculate_trades(self, prices: PriceLookup) -> Result[ProcessingReport]:
        if not self._wallets:
            return Result.fail(ERR_NO_WALLETS)
        if prices.default_currency != self._default_currency:
            return Result.fail(
                f"Price service quotes in {prices.default_currency} but the portfolio "
                f"default currency is {self._default_currency}."
            )

        with tracer.start_as_current_span("portfolio.calculate_trades") as span:
            self.reset()
            transactions = self.transactions_in_order()
            span.set_attribute("portfolio.transactions", len(transactions))
            result = await TransactionProcessor(prices).process(transactions, self)
            if result.is_failure:
                return result
            await self.refresh_current_prices(prices)
        return result

    async def refresh_current_prices(self, prices: PriceLookup) -> Result[None]:
        open_holdings = [holding for holding in self._holdings.values() if holding.balance > 0]
        for holding in open_holdings:
            holding.clear_flag()
            if holding.asset == self._default_currency:
                holding.current_price = Decimal("1")

        symbols = [holding.asset for holding in open_holdings if holding.asset != self._default_currency]
        if not symbols:
            return Result.ok()

        result = await prices.get_current_prices(symbols)
        quotes = result.value or {}
        if result.is_failure:
            logger.error("Current prices unavailable for %s: %s", ", ".join(symbols), result.error)

        for holding in open_holdings:
            if holding.asset == self._default_currency:
                continue
            price = quotes.get(holding.asset)
            if price is None:
                holding.current_price = Decimal("0")
                holding.flag(
                    ErrorType.PRICE_HISTORY_UNAVAILABLE,
                    f"Could not get current price for {holding.asset}.",
                )
            else:
                holding.current_price = price
        return Result.ok() if result.is_success else Result.fail(result.error)


__all__ = ["DEFAULT_CURRENCY", "Portfolio", "Wallet"]
