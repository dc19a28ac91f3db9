"""Raw wallet transactions and their validating factories."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable

from crypto_portfolio.domain.errors import ErrorType
from crypto_portfolio.domain.money import EMPTY_MONEY, Money
from crypto_portfolio.domain.result import Result


class TransactionType(str, Enum):
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"
    TRADE = "Trade"


@dataclass
class RawTransaction:
    """A deposit, withdrawal or trade as imported from a wallet.

    The amounts are fixed at creation. The valuation engine only writes the
    computed fields (``error_type``, ``error_message`` and the two default
    currency valuations) while a portfolio is being calculated.
    """

    date_time: datetime
    type: TransactionType
    received_amount: Money = EMPTY_MONEY
    sent_amount: Money = EMPTY_MONEY
    fee_amount: Money = EMPTY_MONEY
    account: str = ""
    transaction_ids: list[str] = field(default_factory=list)
    note: str = ""
    wallet_id: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    error_type: ErrorType = ErrorType.NONE
    error_message: str = ""
    value_in_default_currency: Decimal = Decimal("0")
    fee_value_in_default_currency: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        self.date_time = as_utc(self.date_time)

    @property
    def is_flagged(self) -> bool:
        return self.error_type is not ErrorType.NONE

    def flag(self, error_type: ErrorType, message: str) -> None:
        """Tag the transaction; a later tag replaces an earlier one."""

        self.error_type = error_type
        self.error_message = message

    def reset_valuation(self) -> None:
        self.error_type = ErrorType.NONE
        self.error_message = ""
        self.value_in_default_currency = Decimal("0")
        self.fee_value_in_default_currency = Decimal("0")

    def is_same_transaction(self, other: "RawTransaction") -> bool:
        return (
            _truncate_to_second(self.date_time) == _truncate_to_second(other.date_time)
            and self.type == other.type
            and self.received_amount == other.received_amount
            and self.sent_amount == other.sent_amount
            and self.fee_amount == other.fee_amount
        )


def as_utc(value: datetime) -> datetime:
    """Return ``value`` in UTC, reading a naive timestamp as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _truncate_to_second(value: datetime) -> datetime:
    return value.replace(microsecond=0)


def _check_common(
    date_time: datetime | None,
    account: str,
    transaction_ids: Iterable[str] | None,
) -> tuple[str | None, list[str]]:
    if date_time is None:
        return "Transaction date is required.", []
    if not account or not account.strip():
        return "Account cannot be null or whitespace.", []
    ids = [tx_id for tx_id in (transaction_ids or []) if tx_id]
    if not ids:
        return "Transaction IDs cannot be null or empty.", []
    return None, ids


def create_deposit(
    date_time: datetime,
    received_amount: Money | None,
    fee_amount: Money | None,
    account: str,
    transaction_ids: Iterable[str],
    note: str = "",
) -> Result[RawTransaction]:
    if received_amount is None or received_amount.is_empty:
        return Result.fail("Received amount cannot be null for a deposit.")
    if fee_amount is None or fee_amount.is_empty:
        fee_amount = Money(Decimal("0"), received_amount.currency_code)
    elif fee_amount.currency_code != received_amount.currency_code:
        return Result.fail("Fees are not in the same currency as the deposit currency.")

    error, ids = _check_common(date_time, account, transaction_ids)
    if error:
        return Result.fail(error)

    return Result.ok(
        RawTransaction(
            date_time=date_time,
            type=TransactionType.DEPOSIT,
            received_amount=received_amount.to_absolute_amount_money(),
            fee_amount=fee_amount.to_absolute_amount_money(),
            account=account,
            transaction_ids=ids,
            note=note,
        )
    )


def create_withdrawal(
    date_time: datetime,
    sent_amount: Money | None,
    fee_amount: Money | None,
    account: str,
    transaction_ids: Iterable[str],
    note: str = "",
) -> Result[RawTransaction]:
    if sent_amount is None or sent_amount.is_empty:
        return Result.fail("Sent amount cannot be null for a withdrawal.")
    if fee_amount is None or fee_amount.is_empty:
        fee_amount = Money(Decimal("0"), sent_amount.currency_code)
    elif fee_amount.currency_code != sent_amount.currency_code:
        return Result.fail("Fees are not in the same currency as the withdraw currency.")

    error, ids = _check_common(date_time, account, transaction_ids)
    if error:
        return Result.fail(error)

    return Result.ok(
        RawTransaction(
            date_time=date_time,
            type=TransactionType.WITHDRAWAL,
            sent_amount=sent_amount.to_absolute_amount_money(),
            fee_amount=fee_amount.to_absolute_amount_money(),
            account=account,
            transaction_ids=ids,
            note=note,
        )
    )


def create_trade(
    date_time: datetime,
    received_amount: Money | None,
    sent_amount: Money | None,
    fee_amount: Money | None,
    account: str,
    transaction_ids: Iterable[str],
    note: str = "",
) -> Result[RawTransaction]:
    if received_amount is None or received_amount.is_empty:
        return Result.fail("Received amount cannot be null for a trade transaction.")
    if sent_amount is None or sent_amount.is_empty:
        return Result.fail("Sent amount cannot be null for a trade transaction.")

    error, ids = _check_common(date_time, account, transaction_ids)
    if error:
        return Result.fail(error)

    if fee_amount is None or fee_amount.is_empty:
        fee_amount = Money(Decimal("0"), received_amount.currency_code)

    return Result.ok(
        RawTransaction(
            date_time=date_time,
            type=TransactionType.TRADE,
            received_amount=received_amount.to_absolute_amount_money(),
            sent_amount=sent_amount.to_absolute_amount_money(),
            fee_amount=fee_amount.to_absolute_amount_money(),
            account=account,
            transaction_ids=ids,
            note=note,
        )
    )


__all__ = [
    "RawTransaction",
    "TransactionType",
    "as_utc",
    "create_deposit",
    "create_trade",
    "create_withdrawal",
]
