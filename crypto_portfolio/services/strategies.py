"""Balance and cost-basis mutation for each transaction type.

Each ``apply_*`` coroutine validates the transaction, updates the holdings of
the portfolio, records taxable events for disposals and values fees. Problems
that do not invalidate the transaction (missing prices, negative balances)
are tagged on it and processing carries on with a fallback value. Invalid
amounts skip the transaction and return a failed :class:`Result`.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from crypto_portfolio.domain.errors import ErrorType
from crypto_portfolio.domain.holdings import Holding
from crypto_portfolio.domain.money import Money
from crypto_portfolio.domain.result import Result
from crypto_portfolio.domain.taxable_events import TaxableEvent
from crypto_portfolio.domain.transactions import RawTransaction, TransactionType
from crypto_portfolio.pricing.service import PriceLookup

if TYPE_CHECKING:
    from crypto_portfolio.domain.portfolio import Portfolio

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")


async def apply_deposit(tx: RawTransaction, portfolio: "Portfolio", prices: PriceLookup) -> Result[None]:
    validation = _validate(tx, received=True)
    if validation.is_failure:
        return validation

    received = tx.received_amount
    receiver = portfolio.get_or_create_holding(received.currency_code)
    balance_before = receiver.balance
    receiver.balance += received.amount

    if received.currency_code == portfolio.default_currency:
        receiver.average_bought_price = ONE
        tx.value_in_default_currency = received.amount
    else:
        price_result = await prices.get_price_at_close_time(received.currency_code, tx.date_time)
        if price_result.is_success:
            value = received.amount * price_result.unwrap()
        else:
            _flag_missing_price(tx, received.currency_code, price_result.error)
            value = received.amount * receiver.average_bought_price
        tx.value_in_default_currency = value
        receiver.average_bought_price = _weighted_average(
            receiver.average_bought_price, balance_before, value, received.amount
        )
    _reset_if_flat(receiver)

    await handle_fees(tx, portfolio, prices)
    return Result.ok()


async def apply_withdrawal(tx: RawTransaction, portfolio: "Portfolio", prices: PriceLookup) -> Result[None]:
    validation = _validate(tx, sent=True)
    if validation.is_failure:
        return validation

    sent = tx.sent_amount
    sender = portfolio.get_or_create_holding(sent.currency_code)
    average_cost = sender.average_bought_price

    if sent.currency_code == portfolio.default_currency:
        price = ONE
    else:
        price_result = await prices.get_price_at_close_time(sent.currency_code, tx.date_time)
        if price_result.is_success:
            price = price_result.unwrap()
        else:
            _flag_missing_price(tx, sent.currency_code, price_result.error)
            price = average_cost

    tx.value_in_default_currency = sent.amount * price
    _record_disposal(tx, portfolio, sent, average_cost, price)

    sender.balance -= sent.amount
    _reset_if_flat(sender)
    _check_balance(tx, sender)

    await handle_fees(tx, portfolio, prices)
    return Result.ok()


async def apply_trade(tx: RawTransaction, portfolio: "Portfolio", prices: PriceLookup) -> Result[None]:
    validation = _validate(tx, received=True, sent=True)
    if validation.is_failure:
        return validation

    received, sent = tx.received_amount, tx.sent_amount
    default_currency = portfolio.default_currency
    receiver = portfolio.get_or_create_holding(received.currency_code)
    sender = portfolio.get_or_create_holding(sent.currency_code)
    sender_average = sender.average_bought_price

    if received.currency_code == default_currency:
        cost = received.amount
    elif sent.currency_code == default_currency:
        cost = sent.amount
    else:
        price_result = await prices.get_price_at_close_time(sent.currency_code, tx.date_time)
        if price_result.is_success:
            cost = sent.amount * price_result.unwrap()
        else:
            _flag_missing_price(tx, sent.currency_code, price_result.error)
            cost = sender_average * sent.amount

    tx.value_in_default_currency = cost
    receiver.average_bought_price = _weighted_average(
        receiver.average_bought_price, receiver.balance, cost, received.amount
    )

    _record_disposal(tx, portfolio, sent, sender_average, cost / sent.amount)

    receiver.balance += received.amount
    sender.balance -= sent.amount
    _reset_if_flat(receiver)
    _reset_if_flat(sender)
    _check_balance(tx, sender)

    await handle_fees(tx, portfolio, prices)
    return Result.ok()


async def handle_fees(tx: RawTransaction, portfolio: "Portfolio", prices: PriceLookup) -> None:
    fee = tx.fee_amount
    if fee.is_empty or fee.amount == 0:
        return

    holding = portfolio.get_or_create_holding(fee.currency_code)
    netted = (
        tx.type in (TransactionType.DEPOSIT, TransactionType.TRADE)
        and fee.currency_code == tx.received_amount.currency_code
    )
    if not netted:
        holding.balance -= fee.amount
        _reset_if_flat(holding)

    if fee.currency_code == portfolio.default_currency:
        tx.fee_value_in_default_currency = fee.amount
    else:
        price_result = await prices.get_price_at_close_time(fee.currency_code, tx.date_time)
        if price_result.is_success:
            tx.fee_value_in_default_currency = fee.amount * price_result.unwrap()
        else:
            tx.flag(
                ErrorType.PRICE_HISTORY_UNAVAILABLE,
                f"Could not get price history for {fee.currency_code} fees. Fee value will be incorrect.",
            )
            logger.warning("No fee price for %s on %s: %s", fee.currency_code, tx.date_time, price_result.error)

    _check_balance(tx, holding)


# Helpers

def _validate(tx: RawTransaction, *, received: bool = False, sent: bool = False) -> Result[None]:
    required: list[tuple[str, Money]] = []
    if received:
        required.append(("Received", tx.received_amount))
    if sent:
        required.append(("Sent", tx.sent_amount))

    for label, money in required:
        if money.is_empty or money.amount < 0:
            return _skip(
                tx,
                ErrorType.INVALID_CURRENCY,
                f"{label} amount is missing or negative in {tx.type.value.lower()} transaction: {tx.transaction_ids}",
            )
    if tx.fee_amount.amount < 0:
        return _skip(tx, ErrorType.INVALID_CURRENCY, f"Fee amount is negative: {tx.transaction_ids}")
    for label, money in required:
        if money.amount == 0:
            return _skip(
                tx,
                ErrorType.MANUAL_REVIEW_REQUIRED,
                f"{label} amount is zero in {tx.type.value.lower()} transaction: {tx.transaction_ids}",
            )
    return Result.ok()


def _skip(tx: RawTransaction, error_type: ErrorType, message: str) -> Result[None]:
    tx.flag(error_type, message)
    return Result.fail(message)


def _weighted_average(
    average: Decimal, balance_before: Decimal, value: Decimal, amount: Decimal
) -> Decimal:
    # A negative running balance carries no cost, so only the held part is weighted.
    held = balance_before if balance_before > 0 else ZERO
    quantity = held + amount
    if quantity == 0:
        return ZERO
    return (average * held + value) / quantity


def _reset_if_flat(holding: Holding) -> None:
    if holding.balance == 0:
        holding.average_bought_price = ZERO


def _check_balance(tx: RawTransaction, holding: Holding) -> None:
    if holding.balance < 0:
        tx.flag(ErrorType.INSUFFICIENT_FUNDS, f"{holding.asset} balance is under zero: {holding.balance}")


def _flag_missing_price(tx: RawTransaction, asset: str, reason: str) -> None:
    tx.flag(
        ErrorType.PRICE_HISTORY_UNAVAILABLE,
        f"Could not get price history for {asset}. Average price will be incorrect.",
    )
    logger.warning("No price for %s on %s, using average cost: %s", asset, tx.date_time, reason)


def _record_disposal(
    tx: RawTransaction,
    portfolio: "Portfolio",
    disposed: Money,
    average_cost: Decimal,
    value_at_disposal: Decimal,
) -> None:
    try:
        result = TaxableEvent.create(
            tx.date_time,
            disposed.currency_code,
            average_cost,
            value_at_disposal,
            disposed.amount,
            portfolio.default_currency,
        )
    except (ArithmeticError, TypeError) as exc:
        logger.exception("Taxable event for transaction %s could not be built", tx.id)
        tx.flag(ErrorType.DATA_CORRUPTION, f"Taxable event could not be created: {exc}")
        return

    if result.is_failure:
        tx.flag(ErrorType.TAX_EVENT_NOT_CREATED, result.error)
        return
    portfolio.record_taxable_event(result.unwrap())


__all__ = ["apply_deposit", "apply_trade", "apply_withdrawal", "handle_fees"]
