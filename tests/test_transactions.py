from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from crypto_portfolio.domain.errors import ERR_DUPLICATE_TRANSACTION, ErrorType
from crypto_portfolio.domain.money import Money
from crypto_portfolio.domain.portfolio import Wallet
from crypto_portfolio.domain.result import Result, ResultError
from crypto_portfolio.domain.taxable_events import TaxableEvent
from crypto_portfolio.domain.transactions import (
    TransactionType,
    create_deposit,
    create_trade,
    create_withdrawal,
)

WHEN = datetime(2024, 3, 1, 10, 0, 0)


def test_deposit_normalises_amounts_and_defaults_fee():
    result = create_deposit(WHEN, Money(Decimal("-0.5"), "BTC"), None, "ledger", ["0xabc"])
    assert result.is_success
    tx = result.unwrap()
    assert tx.type is TransactionType.DEPOSIT
    assert tx.received_amount == Money(Decimal("0.5"), "BTC")
    assert tx.fee_amount == Money(Decimal("0"), "BTC")
    assert tx.sent_amount.is_empty
    assert tx.error_type is ErrorType.NONE


def test_deposit_rejects_fee_in_other_currency():
    result = create_deposit(WHEN, Money(Decimal("1"), "BTC"), Money(Decimal("1"), "USD"), "ledger", ["1"])
    assert result.is_failure
    assert "same currency" in result.error


def test_withdrawal_requires_account_and_ids():
    amount = Money(Decimal("1"), "ETH")
    assert create_withdrawal(WHEN, amount, None, "  ", ["1"]).is_failure
    assert create_withdrawal(WHEN, amount, None, "kraken", []).is_failure
    assert create_withdrawal(WHEN, None, None, "kraken", ["1"]).is_failure
    tx = create_withdrawal(WHEN, amount, Money(Decimal("-0.01"), "ETH"), "kraken", ["1"]).unwrap()
    assert tx.fee_amount == Money(Decimal("0.01"), "ETH")


def test_trade_accepts_fee_in_any_currency():
    result = create_trade(
        WHEN,
        Money(Decimal("8"), "ETH"),
        Money(Decimal("-1"), "BTC"),
        Money(Decimal("5"), "USD"),
        "coinbase",
        ["t-1"],
    )
    tx = result.unwrap()
    assert tx.sent_amount == Money(Decimal("1"), "BTC")
    assert tx.fee_amount.currency_code == "USD"
    assert create_trade(WHEN, Money(Decimal("8"), "ETH"), None, None, "coinbase", ["t-1"]).is_failure


def test_wallet_rejects_duplicates_within_the_same_second():
    wallet = Wallet.create("Ledger").unwrap()
    first = create_deposit(WHEN, Money(Decimal("1"), "BTC"), None, "ledger", ["a"]).unwrap()
    same = create_deposit(WHEN.replace(microsecond=500), Money(Decimal("1"), "BTC"), None, "ledger", ["b"]).unwrap()
    other = create_deposit(WHEN.replace(second=1), Money(Decimal("1"), "BTC"), None, "ledger", ["c"]).unwrap()

    assert wallet.add_transaction(first).is_success
    duplicate = wallet.add_transaction(same)
    assert duplicate.is_failure and duplicate.error == ERR_DUPLICATE_TRANSACTION
    assert wallet.add_transaction(other).is_success
    assert first.wallet_id == wallet.id
    assert len(wallet.transactions) == 2


def test_wallet_remove_transaction():
    wallet = Wallet.create("Ledger").unwrap()
    tx = create_deposit(WHEN, Money(Decimal("1"), "BTC"), None, "ledger", ["a"]).unwrap()
    wallet.add_transaction(tx)
    assert wallet.remove_transaction(tx).is_success
    assert wallet.remove_transaction(tx).is_failure
    assert Wallet.create("  ").is_failure


def test_taxable_event_creation_and_derived_values():
    event = TaxableEvent.create(WHEN, "BTC", Decimal("20000"), Decimal("30000"), Decimal("0.5"), "USD").unwrap()
    assert event.cost_basis == Decimal("10000")
    assert event.proceeds == Decimal("15000")
    assert event.gain == Decimal("5000")
    assert TaxableEvent.create(WHEN, "", Decimal("1"), Decimal("1"), Decimal("1"), "USD").is_failure
    assert TaxableEvent.create(WHEN, "BTC", Decimal("1"), Decimal("1"), Decimal("0"), "USD").is_failure


def test_failed_result_cannot_be_unwrapped():
    result = Result.fail("boom")
    assert not result
    with pytest.raises(ResultError):
        result.unwrap()


def test_naive_timestamp_matches_the_same_utc_instant():
    aware = WHEN.replace(tzinfo=timezone.utc)
    naive = create_deposit(WHEN, Money(Decimal("1"), "BTC"), None, "ledger", ["a"]).unwrap()
    utc = create_deposit(aware, Money(Decimal("1"), "BTC"), None, "ledger", ["b"]).unwrap()
    assert naive.date_time == aware
    assert naive.is_same_transaction(utc)

    wallet = Wallet.create("Ledger").unwrap()
    assert wallet.add_transaction(naive).is_success
    assert wallet.add_transaction(utc).error == ERR_DUPLICATE_TRANSACTION
