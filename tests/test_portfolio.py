from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from price_stubs import MemoryStorage, StubApi, StubPrices

from crypto_portfolio.domain.errors import ERR_NO_WALLETS, ERR_UNKNOWN_CURRENCY, ERR_WALLET_EXISTS, ErrorType
from crypto_portfolio.domain.money import Money
from crypto_portfolio.domain.portfolio import Portfolio, Wallet
from crypto_portfolio.domain.transactions import create_deposit, create_trade, create_withdrawal
from crypto_portfolio.pricing.service import PriceHistoryService


def build_portfolio() -> Portfolio:
    ledger = Wallet.create("Ledger").unwrap()
    exchange = Wallet.create("Exchange").unwrap()
    # Added out of order on purpose; valuation must replay by date.
    ledger.add_transaction(
        create_withdrawal(
            datetime(2024, 1, 3), Money(Decimal("0.5"), "BTC"), None, "ledger", ["w1"]
        ).unwrap()
    )
    exchange.add_transaction(
        create_trade(
            datetime(2024, 1, 2),
            Money(Decimal("1"), "BTC"),
            Money(Decimal("20000"), "USD"),
            None,
            "exchange",
            ["t1"],
        ).unwrap()
    )
    exchange.add_transaction(
        create_deposit(datetime(2024, 1, 1), Money(Decimal("20000"), "USD"), None, "exchange", ["d1"]).unwrap()
    )
    portfolio = Portfolio()
    assert portfolio.add_wallet(ledger).is_success
    assert portfolio.add_wallet(exchange).is_success
    return portfolio


def prices() -> StubPrices:
    return StubPrices(
        {("BTC", datetime(2024, 1, 3).date()): "30000"},
        current={"BTC": "40000"},
    )


@pytest.mark.asyncio
async def test_calculate_trades_replays_all_wallets_in_date_order():
    portfolio = build_portfolio()
    result = await portfolio.calculate_trades(prices())
    assert result.is_success
    report = result.unwrap()
    assert report.skipped == []
    assert [tx.transaction_ids for tx in report.processed] == [["d1"], ["t1"], ["w1"]]

    btc = portfolio.get_holding("BTC")
    assert btc.balance == Decimal("0.5")
    assert btc.average_bought_price == Decimal("20000")
    assert btc.current_price == Decimal("40000")
    assert btc.market_value == Decimal("20000")

    [usd_disposal, btc_disposal] = portfolio.taxable_events
    assert usd_disposal.disposed_asset == "USD"
    assert btc_disposal.gain == Decimal("5000")


@pytest.mark.asyncio
async def test_calculate_trades_is_repeatable():
    portfolio = build_portfolio()
    await portfolio.calculate_trades(prices())
    await portfolio.calculate_trades(prices())
    assert portfolio.get_holding("BTC").balance == Decimal("0.5")
    assert len(portfolio.taxable_events) == 2


@pytest.mark.asyncio
async def test_calculate_trades_without_wallets_fails():
    result = await Portfolio().calculate_trades(StubPrices())
    assert result.is_failure
    assert result.error == ERR_NO_WALLETS


@pytest.mark.asyncio
async def test_calculate_trades_rejects_price_service_in_other_currency():
    portfolio = build_portfolio()
    result = await portfolio.calculate_trades(StubPrices(default_currency="EUR"))
    assert result.is_failure


@pytest.mark.asyncio
async def test_missing_current_price_flags_holding_with_zero_price():
    portfolio = build_portfolio()
    stub = prices()
    stub.current = {}
    result = await portfolio.calculate_trades(stub)
    assert result.is_success
    btc = portfolio.get_holding("BTC")
    assert btc.current_price == 0
    assert btc.error_type is ErrorType.PRICE_HISTORY_UNAVAILABLE


@pytest.mark.asyncio
async def test_default_currency_holding_is_priced_at_one():
    wallet = Wallet.create("Bank").unwrap()
    wallet.add_transaction(
        create_deposit(datetime(2024, 1, 1), Money(Decimal("100"), "USD"), None, "bank", ["d"]).unwrap()
    )
    portfolio = Portfolio()
    portfolio.add_wallet(wallet)
    await portfolio.calculate_trades(StubPrices())
    assert portfolio.get_holding("USD").current_price == Decimal("1")


def test_add_wallet_rejects_duplicate_names():
    portfolio = Portfolio()
    assert portfolio.add_wallet(Wallet.create("Ledger").unwrap()).is_success
    result = portfolio.add_wallet(Wallet.create("Ledger").unwrap())
    assert result.is_failure and result.error == ERR_WALLET_EXISTS
    assert portfolio.remove_wallet("Ledger").is_success
    assert portfolio.wallets == []


def test_set_default_currency_accepts_fiat_only():
    portfolio = Portfolio()
    assert portfolio.set_default_currency("eur").is_success
    assert portfolio.default_currency == "EUR"
    result = portfolio.set_default_currency("BTC")
    assert result.is_failure and result.error == ERR_UNKNOWN_CURRENCY
    assert portfolio.default_currency == "EUR"


def test_same_timestamp_transactions_keep_insertion_order():
    wallet = Wallet.create("Ledger").unwrap()
    when = datetime(2024, 1, 1)
    first = create_deposit(when, Money(Decimal("1"), "BTC"), None, "a", ["1"]).unwrap()
    second = create_deposit(when, Money(Decimal("2"), "BTC"), None, "a", ["2"]).unwrap()
    wallet.add_transaction(first)
    wallet.add_transaction(second)
    portfolio = Portfolio()
    portfolio.add_wallet(wallet)
    assert portfolio.transactions_in_order() == [first, second]


@pytest.mark.asyncio
async def test_unquoted_asset_does_not_zero_the_other_holdings():
    wallet = Wallet.create("Ledger").unwrap()
    for symbol, ref in (("BTC", "b"), ("DOGE", "d")):
        wallet.add_transaction(
            create_deposit(datetime(2024, 1, 1), Money(Decimal("1"), symbol), None, "ledger", [ref]).unwrap()
        )
    portfolio = Portfolio()
    portfolio.add_wallet(wallet)

    api = StubApi({"BTC-USD": {date(2024, 1, 1): "42000"}, "DOGE-USD": {date(2024, 1, 1): "0.09"}})
    api.current = {"BTC": "65000"}
    service = PriceHistoryService(api, MemoryStorage(), today=lambda: date(2024, 6, 1))

    assert (await portfolio.calculate_trades(service)).is_success
    btc, doge = portfolio.get_holding("BTC"), portfolio.get_holding("DOGE")
    assert btc.current_price == Decimal("65000")
    assert btc.error_type is ErrorType.NONE
    assert doge.current_price == 0
    assert doge.error_type is ErrorType.PRICE_HISTORY_UNAVAILABLE


@pytest.mark.asyncio
async def test_wallets_with_naive_and_aware_timestamps_replay_together():
    plus_two = timezone(timedelta(hours=2))
    bank = Wallet.create("Bank").unwrap()
    bank.add_transaction(
        create_deposit(
            datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc), Money(Decimal("100"), "USD"), None, "bank", ["d"]
        ).unwrap()
    )
    exchange = Wallet.create("Exchange").unwrap()
    exchange.add_transaction(
        create_withdrawal(datetime(2024, 1, 1, 10, 0), Money(Decimal("40"), "USD"), None, "exchange", ["w"]).unwrap()
    )
    exchange.add_transaction(
        create_deposit(
            datetime(2024, 1, 1, 10, 30, tzinfo=plus_two), Money(Decimal("5"), "USD"), None, "exchange", ["early"]
        ).unwrap()
    )
    portfolio = Portfolio()
    portfolio.add_wallet(bank)
    portfolio.add_wallet(exchange)

    ordered = portfolio.transactions_in_order()
    assert [tx.transaction_ids for tx in ordered] == [["early"], ["d"], ["w"]]
    assert all(tx.date_time.tzinfo is timezone.utc for tx in ordered)

    result = await portfolio.calculate_trades(StubPrices())
    assert result.is_success
    assert portfolio.get_holding("USD").balance == Decimal("65")
