from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from price_stubs import StubApi

from crypto_portfolio.db.database import Database
from crypto_portfolio.pricing.records import PriceRecord
from crypto_portfolio.pricing.service import PriceHistoryService
from crypto_portfolio.pricing.storage_file import FilePriceHistoryStorage
from crypto_portfolio.pricing.storage_sql import SqlPriceHistoryStorage

D1, D2, D3 = date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)


def triples(records: list[PriceRecord]) -> list[tuple[str, date, Decimal]]:
    return [(r.currency_pair, r.close_date, r.close_price) for r in records]


def sample(pair: str = "BTC-USD") -> list[PriceRecord]:
    return [
        PriceRecord(pair, D1, Decimal("42000.5")),
        PriceRecord(pair, D2, Decimal("43000.125")),
    ]


async def sql_storage(tmp_path) -> tuple[SqlPriceHistoryStorage, Database]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'prices.db'}")
    await database.create_all()
    return SqlPriceHistoryStorage(database), database


@pytest.mark.asyncio
async def test_sql_storage_round_trip_and_merge(tmp_path):
    storage, database = await sql_storage(tmp_path)
    try:
        assert (await storage.load_history("BTC-USD")).is_failure

        assert (await storage.save_history("BTC-USD", sample())).is_success
        assert triples((await storage.load_history("BTC-USD")).unwrap()) == triples(sample())

        update = [PriceRecord("BTC-USD", D2, Decimal("43100")), PriceRecord("BTC-USD", D3, Decimal("44000"))]
        assert (await storage.save_history("BTC-USD", update)).is_success
        loaded = triples((await storage.load_history("BTC-USD")).unwrap())
        assert loaded == [
            ("BTC-USD", D1, Decimal("42000.5")),
            ("BTC-USD", D2, Decimal("43100")),
            ("BTC-USD", D3, Decimal("44000")),
        ]
    finally:
        await database.dispose()


@pytest.mark.asyncio
async def test_sql_storage_registers_empty_series(tmp_path):
    storage, database = await sql_storage(tmp_path)
    try:
        assert (await storage.save_history("EURUSD=X", [])).is_success
        assert (await storage.save_history("EURUSD=X", [])).is_success
        result = await storage.load_history("EURUSD=X")
        assert result.is_success
        assert result.unwrap() == []
    finally:
        await database.dispose()


@pytest.mark.asyncio
async def test_service_over_sql_storage_excludes_non_positive_prices(tmp_path):
    storage, database = await sql_storage(tmp_path)
    try:
        await storage.save_history(
            "BTC-USD", [*sample(), PriceRecord("BTC-USD", D3, Decimal("0"))]
        )
        api = StubApi()
        service = PriceHistoryService(api, storage, today=lambda: date(2024, 6, 1))
        assert (await service.get_price_at_close_time("BTC", D2)).unwrap() == Decimal("43000.125")
        assert (await service.get_price_at_close_time("BTC", D3)).is_failure
        assert len(api.history_calls) == 1
    finally:
        await database.dispose()


@pytest.mark.asyncio
async def test_file_storage_round_trip_and_merge(tmp_path):
    storage = FilePriceHistoryStorage(tmp_path / "history")
    assert (await storage.load_history("BTC/USD")).is_failure

    assert (await storage.save_history("BTC/USD", sample("BTC/USD"))).is_success
    assert storage.path_for("BTC/USD").name == "BTC_USD.csv"
    assert triples((await storage.load_history("BTC/USD")).unwrap()) == triples(sample("BTC/USD"))

    await storage.save_history("BTC/USD", [PriceRecord("BTC/USD", D1, Decimal("41000")), PriceRecord("BTC/USD", D3, Decimal("1E-8"))])
    loaded = triples((await storage.load_history("BTC/USD")).unwrap())
    assert loaded == [
        ("BTC/USD", D1, Decimal("41000")),
        ("BTC/USD", D2, Decimal("43000.125")),
        ("BTC/USD", D3, Decimal("1E-8")),
    ]


@pytest.mark.asyncio
async def test_file_storage_empty_series_loads_as_empty(tmp_path):
    storage = FilePriceHistoryStorage(tmp_path)
    assert (await storage.save_history("EURUSD=X", [])).is_success
    assert storage.path_for("EURUSD=X").exists()
    assert (await storage.load_history("EURUSD=X")).unwrap() == []
