"""Price history persisted through async SQLAlchemy."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from crypto_portfolio.db.database import Database
from crypto_portfolio.domain.result import Result
from crypto_portfolio.models import ClosePrice, PriceSeries
from crypto_portfolio.pricing.records import PriceRecord

logger = logging.getLogger(__name__)


class SqlPriceHistoryStorage:
    def __init__(self, database: Database) -> None:
        self._database = database
        dialect = database.dialect_name
        if dialect == "postgresql":
            self._insert = postgresql.insert
        elif dialect == "sqlite":
            self._insert = sqlite.insert
        else:
            raise ValueError(f"Unsupported database dialect for price storage: {dialect}")

    async def load_history(self, currency_pair: str) -> Result[list[PriceRecord]]:
        try:
            async with self._database.session() as session:
                series_id = await session.scalar(
                    select(PriceSeries.id).where(PriceSeries.currency_pair == currency_pair)
                )
                if series_id is None:
                    return Result.fail(f"No price history stored for {currency_pair}.")
                rows = (
                    await session.scalars(
                        select(ClosePrice)
                        .where(ClosePrice.currency_pair == currency_pair)
                        .order_by(ClosePrice.close_date)
                    )
                ).all()
        except SQLAlchemyError as exc:
            logger.exception("Failed to load price history for %s", currency_pair)
            return Result.fail(f"Failed to load price history for {currency_pair}: {exc}")

        return Result.ok(
            [
                PriceRecord(
                    currency_pair=row.currency_pair,
                    close_date=row.close_date,
                    close_price=row.close_price,
                )
                for row in rows
            ]
        )

    async def save_history(self, currency_pair: str, records: Iterable[PriceRecord]) -> Result[None]:
        # Later records for the same day win.
        values = {
            record.close_date: {
                "currency_pair": currency_pair,
                "close_date": record.close_date,
                "close_price": record.close_price,
            }
            for record in records
        }
        try:
            async with self._database.session() as session:
                await session.execute(
                    self._insert(PriceSeries)
                    .values(currency_pair=currency_pair)
                    .on_conflict_do_nothing(index_elements=[PriceSeries.currency_pair])
                )
                if values:
                    stmt = self._insert(ClosePrice).values(list(values.values()))
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[ClosePrice.currency_pair, ClosePrice.close_date],
                        set_={"close_price": stmt.excluded.close_price},
                    )
                    await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to save price history for %s", currency_pair)
            return Result.fail(f"Failed to save price history for {currency_pair}: {exc}")

        logger.debug("Saved %s price records for %s", len(values), currency_pair)
        return Result.ok()


__all__ = ["SqlPriceHistoryStorage"]
