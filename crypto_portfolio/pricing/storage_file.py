"""Price history persisted as one CSV file per trading pair."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable

import pandas as pd

from crypto_portfolio.domain.result import Result
from crypto_portfolio.pricing.records import PriceRecord

logger = logging.getLogger(__name__)

COLUMNS = ["currency_pair", "close_date", "close_price"]
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9=._-]")


class FilePriceHistoryStorage:
    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    def path_for(self, currency_pair: str) -> Path:
        return self._directory / f"{_UNSAFE_CHARS.sub('_', currency_pair)}.csv"

    async def load_history(self, currency_pair: str) -> Result[list[PriceRecord]]:
        path = self.path_for(currency_pair)
        if not path.exists():
            return Result.fail(f"No price history file for {currency_pair}.")
        try:
            frame = await asyncio.to_thread(_read_frame, path)
            records = [
                PriceRecord(
                    currency_pair=row.currency_pair,
                    close_date=date.fromisoformat(row.close_date),
                    close_price=Decimal(row.close_price),
                )
                for row in frame.itertuples(index=False)
            ]
        except (OSError, ValueError, InvalidOperation, pd.errors.ParserError) as exc:
            logger.exception("Failed to read price history file %s", path)
            return Result.fail(f"Failed to read price history for {currency_pair}: {exc}")
        return Result.ok(records)

    async def save_history(self, currency_pair: str, records: Iterable[PriceRecord]) -> Result[None]:
        path = self.path_for(currency_pair)
        incoming = pd.DataFrame(
            [
                {
                    "currency_pair": currency_pair,
                    "close_date": record.close_date.isoformat(),
                    "close_price": str(record.close_price),
                }
                for record in records
            ],
            columns=COLUMNS,
        )
        try:
            await asyncio.to_thread(_merge_and_write, path, incoming)
        except (OSError, ValueError, pd.errors.ParserError) as exc:
            logger.exception("Failed to write price history file %s", path)
            return Result.fail(f"Failed to save price history for {currency_pair}: {exc}")
        logger.debug("Saved %s price records for %s to %s", len(incoming), currency_pair, path)
        return Result.ok()


def _read_frame(path: Path) -> pd.DataFrame:
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def _merge_and_write(path: Path, incoming: pd.DataFrame) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        frame = pd.concat([_read_frame(path), incoming], ignore_index=True)
    else:
        frame = incoming
    frame = frame.drop_duplicates(subset="close_date", keep="last").sort_values("close_date")
    frame.to_csv(path, index=False, columns=COLUMNS)


__all__ = ["FilePriceHistoryStorage"]
