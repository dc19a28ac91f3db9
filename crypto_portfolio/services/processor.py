"""Sequential batch processing of wallet transactions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable

from crypto_portfolio.domain.result import Result
from crypto_portfolio.domain.transactions import RawTransaction, TransactionType
from crypto_portfolio.pricing.service import PriceLookup
from crypto_portfolio.services.strategies import apply_deposit, apply_trade, apply_withdrawal

if TYPE_CHECKING:
    from crypto_portfolio.domain.portfolio import Portfolio

logger = logging.getLogger(__name__)

Handler = Callable[[RawTransaction, "Portfolio", PriceLookup], Awaitable[Result[None]]]

HANDLERS: dict[TransactionType, Handler] = {
    TransactionType.DEPOSIT: apply_deposit,
    TransactionType.WITHDRAWAL: apply_withdrawal,
    TransactionType.TRADE: apply_trade,
}


@dataclass
class ProcessingReport:
    processed: list[RawTransaction] = field(default_factory=list)
    skipped: list[RawTransaction] = field(default_factory=list)

    @property
    def flagged(self) -> list[RawTransaction]:
        return [tx for tx in [*self.processed, *self.skipped] if tx.is_flagged]


class TransactionProcessor:
    """Apply transactions one at a time, in the order given.

    A transaction that fails validation is tagged, logged and skipped; the
    rest of the batch still runs against the holdings left by the earlier
    transactions.
    """

    def __init__(self, prices: PriceLookup) -> None:
        self._prices = prices

    async def process_transaction(self, tx: RawTransaction, portfolio: "Portfolio") -> Result[None]:
        handler = HANDLERS.get(tx.type)
        if handler is None:
            return Result.fail(f"Unsupported transaction type: {tx.type}")
        return await handler(tx, portfolio, self._prices)

    async def process(
        self, transactions: Iterable[RawTransaction], portfolio: "Portfolio"
    ) -> Result[ProcessingReport]:
        report = ProcessingReport()
        for tx in transactions:
            result = await self.process_transaction(tx, portfolio)
            if result.is_failure:
                logger.warning("Skipping transaction %s (%s): %s", tx.id, tx.type.value, result.error)
                report.skipped.append(tx)
            else:
                report.processed.append(tx)
        logger.info(
            "Processed %s transactions (%s skipped, %s flagged)",
            len(report.processed),
            len(report.skipped),
            len(report.flagged),
        )
        return Result.ok(report)


__all__ = ["HANDLERS", "ProcessingReport", "TransactionProcessor"]
