"""CLI wrapper that values a portfolio JSON document."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from crypto_portfolio.config import get_settings
from crypto_portfolio.core.logging import setup_logging
from crypto_portfolio.core.telemetry import setup_telemetry, shutdown_telemetry
from crypto_portfolio.factory import build_pricing_stack
from crypto_portfolio.schemas import PortfolioDocument, PortfolioReport

logger = logging.getLogger(__name__)


async def _run(path: Path, as_json: bool) -> int:
    settings = get_settings()
    try:
        document = PortfolioDocument.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        print(f"Could not read portfolio document {path}: {exc}", file=sys.stderr)
        return 2

    built = document.to_portfolio()
    if built.is_failure:
        print(f"Invalid portfolio document: {built.error}", file=sys.stderr)
        return 2
    portfolio = built.unwrap()
    if portfolio.default_currency != settings.default_currency:
        settings = settings.model_copy(update={"default_currency": portfolio.default_currency})

    stack = await build_pricing_stack(settings)
    setup_telemetry(settings, stack.database.engine if stack.database else None)
    try:
        result = await portfolio.calculate_trades(stack.service)
    finally:
        await stack.aclose()
        shutdown_telemetry()

    if result.is_failure:
        print(result.error, file=sys.stderr)
        return 1

    report = PortfolioReport.from_portfolio(portfolio, result.unwrap().flagged)
    if as_json:
        print(report.model_dump_json(indent=2))
        return 0

    print(f"Holdings ({report.default_currency})")
    for holding in report.holdings:
        flag = f"  [{holding.error_type.value}]" if holding.error_type.value != "None" else ""
        print(
            f"  {holding.asset:<8} balance={holding.balance:f} avg={holding.average_bought_price:.2f} "
            f"price={holding.current_price:.2f} value={holding.market_value:.2f}{flag}"
        )
    print(f"Taxable events: {len(report.taxable_events)}, realized gain {report.realized_gain:.2f}")
    for event in report.taxable_events:
        print(
            f"  {event.date_time:%Y-%m-%d} {event.disposed_asset:<8} amount={event.amount:f} "
            f"cost={event.average_cost:.2f} value={event.value_at_disposal:.2f} gain={event.gain:.2f}"
        )
    for issue in report.flagged_transactions:
        print(f"  ! {issue.date_time:%Y-%m-%d} {issue.type.value} {issue.error_type.value}: {issue.error_message}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Value a crypto portfolio and list taxable events")
    parser.add_argument("--input", required=True, type=Path, help="Portfolio JSON document")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args()
    setup_logging(get_settings().log_level)
    sys.exit(asyncio.run(_run(args.input, args.json)))


if __name__ == "__main__":
    main()
