"""Assemble the price-history stack from application settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx

from crypto_portfolio.config import AppSettings, get_settings
from crypto_portfolio.db.database import Database
from crypto_portfolio.pricing.api import PriceHistoryApi, PriceHistoryApiWithRetry
from crypto_portfolio.pricing.providers.alpha_vantage import AlphaVantageClient, AlphaVantagePriceHistoryApi
from crypto_portfolio.pricing.providers.yahoo import YahooFinanceClient, YahooFinancePriceHistoryApi
from crypto_portfolio.pricing.rate_limiter import RateLimiter
from crypto_portfolio.pricing.service import PriceHistoryService
from crypto_portfolio.pricing.storage import PriceHistoryStorage
from crypto_portfolio.pricing.storage_file import FilePriceHistoryStorage
from crypto_portfolio.pricing.storage_sql import SqlPriceHistoryStorage

logger = logging.getLogger(__name__)


@dataclass
class PricingStack:
    service: PriceHistoryService
    rate_limiter: RateLimiter
    database: Database | None = None
    _closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def aclose(self) -> None:
        """Run every closer, then re-raise the first failure."""

        first_error: Exception | None = None
        for close in reversed(self._closers):
            try:
                await close()
            except Exception as exc:
                logger.exception("Closing %r failed", close)
                first_error = first_error or exc
        self._closers.clear()
        if first_error is not None:
            raise first_error


def build_price_api(
    settings: AppSettings,
    rate_limiter: RateLimiter,
    http_client: httpx.AsyncClient | None = None,
) -> tuple[PriceHistoryApi, Callable[[], Awaitable[None]]]:
    if settings.price_provider == "alpha_vantage":
        av_client = AlphaVantageClient(
            settings.alphavantage_api_key,
            rate_limiter=rate_limiter,
            client=http_client,
            timeout=settings.http_timeout_seconds,
        )
        return AlphaVantagePriceHistoryApi(av_client), av_client.aclose

    yahoo_client = YahooFinanceClient(
        rate_limiter=rate_limiter,
        client=http_client,
        timeout=settings.http_timeout_seconds,
    )
    return YahooFinancePriceHistoryApi(yahoo_client), yahoo_client.aclose


async def build_pricing_stack(
    settings: AppSettings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> PricingStack:
    """Wire the provider, retry decorator, storage and service together.

    Every provider call made through the returned service goes through one
    shared :class:`RateLimiter`.
    """

    settings = settings or get_settings()
    rate_limiter = RateLimiter(settings.requests_per_minute)
    api, close_api = build_price_api(settings, rate_limiter, http_client)
    closers = [close_api]

    database: Database | None = None
    storage: PriceHistoryStorage
    if settings.price_storage_backend == "database":
        database = Database(settings.database_url)
        await database.create_all()
        storage = SqlPriceHistoryStorage(database)
        closers.insert(0, database.dispose)
    else:
        storage = FilePriceHistoryStorage(settings.price_history_dir)

    service = PriceHistoryService(
        PriceHistoryApiWithRetry(api, settings.price_fetch_attempts),
        storage,
        default_currency=settings.default_currency,
        current_price_ttl_seconds=settings.current_price_ttl_seconds,
        fiat_fallback_days=settings.fiat_fallback_days,
        history_window_days=settings.history_window_days,
    )
    logger.info(
        "Pricing stack ready: provider=%s storage=%s rpm=%s",
        settings.price_provider,
        settings.price_storage_backend,
        settings.requests_per_minute,
    )
    return PricingStack(service=service, rate_limiter=rate_limiter, database=database, _closers=closers)


__all__ = ["PricingStack", "build_price_api", "build_pricing_stack"]
