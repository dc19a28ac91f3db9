"""Concrete price history providers."""

from crypto_portfolio.pricing.providers.alpha_vantage import AlphaVantageClient, AlphaVantageError, AlphaVantagePriceHistoryApi
from crypto_portfolio.pricing.providers.yahoo import YahooFinanceClient, YahooFinanceError, YahooFinancePriceHistoryApi

__all__ = [
    "AlphaVantageClient",
    "AlphaVantageError",
    "AlphaVantagePriceHistoryApi",
    "YahooFinanceClient",
    "YahooFinanceError",
    "YahooFinancePriceHistoryApi",
]
