"""Configuration package exposing application settings helpers."""

from crypto_portfolio.config.settings import AppSettings, DEFAULT_BASE_CURRENCY, get_settings

__all__ = ["AppSettings", "DEFAULT_BASE_CURRENCY", "get_settings"]
