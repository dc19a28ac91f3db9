from __future__ import annotations

import pytest
from pydantic import ValidationError

from crypto_portfolio.config.settings import AppSettings, get_settings


def test_defaults_and_logging_dict_hide_secrets():
    settings = AppSettings(alphavantage_api_key="secret")
    assert settings.default_currency == "USD"
    assert settings.price_fetch_attempts == 3
    assert settings.current_price_ttl_seconds == 60
    assert settings.fiat_fallback_days == 4
    assert settings.dict_for_logging()["alphavantage_api_key"] == "***"


def test_requests_per_minute_follows_provider():
    assert AppSettings(price_provider="alpha_vantage").requests_per_minute == 5
    assert AppSettings(price_provider="yahoo", yahoo_requests_per_minute=30).requests_per_minute == 30


def test_default_currency_must_be_fiat():
    assert AppSettings(default_currency="eur").default_currency == "EUR"
    with pytest.raises(ValidationError):
        AppSettings(default_currency="BTC")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PRICE_STORAGE_BACKEND", "file")
    monkeypatch.setenv("PRICE_FETCH_ATTEMPTS", "5")
    settings = AppSettings()
    assert settings.price_storage_backend == "file"
    assert settings.price_fetch_attempts == 5


def test_get_settings_with_overrides_builds_fresh_instance():
    settings = get_settings(price_provider="alpha_vantage")
    assert settings.price_provider == "alpha_vantage"
