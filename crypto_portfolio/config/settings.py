"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from crypto_portfolio.domain.money import is_fiat

DEFAULT_BASE_CURRENCY = "USD"


class AppSettings(BaseSettings):
    """Configuration options for the portfolio valuation engine."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="Crypto Portfolio")
    default_currency: str = Field(default=DEFAULT_BASE_CURRENCY)

    database_url: str = Field(
        default="sqlite+aiosqlite:///./price_history.db",
        description="SQLAlchemy database URL used by the database price storage.",
    )
    price_storage_backend: Literal["database", "file"] = Field(default="database")
    price_history_dir: str = Field(
        default="./price_history",
        description="Directory holding one CSV per trading pair for the file storage.",
    )

    price_provider: Literal["yahoo", "alpha_vantage"] = Field(default="yahoo")
    alphavantage_api_key: str = Field(default="demo")
    alphavantage_requests_per_minute: int = Field(default=5, gt=0)
    yahoo_requests_per_minute: int = Field(default=60, gt=0)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    price_fetch_attempts: int = Field(default=3, ge=1)
    current_price_ttl_seconds: float = Field(default=60.0, ge=0)
    fiat_fallback_days: int = Field(default=4, ge=0)
    history_window_days: int = Field(default=365, ge=1)

    log_level: str = Field(default="INFO")

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="crypto-portfolio")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("default_currency")
    @classmethod
    def _fiat_default_currency(cls, value: str) -> str:
        value = value.strip().upper()
        if not is_fiat(value):
            raise ValueError(f"Unknown fiat currency code: {value}")
        return value

    @property
    def requests_per_minute(self) -> int:
        if self.price_provider == "alpha_vantage":
            return self.alphavantage_requests_per_minute
        return self.yahoo_requests_per_minute

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"alphavantage_api_key"}
        return {k: ("***" if k in hidden else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = ["AppSettings", "DEFAULT_BASE_CURRENCY", "get_settings"]
