"""Cached closing price tables."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from crypto_portfolio.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PriceSeries(Base):
    """One row per trading pair that has ever been persisted, even if empty."""

    __tablename__ = "price_series"
    __table_args__ = (UniqueConstraint("currency_pair", name="uq_price_series_pair"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    currency_pair: Mapped[str] = mapped_column(String(32))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ClosePrice(Base):
    __tablename__ = "close_price"
    __table_args__ = (
        UniqueConstraint("currency_pair", "close_date", name="uq_close_price_pair_date"),
        Index("ix_close_price_pair_date", "currency_pair", "close_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    currency_pair: Mapped[str] = mapped_column(String(32))
    close_date: Mapped[date] = mapped_column(Date)
    close_price: Mapped[Decimal] = mapped_column(Numeric(28, 10))


__all__ = ["ClosePrice", "PriceSeries"]
