"""ORM models."""

from crypto_portfolio.models.price import ClosePrice, PriceSeries

__all__ = ["ClosePrice", "PriceSeries"]
