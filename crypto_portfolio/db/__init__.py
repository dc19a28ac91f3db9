"""Database helpers."""

from crypto_portfolio.db.base import Base
from crypto_portfolio.db.database import Database

__all__ = ["Base", "Database"]
