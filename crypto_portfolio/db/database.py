"""Async engine and session factory wrapper."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from crypto_portfolio.db.base import Base

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./price_history.db"


class Database:
    """Configure an async SQLAlchemy engine and session factory."""

    def __init__(self, url: str | None = None, *, echo: bool = False):
        self._url = url or DEFAULT_DATABASE_URL
        self._engine = create_async_engine(self._url, future=True, echo=echo)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    @property
    def url(self) -> str:
        return self._url

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    async def create_all(self) -> None:
        """Create all tables defined on the declarative metadata."""

        # Register the models on the metadata before creating tables.
        import crypto_portfolio.models  # noqa: F401

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            yield session


__all__ = ["Database", "DEFAULT_DATABASE_URL"]
