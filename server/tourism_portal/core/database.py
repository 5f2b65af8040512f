"""Database configuration and async session management."""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all models."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when the database is used before ``connect()``."""


class Database:
    """
    Owner of the async engine and session factory.

    Created once at startup, stored on ``app.state.database`` and handed to
    request handlers through :func:`get_db`.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError("Database used before connect()")
        return self._engine

    def connect(self) -> None:
        """Create the engine and session factory."""
        if self._engine is not None:
            return

        is_sqlite = self.url.startswith("sqlite")
        options: dict = {"echo": self.echo, "pool_pre_ping": True}
        if is_sqlite:
            # In-memory SQLite needs a single shared connection
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}

        self._engine = create_async_engine(self.url, **options)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created", extra={"dialect": self._engine.dialect.name})

    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise DatabaseNotInitializedError("Database used before connect()")
        return self._session_factory

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield a database session, rolling back on error.

        Yields:
            AsyncSession: Database session
        """
        async with self.session_factory()() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create all tables known to the metadata."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close database connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields database sessions from the app's database.

    Yields:
        AsyncSession: Database session
    """
    database: Database | None = getattr(request.app.state, "database", None)
    if database is None:
        raise DatabaseNotInitializedError("No database attached to the application")
    async for session in database.session():
        yield session
