# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

The progress store database is owned by a Database instance that the
application creates at startup and passes to SqlAlchemyProgressStore.
Any SQLAlchemy async driver works; tests use SQLite through aiosqlite.

Example:
    from src.infrastructure.database import Database

    database = Database(settings.database)
    await database.create_schema()

    async with database.session() as session:
        result = await session.execute(select(ProgressStateRow))
        rows = result.scalars().all()

    await database.dispose()
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.config.settings import DatabaseSettings
from src.core.exceptions import PersistenceError
from src.infrastructure.database.models import Base


class Database:
    """Async engine and session factory for the progress database.

    Attributes:
        engine: The SQLAlchemy async engine.
        sessionmaker: Session factory bound to the engine.
    """

    def __init__(self, settings: DatabaseSettings | None = None) -> None:
        """Create the engine.

        Args:
            settings: Database settings, defaults if omitted.

        Raises:
            PersistenceError: If the engine cannot be created.
        """
        self.settings = settings or DatabaseSettings()

        engine_options: dict = {"echo": self.settings.echo, "pool_pre_ping": True}
        if not self.settings.url.startswith("sqlite"):
            engine_options["pool_size"] = self.settings.pool_size
            engine_options["pool_recycle"] = 1800

        try:
            self.engine: AsyncEngine = create_async_engine(self.settings.url, **engine_options)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to initialize database connection", e) from e

        self.sessionmaker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_schema(self) -> None:
        """Create missing tables."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to create database schema", e) from e

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session committed on success and rolled back on exception.

        Raises:
            PersistenceError: If a database operation fails.
        """
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise PersistenceError("Database operation failed", e) from e
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Whether the database is reachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
