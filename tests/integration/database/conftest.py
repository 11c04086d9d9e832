# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Provides a schema-initialised SQLite database per test. Set
TEST_DATABASE_URL to run against another async driver.
"""

import os
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from src.core.config.settings import DatabaseSettings
from src.infrastructure.database import Base, Database, SqlAlchemyProgressStore


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Database URL for tests."""
    return os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'progress.db'}")


@pytest_asyncio.fixture(scope="function")
async def database(database_url: str) -> AsyncGenerator[Database, None]:
    """Database with a fresh schema."""
    db = Database(DatabaseSettings(url=database_url))

    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await db.create_schema()

    yield db

    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await db.dispose()


@pytest.fixture
def sql_store(database: Database) -> SqlAlchemyProgressStore:
    """Progress store on the test database."""
    return SqlAlchemyProgressStore(database)
