# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the progress store.

This package provides:
- Database: SQLAlchemy async engine and session management
- ProgressStateRow: ORM model of a stored progress state
- SqlAlchemyProgressStore: ProgressStore implementation

Example:
    from src.infrastructure.database import Database, SqlAlchemyProgressStore

    database = Database(settings.database)
    await database.create_schema()
    store = SqlAlchemyProgressStore(database)
"""

from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import Base, ProgressStateRow
from src.infrastructure.database.store import SqlAlchemyProgressStore

__all__ = [
    "Database",
    "Base",
    "ProgressStateRow",
    "SqlAlchemyProgressStore",
]
