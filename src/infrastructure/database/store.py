# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy progress store.

Version rules match the in-memory store:
- Saving a version equal to the stored one is a no-op, so at-least-once
  retries are safe.
- Saving a version older than the stored one raises
  ConcurrencyConflictError.

Database failures surface as PersistenceError (transient, retryable).
"""

import logging

from sqlalchemy import delete, select

from src.core.exceptions import ConcurrencyConflictError
from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import ProgressStateRow
from src.models.progress import ProgressState

logger = logging.getLogger(__name__)


class SqlAlchemyProgressStore:
    """ProgressStore backed by a relational database.

    Example:
        >>> store = SqlAlchemyProgressStore(Database(settings.database))
        >>> await store.save(state)
        >>> await store.load(state.student_ref, state.objective_id)
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    async def save(self, state: ProgressState) -> None:
        """Insert or update a state, enforcing version order."""
        async with self.database.session() as session:
            row = await session.get(
                ProgressStateRow,
                (state.student_ref, state.objective_id),
                with_for_update=True,
            )
            if row is None:
                session.add(
                    ProgressStateRow(
                        student_ref=state.student_ref,
                        objective_id=state.objective_id,
                        version=state.version,
                        payload=state.model_dump(mode="json"),
                        updated_at=state.last_updated,
                    )
                )
                return

            if row.version == state.version:
                return
            if row.version > state.version:
                raise ConcurrencyConflictError(
                    "Stale progress write",
                    {"stored_version": row.version, "version": state.version},
                )

            row.version = state.version
            row.payload = state.model_dump(mode="json")
            row.updated_at = state.last_updated

    async def load(self, student_ref: str, objective_id: str) -> ProgressState | None:
        """Load a stored state."""
        async with self.database.session() as session:
            row = await session.get(ProgressStateRow, (student_ref, objective_id))
            if row is None:
                return None
            return ProgressState.model_validate(row.payload)

    async def purge(self, student_ref: str) -> int:
        """Delete every stored state of a student."""
        async with self.database.session() as session:
            result = await session.execute(
                select(ProgressStateRow.objective_id).where(ProgressStateRow.student_ref == student_ref)
            )
            count = len(result.scalars().all())
            await session.execute(delete(ProgressStateRow).where(ProgressStateRow.student_ref == student_ref))

        logger.info("Purged %d stored progress states", count)
        return count

    async def count(self) -> int:
        """Number of stored states."""
        async with self.database.session() as session:
            result = await session.execute(select(ProgressStateRow.objective_id))
            return len(result.scalars().all())
