# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the SQLAlchemy progress store."""

import pytest

from src.core.exceptions import ConcurrencyConflictError
from src.domains.progress import ProgressLedger
from src.infrastructure.collaborators import InMemoryCourseCatalog
from src.infrastructure.database import Database, SqlAlchemyProgressStore
from src.models.consent import Authorization
from src.models.progress import ApplyResult, ProgressState, SectionProgress

pytestmark = pytest.mark.integration


def progress_state(version: int, student_ref: str = "s1", objective_id: str = "algebra-1") -> ProgressState:
    return ProgressState(
        student_ref=student_ref,
        objective_id=objective_id,
        completed_sections={"intro"},
        time_spent_ms=150_000,
        interaction_count=3,
        mastery_score=42.5,
        version=version,
        sections={"intro": SectionProgress(time_spent_ms=150_000, interaction_count=3, completed=True)},
        applied_event_ids={"e1", "e2", "e3"},
    )


class TestSqlAlchemyProgressStore:
    """Tests for SqlAlchemyProgressStore against a real database."""

    @pytest.mark.asyncio
    async def test_database_is_reachable(self, database: Database) -> None:
        """Test the connection check."""
        assert await database.check_connection() is True

    @pytest.mark.asyncio
    async def test_save_and_load(self, sql_store: SqlAlchemyProgressStore) -> None:
        """Test that a state survives a round trip through the database."""
        state = progress_state(version=3)

        await sql_store.save(state)
        loaded = await sql_store.load("s1", "algebra-1")

        assert loaded is not None
        assert loaded.version == 3
        assert loaded.completed_sections == {"intro"}
        assert loaded.applied_event_ids == {"e1", "e2", "e3"}
        assert loaded.sections["intro"].completed is True
        assert loaded.mastery_score == pytest.approx(42.5)

    @pytest.mark.asyncio
    async def test_load_missing(self, sql_store: SqlAlchemyProgressStore) -> None:
        """Test loading a state that was never saved."""
        assert await sql_store.load("s1", "algebra-1") is None

    @pytest.mark.asyncio
    async def test_newer_version_replaces_row(self, sql_store: SqlAlchemyProgressStore) -> None:
        """Test updating an existing state."""
        await sql_store.save(progress_state(version=1))
        await sql_store.save(progress_state(version=2))

        loaded = await sql_store.load("s1", "algebra-1")

        assert loaded.version == 2
        assert await sql_store.count() == 1

    @pytest.mark.asyncio
    async def test_same_version_is_noop(self, sql_store: SqlAlchemyProgressStore) -> None:
        """Test that retried saves are harmless."""
        state = progress_state(version=2)
        await sql_store.save(state)

        await sql_store.save(state.model_copy(update={"mastery_score": 99.0}))

        loaded = await sql_store.load("s1", "algebra-1")
        assert loaded.mastery_score == pytest.approx(42.5)

    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self, sql_store: SqlAlchemyProgressStore) -> None:
        """Test that an older version cannot overwrite a newer one."""
        await sql_store.save(progress_state(version=5))

        with pytest.raises(ConcurrencyConflictError):
            await sql_store.save(progress_state(version=4))

        loaded = await sql_store.load("s1", "algebra-1")
        assert loaded.version == 5

    @pytest.mark.asyncio
    async def test_purge_removes_only_the_student(self, sql_store: SqlAlchemyProgressStore) -> None:
        """Test purging all objectives of one student."""
        await sql_store.save(progress_state(version=1))
        await sql_store.save(progress_state(version=1, objective_id="geometry-1"))
        await sql_store.save(progress_state(version=1, student_ref="s2"))

        removed = await sql_store.purge("s1")

        assert removed == 2
        assert await sql_store.load("s1", "algebra-1") is None
        assert await sql_store.load("s1", "geometry-1") is None
        assert await sql_store.load("s2", "algebra-1") is not None


class TestLedgerWithDatabase:
    """Tests for the ledger persisting through the database."""

    @pytest.mark.asyncio
    async def test_progress_is_restored_by_a_new_ledger(
        self,
        catalog: InMemoryCourseCatalog,
        sql_store: SqlAlchemyProgressStore,
        build_event,
        standard_authorization: Authorization,
    ) -> None:
        """Test that a restarted ledger continues from stored state."""
        ledger = ProgressLedger(catalog, store=sql_store)
        event = build_event(duration_ms=60_000)
        await ledger.apply(event, standard_authorization)

        restarted = ProgressLedger(catalog, store=sql_store)
        replay = await restarted.apply(event, standard_authorization)
        progress = await restarted.get_progress("s1", "algebra-1")

        assert isinstance(replay, ApplyResult)
        assert replay.duplicate is True
        assert progress.version == 1
        assert progress.time_spent_ms == 60_000

    @pytest.mark.asyncio
    async def test_purge_clears_database(
        self,
        catalog: InMemoryCourseCatalog,
        sql_store: SqlAlchemyProgressStore,
        build_event,
        standard_authorization: Authorization,
    ) -> None:
        """Test that purging a student removes stored rows."""
        ledger = ProgressLedger(catalog, store=sql_store)
        await ledger.apply(build_event(), standard_authorization)
        await ledger.apply(build_event(objective_id="geometry-1", section_id="angles"), standard_authorization)

        removed = await ledger.purge_student("s1")

        assert removed == 2
        assert await sql_store.count() == 0
