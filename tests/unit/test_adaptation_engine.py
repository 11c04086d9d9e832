# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the adaptation engine state machine."""

from unittest.mock import AsyncMock

import pytest

from src.core.config.settings import AdaptationSettings
from src.core.exceptions import CollaboratorError, UnknownObjectiveError
from src.domains.adaptation import CHALLENGE_TAGS, REMEDIATION_TAGS, AdaptationEngine
from src.domains.progress import ProgressLedger
from src.infrastructure.cache import InMemoryDirectiveCache
from src.infrastructure.collaborators import InMemoryCourseCatalog
from src.models.adaptation import AdaptationState
from src.models.consent import Authorization
from src.models.course import DifficultyLevel, ObjectiveDefinition
from src.models.progress import ProgressState, SectionProgress


def state(
    mastery: float,
    attempts: int,
    objective_id: str = "geometry-1",
    completed: tuple[str, ...] = (),
    active: str = "angles",
) -> ProgressState:
    """Progress with ``attempts`` interactions on the active section."""
    sections = {section: SectionProgress(interaction_count=3, completed=True) for section in completed}
    sections[active] = SectionProgress(interaction_count=attempts, completed=active in completed)
    return ProgressState(
        student_ref="s1",
        objective_id=objective_id,
        mastery_score=mastery,
        completed_sections=set(completed),
        sections=sections,
        version=7,
    )


@pytest.fixture
def ledger(catalog: InMemoryCourseCatalog) -> ProgressLedger:
    return ProgressLedger(catalog)


@pytest.fixture
def engine(ledger: ProgressLedger) -> AdaptationEngine:
    return AdaptationEngine(ledger, settings=AdaptationSettings())


class TestDecide:
    """Tests for the pure state machine step."""

    def test_few_attempts_keep_assessing(
        self, engine: AdaptationEngine, geometry_definition: ObjectiveDefinition
    ) -> None:
        """Test that fewer than the minimum attempts stays in Assessing."""
        directive = engine.decide(state(mastery=5.0, attempts=1), geometry_definition)

        assert directive.state == AdaptationState.ASSESSING
        assert directive.recommended_difficulty_delta == 0
        assert directive.based_on_version == 7

    def test_low_comprehension_after_many_attempts_reinforces(
        self, engine: AdaptationEngine, geometry_definition: ObjectiveDefinition
    ) -> None:
        """Test Reinforce with a negative delta and remediation content."""
        directive = engine.decide(state(mastery=30.0, attempts=4), geometry_definition)

        assert directive.state == AdaptationState.REINFORCE
        assert directive.recommended_difficulty_delta == -1
        assert directive.content_adjustments == REMEDIATION_TAGS
        assert directive.target_difficulty == DifficultyLevel.BEGINNER

    def test_very_low_mastery_reinforces_two_levels(
        self, engine: AdaptationEngine, geometry_definition: ObjectiveDefinition
    ) -> None:
        """Test the stronger reinforcement band."""
        directive = engine.decide(state(mastery=10.0, attempts=6), geometry_definition)

        assert directive.recommended_difficulty_delta == -2
        assert directive.target_difficulty == DifficultyLevel.BEGINNER

    def test_low_comprehension_at_threshold_maintains(
        self, engine: AdaptationEngine, geometry_definition: ObjectiveDefinition
    ) -> None:
        """Test that attempts must exceed the threshold before reinforcing."""
        directive = engine.decide(state(mastery=10.0, attempts=3), geometry_definition)

        assert directive.state == AdaptationState.MAINTAIN

    def test_high_comprehension_advances(
        self, engine: AdaptationEngine, geometry_definition: ObjectiveDefinition
    ) -> None:
        """Test Advance with a positive delta and challenge content."""
        directive = engine.decide(state(mastery=85.0, attempts=2), geometry_definition)

        assert directive.state == AdaptationState.ADVANCE
        assert directive.recommended_difficulty_delta == 1
        assert directive.content_adjustments == CHALLENGE_TAGS
        assert directive.target_difficulty == DifficultyLevel.ADVANCED

    def test_high_comprehension_below_advance_threshold_maintains(
        self, engine: AdaptationEngine, geometry_definition: ObjectiveDefinition
    ) -> None:
        """Test that high comprehension alone does not advance below 80 mastery."""
        directive = engine.decide(state(mastery=77.0, attempts=5), geometry_definition)

        assert directive.state == AdaptationState.MAINTAIN
        assert directive.recommended_difficulty_delta == 0

    def test_section_completion_reenters_assessing(
        self, engine: AdaptationEngine, geometry_definition: ObjectiveDefinition
    ) -> None:
        """Test that the next section starts with no attempts."""
        progress = state(mastery=90.0, attempts=0, completed=("angles",), active="triangles")

        directive = engine.decide(progress, geometry_definition)

        assert directive.state == AdaptationState.ASSESSING

    def test_completed_objective_uses_last_section(
        self, engine: AdaptationEngine, geometry_definition: ObjectiveDefinition
    ) -> None:
        """Test that a fully completed objective is still evaluated."""
        progress = state(mastery=96.0, attempts=3, completed=("angles", "triangles"), active="triangles")

        directive = engine.decide(progress, geometry_definition)

        assert directive.state == AdaptationState.ADVANCE
        assert directive.recommended_difficulty_delta == 2

    def test_configured_bound_is_respected(
        self, ledger: ProgressLedger, geometry_definition: ObjectiveDefinition
    ) -> None:
        """Test that a tighter delta bound clamps recommendations."""
        engine = AdaptationEngine(ledger, settings=AdaptationSettings(max_difficulty_delta=1))

        directive = engine.decide(state(mastery=99.0, attempts=5), geometry_definition)

        assert directive.recommended_difficulty_delta == 1

    @pytest.mark.parametrize("mastery", [0.0, 12.5, 24.9, 25.0, 50.0, 79.9, 80.0, 94.9, 95.0, 100.0])
    @pytest.mark.parametrize("attempts", [0, 1, 2, 3, 4, 50])
    def test_delta_is_always_bounded(
        self,
        engine: AdaptationEngine,
        algebra_definition: ObjectiveDefinition,
        mastery: float,
        attempts: int,
    ) -> None:
        """Test the delta stays within [-2, 2] for every input."""
        progress = state(mastery=mastery, attempts=attempts, objective_id="algebra-1", active="intro")

        directive = engine.decide(progress, algebra_definition)

        assert -2 <= directive.recommended_difficulty_delta <= 2
        assert directive.target_difficulty in algebra_definition.difficulty_levels


class TestRecommend:
    """Tests for recommendations read from the ledger."""

    @pytest.mark.asyncio
    async def test_no_progress_is_assessing(self, engine: AdaptationEngine) -> None:
        """Test the directive for a student without progress."""
        directive = await engine.recommend("s1", "algebra-1")

        assert directive.state == AdaptationState.ASSESSING
        assert directive.recommended_difficulty_delta == 0
        assert directive.target_difficulty == DifficultyLevel.BEGINNER

    @pytest.mark.asyncio
    async def test_unknown_objective_raises(self, engine: AdaptationEngine) -> None:
        """Test that unknown objectives are surfaced."""
        with pytest.raises(UnknownObjectiveError):
            await engine.recommend("s1", "chemistry-9")

    @pytest.mark.asyncio
    async def test_recommend_is_idempotent_and_read_only(
        self, ledger: ProgressLedger, build_event, standard_authorization: Authorization
    ) -> None:
        """Test repeated recommendations for unchanged state."""
        cache = InMemoryDirectiveCache()
        engine = AdaptationEngine(ledger, cache=cache)
        for i in range(2):
            await ledger.apply(build_event(offset_s=i), standard_authorization)
        before = await ledger.get_progress("s1", "algebra-1")

        first = await engine.recommend("s1", "algebra-1")
        second = await engine.recommend("s1", "algebra-1")

        assert first == second
        assert len(cache) == 1
        assert await ledger.get_progress("s1", "algebra-1") == before

    @pytest.mark.asyncio
    async def test_new_version_is_not_served_from_cache(
        self, ledger: ProgressLedger, build_event, standard_authorization: Authorization
    ) -> None:
        """Test that cached directives are keyed by state version."""
        cache = InMemoryDirectiveCache()
        engine = AdaptationEngine(ledger, cache=cache)
        await ledger.apply(build_event(offset_s=0), standard_authorization)
        first = await engine.recommend("s1", "algebra-1")

        await ledger.apply(build_event(offset_s=1), standard_authorization)
        second = await engine.recommend("s1", "algebra-1")

        assert second.based_on_version == first.based_on_version + 1
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_cache_failure_falls_back_to_computing(
        self, ledger: ProgressLedger, build_event, standard_authorization: Authorization
    ) -> None:
        """Test that an unavailable cache does not break recommendations."""
        cache = AsyncMock()
        cache.get.side_effect = CollaboratorError("down", "directive_cache")
        cache.set.side_effect = CollaboratorError("down", "directive_cache")
        engine = AdaptationEngine(ledger, cache=cache)
        await ledger.apply(build_event(), standard_authorization)

        directive = await engine.recommend("s1", "algebra-1")

        assert directive.based_on_version == 1

    @pytest.mark.asyncio
    async def test_invalidate_student_clears_cache(
        self, ledger: ProgressLedger, build_event, standard_authorization: Authorization
    ) -> None:
        """Test cache invalidation for a student."""
        cache = InMemoryDirectiveCache()
        engine = AdaptationEngine(ledger, cache=cache)
        await ledger.apply(build_event(), standard_authorization)
        await engine.recommend("s1", "algebra-1")

        await engine.invalidate_student("s1")

        assert len(cache) == 0
