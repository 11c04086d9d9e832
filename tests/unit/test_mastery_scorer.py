# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the mastery scorer."""

from datetime import datetime, timezone

import pytest

from src.core.config.settings import MasterySettings
from src.domains.mastery import DEPTH_WEIGHTS, MasteryScorer
from src.models.events import InteractionKind, InteractionRecord
from src.models.progress import ComprehensionLevel, ProgressState

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def record(
    kind: InteractionKind,
    section_id: str = "intro",
    is_correct: bool | None = None,
    score: float | None = None,
    index: int = 0,
) -> InteractionRecord:
    """Build an interaction record."""
    return InteractionRecord(
        event_id=f"e{index}",
        kind=kind,
        section_id=section_id,
        timestamp_utc=NOW,
        duration_ms=60_000,
        is_correct=is_correct,
        score=score,
    )


def progress(time_spent_ms: int = 0) -> ProgressState:
    """Build a progress state."""
    return ProgressState(student_ref="s1", objective_id="algebra-1", time_spent_ms=time_spent_ms)


@pytest.fixture
def scorer() -> MasteryScorer:
    return MasteryScorer(MasterySettings())


class TestMasteryScorer:
    """Tests for MasteryScorer.score."""

    def test_empty_history_scores_zero(self, scorer: MasteryScorer) -> None:
        """Test that no activity means no mastery."""
        result = scorer.score(progress(), [])

        assert result.mastery_score == 0.0
        assert result.comprehension_level == ComprehensionLevel.LOW

    def test_depth_weights_are_ordered(self) -> None:
        """Test passive view < answer < practice < reflection."""
        assert (
            DEPTH_WEIGHTS[InteractionKind.NAVIGATE]
            < DEPTH_WEIGHTS[InteractionKind.VIEW]
            < DEPTH_WEIGHTS[InteractionKind.ANSWER]
            < DEPTH_WEIGHTS[InteractionKind.PRACTICE]
            < DEPTH_WEIGHTS[InteractionKind.REFLECT]
        )

    def test_deeper_interactions_score_higher(self, scorer: MasteryScorer) -> None:
        """Test that active practice beats passive viewing at equal time."""
        views = [record(InteractionKind.VIEW, index=i) for i in range(5)]
        reflections = [record(InteractionKind.REFLECT, index=i) for i in range(5)]

        passive = scorer.score(progress(300_000), views)
        active = scorer.score(progress(300_000), reflections)

        assert active.mastery_score > passive.mastery_score

    def test_evidence_weighs_most(self, scorer: MasteryScorer) -> None:
        """Test that correct answers move mastery more than time alone."""
        time_only = scorer.score(progress(10_000_000), [record(InteractionKind.VIEW)])
        answers = [record(InteractionKind.ANSWER, is_correct=True, index=i) for i in range(5)]
        evidenced = scorer.score(progress(60_000), answers)

        assert evidenced.factors["evidence"] == pytest.approx(50.0)
        assert evidenced.mastery_score > time_only.mastery_score

    def test_engagement_is_capped(self, scorer: MasteryScorer) -> None:
        """Test that huge time values cannot buy more than the engagement weight."""
        result = scorer.score(progress(10**15), [record(InteractionKind.VIEW)])

        assert result.factors["engagement"] == pytest.approx(20.0)

    def test_perfect_history_reaches_high_comprehension(self, scorer: MasteryScorer) -> None:
        """Test a strong learner lands in the high band."""
        history = [
            *(record(InteractionKind.PRACTICE, score=1.0, index=i) for i in range(5)),
            *(record(InteractionKind.REFLECT, index=10 + i) for i in range(5)),
        ]

        result = scorer.score(progress(600_000), history)

        assert result.mastery_score >= 75
        assert result.comprehension_level == ComprehensionLevel.HIGH

    @pytest.mark.parametrize("time_spent", [0, 1, 10**9, 10**18])
    @pytest.mark.parametrize("practice_score", [0.0, 0.5, 1.0, None])
    def test_score_is_always_bounded(
        self, scorer: MasteryScorer, time_spent: int, practice_score: float | None
    ) -> None:
        """Test mastery stays within [0, 100] for adversarial inputs."""
        history = [record(InteractionKind.PRACTICE, score=practice_score, index=i) for i in range(200)]

        result = scorer.score(progress(time_spent), history)

        assert 0.0 <= result.mastery_score <= 100.0

    def test_scoring_is_deterministic(self, scorer: MasteryScorer) -> None:
        """Test that equal histories produce equal scores."""
        history = [
            record(InteractionKind.ANSWER, is_correct=i % 2 == 0, index=i) for i in range(7)
        ]

        first = scorer.score(progress(123_456), history)
        second = scorer.score(progress(123_456), list(history))

        assert first == second

    def test_reset_and_navigation_do_not_add_quality(self, scorer: MasteryScorer) -> None:
        """Test that navigation and resets carry no cognitive depth."""
        history = [record(InteractionKind.NAVIGATE, index=i) for i in range(5)]

        result = scorer.score(progress(), history)

        assert result.factors["quality"] == 0.0


class TestComprehensionBands:
    """Tests for comprehension thresholds."""

    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (0.0, ComprehensionLevel.LOW),
            (44.99, ComprehensionLevel.LOW),
            (45.0, ComprehensionLevel.MEDIUM),
            (74.99, ComprehensionLevel.MEDIUM),
            (75.0, ComprehensionLevel.HIGH),
            (100.0, ComprehensionLevel.HIGH),
        ],
    )
    def test_default_bands(self, scorer: MasteryScorer, score: float, expected: ComprehensionLevel) -> None:
        """Test band boundaries."""
        assert scorer.comprehension_for(score) == expected
