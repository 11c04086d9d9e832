# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mastery scoring.

Mastery combines three capped factors into a score in [0, 100]:

- Engagement: time on task relative to an expected time per touched
  section. Capped, so very long sessions cannot buy mastery.
- Interaction quality: interactions weighted by cognitive depth
  (passive view < answer < active practice < reflective synthesis),
  scaled by how many interactions there were.
- Evidence: correctness of answers and practice scores, weighted by an
  evidence-confidence factor that saturates after a few assessed attempts.
  Explicit assessment results weigh most heavily.

The scorer is deterministic and performs no I/O, so equal histories
always produce equal scores.
"""

import math
from collections.abc import Sequence

from pydantic import BaseModel, Field

from src.core.config.settings import MasterySettings
from src.models.events import InteractionKind, InteractionRecord
from src.models.progress import ComprehensionLevel, ProgressState

# Ordinal cognitive depth of each interaction kind
DEPTH_WEIGHTS: dict[InteractionKind, float] = {
    InteractionKind.NAVIGATE: 0.0,
    InteractionKind.VIEW: 1.0,
    InteractionKind.ANSWER: 2.0,
    InteractionKind.PRACTICE: 3.0,
    InteractionKind.REFLECT: 4.0,
}
MAX_DEPTH = max(DEPTH_WEIGHTS.values())


class MasteryResult(BaseModel):
    """Scoring output.

    Attributes:
        mastery_score: Mastery in [0, 100].
        comprehension_level: Band derived from the score.
        factors: Point contribution of each factor.
    """

    mastery_score: float = Field(ge=0.0, le=100.0)
    comprehension_level: ComprehensionLevel
    factors: dict[str, float] = Field(default_factory=dict)


def _finite(value: float | int | None) -> float:
    """Map None, NaN and infinities to safe values."""
    if value is None:
        return 0.0
    value = float(value)
    if math.isnan(value):
        return 0.0
    if math.isinf(value):
        return math.copysign(1e18, value)
    return value


def _unit(value: float) -> float:
    return max(0.0, min(1.0, value))


class MasteryScorer:
    """Computes mastery and comprehension from progress and history.

    Attributes:
        settings: Factor weights and comprehension thresholds.

    Example:
        >>> scorer = MasteryScorer()
        >>> result = scorer.score(progress, progress.history)
        >>> result.comprehension_level
        <ComprehensionLevel.MEDIUM: 'medium'>
    """

    def __init__(self, settings: MasterySettings | None = None) -> None:
        """Initialize the scorer.

        Args:
            settings: Mastery settings, defaults if omitted.
        """
        self.settings = settings or MasterySettings()

    def score(
        self,
        progress: ProgressState,
        interaction_history: Sequence[InteractionRecord],
    ) -> MasteryResult:
        """Score a student's mastery of an objective.

        Args:
            progress: Current progress state.
            interaction_history: Interaction summaries, oldest first.

        Returns:
            MasteryResult clamped to [0, 100].
        """
        engagement = self._engagement(progress, interaction_history)
        quality = self._quality(interaction_history)
        evidence = self._evidence(interaction_history)

        total = max(0.0, min(100.0, engagement + quality + evidence))
        total = round(total, 4)

        return MasteryResult(
            mastery_score=total,
            comprehension_level=self.comprehension_for(total),
            factors={
                "engagement": round(engagement, 4),
                "quality": round(quality, 4),
                "evidence": round(evidence, 4),
            },
        )

    def comprehension_for(self, mastery_score: float) -> ComprehensionLevel:
        """Comprehension band of a mastery score."""
        if mastery_score >= self.settings.high_threshold:
            return ComprehensionLevel.HIGH
        if mastery_score >= self.settings.medium_threshold:
            return ComprehensionLevel.MEDIUM
        return ComprehensionLevel.LOW

    def _engagement(
        self,
        progress: ProgressState,
        history: Sequence[InteractionRecord],
    ) -> float:
        touched = len({record.section_id for record in history}) or len(progress.sections) or 1
        expected = self.settings.expected_time_per_section_ms * touched
        time_spent = max(0.0, _finite(progress.time_spent_ms))
        return self.settings.engagement_weight * _unit(time_spent / expected)

    def _quality(self, history: Sequence[InteractionRecord]) -> float:
        interactions = [
            DEPTH_WEIGHTS[record.kind]
            for record in history
            if record.kind not in (InteractionKind.NAVIGATE, InteractionKind.RESET)
        ]
        if not interactions:
            return 0.0
        mean_depth = sum(interactions) / len(interactions)
        volume = _unit(len(interactions) / self.settings.evidence_saturation)
        return self.settings.quality_weight * _unit(mean_depth / MAX_DEPTH) * volume

    def _evidence(self, history: Sequence[InteractionRecord]) -> float:
        outcomes: list[float] = []
        for record in history:
            if record.kind == InteractionKind.ANSWER and record.is_correct is not None:
                outcomes.append(1.0 if record.is_correct else 0.0)
            elif record.kind == InteractionKind.PRACTICE and record.score is not None:
                outcomes.append(_unit(_finite(record.score)))
        if not outcomes:
            return 0.0
        accuracy = sum(outcomes) / len(outcomes)
        confidence = _unit(len(outcomes) / self.settings.evidence_saturation)
        return self.settings.evidence_weight * accuracy * confidence
