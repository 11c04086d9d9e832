# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Adaptation engine.

State machine per (student, objective):

    Assessing -> {Reinforce, Maintain, Advance} -> Assessing

Attempts are the interactions on the active section, the first section
that is not complete yet. A section completion moves the student to the
next section with no attempts, which re-enters Assessing.

Decision rules once enough attempts are seen:
- Reinforce: low comprehension and attempts above the reinforce threshold.
  Negative difficulty delta with remediation content.
- Advance: high comprehension and mastery at or above the advance
  threshold. Positive delta, scaffolding may be skipped.
- Maintain: otherwise.

The recommended delta is always clamped to the configured bound, which
itself can never exceed two levels in either direction.
"""

import logging

from src.core.config.settings import DIFFICULTY_DELTA_LIMIT, AdaptationSettings
from src.core.exceptions import CollaboratorError
from src.domains.mastery.scorer import MasteryScorer
from src.domains.progress.ledger import ProgressLedger
from src.infrastructure.collaborators.protocols import DirectiveCache
from src.models.adaptation import AdaptationDirective, AdaptationState
from src.models.course import ObjectiveDefinition
from src.models.progress import ComprehensionLevel, ProgressState

logger = logging.getLogger(__name__)

REMEDIATION_TAGS = frozenset({"remediation", "worked-examples", "scaffolding"})
CHALLENGE_TAGS = frozenset({"challenge", "skip-scaffolding"})
PRACTICE_TAGS = frozenset({"practice"})

# Mastery bands that justify a two-level move
STRONG_REINFORCE_BELOW = 25.0
STRONG_ADVANCE_FROM = 95.0


class AdaptationEngine:
    """Recommends difficulty and content adjustments from progress.

    The engine only reads the ledger; recommending never changes progress.

    Attributes:
        ledger: Progress ledger to read states from.
        scorer: Mastery scorer used for comprehension bands.
        cache: Optional directive cache keyed by state version.
        settings: State machine thresholds.
    """

    def __init__(
        self,
        ledger: ProgressLedger,
        scorer: MasteryScorer | None = None,
        cache: DirectiveCache | None = None,
        settings: AdaptationSettings | None = None,
    ) -> None:
        self.ledger = ledger
        self.scorer = scorer or ledger.scorer
        self.cache = cache
        self.settings = settings or AdaptationSettings()

    async def recommend(self, student_ref: str, objective_id: str) -> AdaptationDirective:
        """Directive for a student's current progress on an objective.

        Repeated calls for an unchanged state return equal directives.

        Args:
            student_ref: Opaque student identifier.
            objective_id: Objective identifier.

        Returns:
            AdaptationDirective; Assessing with no delta when there is no
            progress yet.

        Raises:
            UnknownObjectiveError: If the objective is unknown.
        """
        definition = await self.ledger.get_definition(objective_id)
        progress = await self.ledger.get_progress(student_ref, objective_id)

        if progress is None:
            return AdaptationDirective(
                student_ref=student_ref,
                objective_id=objective_id,
                state=AdaptationState.ASSESSING,
                target_difficulty=definition.difficulty,
                reason="No progress recorded yet",
            )

        cached = await self._cached(student_ref, objective_id, progress.version)
        if cached is not None:
            return cached

        directive = self.decide(progress, definition)
        await self._store(directive)
        return directive

    def decide(self, progress: ProgressState, definition: ObjectiveDefinition) -> AdaptationDirective:
        """Pure state machine step for a progress state."""
        attempts = self.attempts(progress, definition)
        comprehension = self.scorer.comprehension_for(progress.mastery_score)
        mastery = progress.mastery_score

        if attempts < self.settings.assessment_min_attempts:
            state = AdaptationState.ASSESSING
            delta = 0
            tags: frozenset[str] = frozenset()
            reason = f"Collecting evidence ({attempts}/{self.settings.assessment_min_attempts} attempts)"
        elif comprehension == ComprehensionLevel.LOW and attempts > self.settings.reinforce_attempt_threshold:
            state = AdaptationState.REINFORCE
            delta = -2 if mastery < STRONG_REINFORCE_BELOW else -1
            tags = REMEDIATION_TAGS
            reason = f"Low comprehension after {attempts} attempts (mastery {mastery:.1f})"
        elif comprehension == ComprehensionLevel.HIGH and mastery >= self.settings.advance_mastery_threshold:
            state = AdaptationState.ADVANCE
            delta = 2 if mastery >= STRONG_ADVANCE_FROM else 1
            tags = CHALLENGE_TAGS
            reason = f"High comprehension (mastery {mastery:.1f})"
        else:
            state = AdaptationState.MAINTAIN
            delta = 0
            tags = PRACTICE_TAGS
            reason = f"{comprehension.value.capitalize()} comprehension (mastery {mastery:.1f})"

        delta = self.clamp_delta(delta)
        return AdaptationDirective(
            student_ref=progress.student_ref,
            objective_id=progress.objective_id,
            state=state,
            recommended_difficulty_delta=delta,
            target_difficulty=definition.shifted_difficulty(delta),
            content_adjustments=tags,
            reason=reason,
            based_on_version=progress.version,
        )

    def clamp_delta(self, delta: int) -> int:
        """Bound a difficulty delta."""
        bound = min(self.settings.max_difficulty_delta, DIFFICULTY_DELTA_LIMIT)
        return max(-bound, min(bound, delta))

    @staticmethod
    def attempts(progress: ProgressState, definition: ObjectiveDefinition) -> int:
        """Interactions on the active section.

        When every section is complete the last section stays active.
        """
        active = next(
            (section_id for section_id in definition.all_sections if section_id not in progress.completed_sections),
            definition.all_sections[-1],
        )
        return progress.section(active).interaction_count

    async def invalidate_student(self, student_ref: str) -> None:
        """Drop cached directives of a student."""
        if self.cache is not None:
            await self.cache.invalidate_student(student_ref)

    async def _cached(self, student_ref: str, objective_id: str, version: int) -> AdaptationDirective | None:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(student_ref, objective_id, version)
        except CollaboratorError as e:
            logger.warning("Directive cache read failed: %s", str(e))
            return None

    async def _store(self, directive: AdaptationDirective) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(directive)
        except CollaboratorError as e:
            logger.warning("Directive cache write failed: %s", str(e))
