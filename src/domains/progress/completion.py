# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Section completion rule.

A section is complete only when both criteria hold:
- time on task in the section >= min_time_on_task_ms
- interactions in the section >= min_interactions (beginner objectives
  use the stricter beginner_min_interactions)
"""

from src.core.config.settings import CompletionSettings
from src.models.course import DifficultyLevel, ObjectiveDefinition
from src.models.progress import SectionProgress, UnmetCriterion


class CompletionRule:
    """Evaluates the completion criteria for a section."""

    def __init__(self, settings: CompletionSettings | None = None) -> None:
        self.settings = settings or CompletionSettings()

    def required_interactions(self, definition: ObjectiveDefinition) -> int:
        """Interaction threshold for an objective's difficulty."""
        if definition.difficulty == DifficultyLevel.BEGINNER:
            return self.settings.beginner_min_interactions
        return self.settings.min_interactions

    def unmet_criteria(
        self,
        section: SectionProgress,
        definition: ObjectiveDefinition,
    ) -> tuple[UnmetCriterion, ...]:
        """Criteria the section does not satisfy yet; empty when eligible."""
        unmet: list[UnmetCriterion] = []

        if section.time_spent_ms < self.settings.min_time_on_task_ms:
            unmet.append(
                UnmetCriterion(
                    criterion="min_time_on_task",
                    required=self.settings.min_time_on_task_ms,
                    actual=section.time_spent_ms,
                )
            )

        required = self.required_interactions(definition)
        if section.interaction_count < required:
            unmet.append(
                UnmetCriterion(
                    criterion="min_interactions",
                    required=required,
                    actual=section.interaction_count,
                )
            )

        return tuple(unmet)
