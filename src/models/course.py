# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course definition models supplied by the course collaborator."""

from enum import Enum

from pydantic import Field, model_validator

from src.models.base import FrozenCamelModel


class DifficultyLevel(str, Enum):
    """Difficulty levels, ordered from easiest."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ObjectiveDefinition(FrozenCamelModel):
    """Read-only definition of a learning objective.

    Attributes:
        objective_id: Objective identifier.
        all_sections: Ordered section ids.
        difficulty: Difficulty the objective is taught at.
        difficulty_levels: Levels the content is available in, easiest first.
    """

    objective_id: str = Field(min_length=1)
    all_sections: tuple[str, ...] = Field(min_length=1)
    difficulty: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    difficulty_levels: tuple[DifficultyLevel, ...] = tuple(DifficultyLevel)

    @model_validator(mode="after")
    def _check_levels(self) -> "ObjectiveDefinition":
        if len(set(self.all_sections)) != len(self.all_sections):
            raise ValueError("all_sections contains duplicates")
        if self.difficulty not in self.difficulty_levels:
            raise ValueError("difficulty must be one of difficulty_levels")
        return self

    def has_section(self, section_id: str) -> bool:
        """Whether the section belongs to this objective."""
        return section_id in self.all_sections

    def shifted_difficulty(self, delta: int) -> DifficultyLevel:
        """Difficulty level ``delta`` steps away, clamped to available levels."""
        index = self.difficulty_levels.index(self.difficulty) + delta
        index = max(0, min(len(self.difficulty_levels) - 1, index))
        return self.difficulty_levels[index]
