# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Adaptation directive models."""

from enum import Enum

from pydantic import Field

from src.core.config.settings import DIFFICULTY_DELTA_LIMIT
from src.models.base import FrozenCamelModel
from src.models.course import DifficultyLevel


class AdaptationState(str, Enum):
    """States of the per-(student, objective) adaptation machine."""

    ASSESSING = "assessing"
    REINFORCE = "reinforce"
    MAINTAIN = "maintain"
    ADVANCE = "advance"


class AdaptationDirective(FrozenCamelModel):
    """Ephemeral adaptation recommendation.

    Attributes:
        student_ref: Opaque student identifier.
        objective_id: Learning objective.
        state: State the machine settled in.
        recommended_difficulty_delta: Bounded difficulty change.
        target_difficulty: Difficulty level after applying the delta.
        content_adjustments: Content tags to apply.
        reason: Human-readable explanation.
        based_on_version: Progress state version the directive reflects.
    """

    student_ref: str
    objective_id: str
    state: AdaptationState
    recommended_difficulty_delta: int = Field(
        default=0, ge=-DIFFICULTY_DELTA_LIMIT, le=DIFFICULTY_DELTA_LIMIT
    )
    target_difficulty: DifficultyLevel | None = None
    content_adjustments: frozenset[str] = frozenset()
    reason: str = ""
    based_on_version: int = 0
