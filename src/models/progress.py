# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress state models."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import Field

from src.models.base import CamelModel, FrozenCamelModel
from src.models.events import InteractionRecord
from src.utils.datetime import utc_now


class ComprehensionLevel(str, Enum):
    """Coarse comprehension band derived from the mastery score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SectionProgress(CamelModel):
    """Per-section counters used by the completion rule."""

    time_spent_ms: int = Field(default=0, ge=0)
    interaction_count: int = Field(default=0, ge=0)
    completed: bool = False
    completed_at: datetime | None = None


class ProgressState(CamelModel):
    """Progress of one student on one objective.

    The ledger never mutates a published state; each applied event
    produces a new copy with an incremented version.

    Attributes:
        student_ref: Opaque hashed student identifier.
        objective_id: Learning objective.
        completed_sections: Sections that met the completion rule.
        time_spent_ms: Total time across all sections.
        interaction_count: Total interactions across all sections.
        mastery_score: Mastery in [0, 100].
        comprehension_level: Band of the latest scoring.
        last_updated: Time of the latest applied event.
        version: Number of state changes applied.
        sections: Per-section counters.
        applied_event_ids: Content hashes of applied events.
        history: Retained interaction summaries, oldest first.
    """

    student_ref: str
    objective_id: str
    completed_sections: set[str] = Field(default_factory=set)
    time_spent_ms: int = Field(default=0, ge=0)
    interaction_count: int = Field(default=0, ge=0)
    mastery_score: float = Field(default=0.0, ge=0.0, le=100.0)
    comprehension_level: ComprehensionLevel = ComprehensionLevel.LOW
    last_updated: datetime = Field(default_factory=utc_now)
    version: int = Field(default=0, ge=0)
    sections: dict[str, SectionProgress] = Field(default_factory=dict)
    applied_event_ids: set[str] = Field(default_factory=set)
    history: list[InteractionRecord] = Field(default_factory=list)

    @property
    def key(self) -> tuple[str, str]:
        """Unit of mutual exclusion for this state."""
        return (self.student_ref, self.objective_id)

    def section(self, section_id: str) -> SectionProgress:
        """Counters of a section, empty if never touched."""
        return self.sections.get(section_id) or SectionProgress()

    def public_view(self) -> dict[str, Any]:
        """Serialise for callers without ledger bookkeeping."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"applied_event_ids", "history"},
        )


class UnmetCriterion(FrozenCamelModel):
    """A completion criterion that was not satisfied."""

    criterion: Literal["min_time_on_task", "min_interactions"]
    required: int
    actual: int


class CompletionCheck(FrozenCamelModel):
    """Outcome of evaluating the completion rule for a section.

    Attributes:
        section_id: Section that was evaluated.
        completed: Whether the section is complete after the event.
        newly_completed: Whether this event completed it.
        unmet_criteria: What is still missing when not complete.
    """

    section_id: str
    completed: bool
    newly_completed: bool = False
    unmet_criteria: tuple[UnmetCriterion, ...] = ()

    @property
    def eligible(self) -> bool:
        """Whether the section met every completion criterion."""
        return not self.unmet_criteria


class ProgressDelta(FrozenCamelModel):
    """Change contributed by one applied event, free of identifiers.

    Passed to the aggregator so cohort sums can be maintained without
    storing per-student rows. objective_completed and objective_reopened
    mark transitions into and out of full completion, so the sum of
    completions always equals the students currently complete.
    """

    time_spent_ms: int = 0
    mastery_delta: float = 0.0
    new_tracked_contributor: bool = False
    objective_completed: bool = False
    objective_reopened: bool = False


class ApplyResult(FrozenCamelModel):
    """Result of applying one event to the ledger.

    Attributes:
        progress: State after the event.
        completion: Completion evaluation for the event's section.
        duplicate: Whether the event had already been applied.
        delta: Anonymous change contributed by the event.
    """

    progress: ProgressState
    completion: CompletionCheck | None = None
    duplicate: bool = False
    delta: ProgressDelta = ProgressDelta()
