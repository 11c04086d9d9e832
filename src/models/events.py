# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Interaction event models.

Payloads form a tagged union keyed by ``kind``. Pydantic resolves the
union through the discriminator, so each kind is validated against its
own payload model and unknown kinds fail validation.
"""

import hashlib
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import Field, field_validator, model_validator

from src.models.base import FrozenCamelModel
from src.models.consent import PrivacyTier
from src.utils.datetime import ensure_utc


class InteractionKind(str, Enum):
    """Kinds of student interaction."""

    VIEW = "view"
    NAVIGATE = "navigate"
    ANSWER = "answer"
    PRACTICE = "practice"
    REFLECT = "reflect"
    RESET = "reset"


class BasePayload(FrozenCamelModel):
    """Fields shared by every payload.

    The optional behavioral-pattern fields are only retained for students
    at the enhanced privacy tier.

    Attributes:
        duration_ms: Time spent on the interaction.
        hesitation_ms: Delay before the first input.
        answer_changes: Number of times an answer was changed.
        scroll_depth: Fraction of content scrolled through.
        focus_losses: Number of times the window lost focus.
    """

    duration_ms: int = Field(default=0, ge=0)
    hesitation_ms: int | None = Field(default=None, ge=0)
    answer_changes: int | None = Field(default=None, ge=0)
    scroll_depth: float | None = Field(default=None, ge=0.0, le=1.0)
    focus_losses: int | None = Field(default=None, ge=0)


class ViewPayload(BasePayload):
    """Passive viewing of section content."""

    kind: Literal["view"] = "view"
    content_id: str | None = None


class NavigatePayload(BasePayload):
    """Movement between sections."""

    kind: Literal["navigate"] = "navigate"
    from_section_id: str | None = None
    to_section_id: str | None = None


class AnswerPayload(BasePayload):
    """Answer to an assessment item."""

    kind: Literal["answer"] = "answer"
    question_id: str | None = None
    selected_option: str
    correct_option: str

    @field_validator("selected_option", "correct_option", mode="before")
    @classmethod
    def _option_to_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def is_correct(self) -> bool:
        """Whether the selected option matches the correct one."""
        return self.selected_option.casefold() == self.correct_option.casefold()


class PracticePayload(BasePayload):
    """Active practice exercise, optionally scored."""

    kind: Literal["practice"] = "practice"
    exercise_id: str | None = None
    score: float | None = None

    @field_validator("score")
    @classmethod
    def _normalize_score(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value < 0 or value > 100:
            raise ValueError("score must be within [0, 1] or a percentage within [0, 100]")
        if value > 1:
            return value / 100
        return value


class ReflectPayload(BasePayload):
    """Written reflection. Only the word count is retained."""

    kind: Literal["reflect"] = "reflect"
    word_count: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _drop_text(cls, data: Any) -> Any:
        if isinstance(data, dict) and "text" in data:
            data = dict(data)
            text = data.pop("text") or ""
            if "word_count" not in data and "wordCount" not in data:
                data["word_count"] = len(str(text).split())
        return data


class ResetPayload(BasePayload):
    """Explicit reset or retake of a section."""

    kind: Literal["reset"] = "reset"
    reason: str = "retake"


Payload = Annotated[
    Union[
        ViewPayload,
        NavigatePayload,
        AnswerPayload,
        PracticePayload,
        ReflectPayload,
        ResetPayload,
    ],
    Field(discriminator="kind"),
]


class InteractionEvent(FrozenCamelModel):
    """A validated, immutable student interaction.

    Attributes:
        student_ref: Opaque hashed student identifier, never raw PII.
        objective_id: Learning objective the event belongs to.
        section_id: Section of the objective.
        kind: Interaction kind, matching the payload.
        timestamp_utc: When the interaction happened (UTC).
        payload: Kind-specific payload.
        consent_tier: Tier the collection layer captured the event under.
        cohort_key: Optional analytics cohort supplied by the caller.
    """

    student_ref: str = Field(min_length=1)
    objective_id: str = Field(min_length=1)
    section_id: str = Field(min_length=1)
    kind: InteractionKind
    timestamp_utc: datetime
    payload: Payload
    consent_tier: PrivacyTier = PrivacyTier.NONE
    cohort_key: str | None = None

    @field_validator("timestamp_utc")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _kind_matches_payload(self) -> "InteractionEvent":
        if self.payload.kind != self.kind.value:
            raise ValueError(
                f"payload kind '{self.payload.kind}' does not match event kind '{self.kind.value}'"
            )
        return self

    @property
    def event_id(self) -> str:
        """Content hash identifying the event for idempotent replay."""
        raw = "|".join(
            [
                self.student_ref,
                self.objective_id,
                self.section_id,
                self.kind.value,
                self.timestamp_utc.isoformat(),
            ]
        )
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    @property
    def counts_as_interaction(self) -> bool:
        """Whether the event counts toward section interaction totals."""
        return self.kind not in (InteractionKind.NAVIGATE, InteractionKind.RESET)

    def redacted(self, fields: frozenset[str]) -> "InteractionEvent":
        """Return a copy with the given payload fields cleared."""
        present = {name for name in fields if getattr(self.payload, name, None) is not None}
        if not present:
            return self
        payload = self.payload.model_copy(update={name: None for name in present})
        return self.model_copy(update={"payload": payload})


class InteractionRecord(FrozenCamelModel):
    """Retained summary of an applied event, used for scoring."""

    event_id: str
    kind: InteractionKind
    section_id: str
    timestamp_utc: datetime
    duration_ms: int = 0
    is_correct: bool | None = None
    score: float | None = None

    @classmethod
    def from_event(cls, event: InteractionEvent) -> "InteractionRecord":
        """Summarise an event without carrying its payload."""
        payload = event.payload
        return cls(
            event_id=event.event_id,
            kind=event.kind,
            section_id=event.section_id,
            timestamp_utc=event.timestamp_utc,
            duration_ms=payload.duration_ms,
            is_correct=payload.is_correct if isinstance(payload, AnswerPayload) else None,
            score=payload.score if isinstance(payload, PracticePayload) else None,
        )
