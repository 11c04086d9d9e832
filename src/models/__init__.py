# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data models for LearnTrace.

All models are pydantic v2 models with camelCase aliases for
interoperability with JavaScript callers.
"""

from src.models.adaptation import AdaptationDirective, AdaptationState
from src.models.analytics import AggregateMetrics, CohortAggregate, InsufficientSample
from src.models.consent import Authorization, ConsentDenied, ConsentRecord, PrivacyTier
from src.models.course import DifficultyLevel, ObjectiveDefinition
from src.models.events import (
    AnswerPayload,
    InteractionEvent,
    InteractionKind,
    InteractionRecord,
    NavigatePayload,
    PracticePayload,
    ReflectPayload,
    ResetPayload,
    ViewPayload,
)
from src.models.ingest import IngestOutcome, IngestStatus
from src.models.progress import (
    ApplyResult,
    CompletionCheck,
    ComprehensionLevel,
    ProgressDelta,
    ProgressState,
    SectionProgress,
    UnmetCriterion,
)
from src.models.validation import BatchValidation, FieldIssue, InvalidEvent

__all__ = [
    # Events
    "InteractionKind",
    "InteractionEvent",
    "InteractionRecord",
    "ViewPayload",
    "NavigatePayload",
    "AnswerPayload",
    "PracticePayload",
    "ReflectPayload",
    "ResetPayload",
    # Consent
    "PrivacyTier",
    "ConsentRecord",
    "Authorization",
    "ConsentDenied",
    # Course
    "DifficultyLevel",
    "ObjectiveDefinition",
    # Progress
    "ComprehensionLevel",
    "SectionProgress",
    "ProgressState",
    "UnmetCriterion",
    "CompletionCheck",
    "ProgressDelta",
    "ApplyResult",
    # Analytics
    "AggregateMetrics",
    "CohortAggregate",
    "InsufficientSample",
    # Adaptation
    "AdaptationState",
    "AdaptationDirective",
    # Validation
    "FieldIssue",
    "InvalidEvent",
    "BatchValidation",
    # Pipeline
    "IngestStatus",
    "IngestOutcome",
]
