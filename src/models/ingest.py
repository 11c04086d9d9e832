# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pipeline outcome models."""

from enum import Enum

from src.models.adaptation import AdaptationDirective
from src.models.base import FrozenCamelModel
from src.models.progress import CompletionCheck, ProgressState
from src.models.validation import FieldIssue


class IngestStatus(str, Enum):
    """How the engine handled an ingested event."""

    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    AGGREGATE_ONLY = "aggregate_only"
    CONSENT_DENIED = "consent_denied"
    REJECTED = "rejected"


class IngestOutcome(FrozenCamelModel):
    """Outcome of running one event through the pipeline.

    Attributes:
        status: Handling status.
        event_id: Content hash of the event when it validated.
        progress: Progress after the event, for identifiable tiers.
        completion: Completion evaluation of the event's section.
        directive: Adaptation directive after the event.
        errors: Validation issues when rejected.
        reason: Consent reason when denied.
    """

    status: IngestStatus
    event_id: str | None = None
    progress: ProgressState | None = None
    completion: CompletionCheck | None = None
    directive: AdaptationDirective | None = None
    errors: tuple[FieldIssue, ...] = ()
    reason: str | None = None
