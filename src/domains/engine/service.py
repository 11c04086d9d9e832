# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning progress engine.

Facade wiring the pipeline for one interaction event:

    validate -> consent lookup -> authorize -> strip fields
        -> ledger.apply (identifiable tiers)
        -> aggregator.ingest (aggregate tiers)
        -> notifications -> adaptation directive

All collaborators are injected; nothing is shared between engine
instances. The engine subscribes to ``consent.withdrawn`` on its event bus
and purges the student's progress and cached directives when it fires.

Usage:
    from src.domains.engine import LearningProgressEngine

    engine = LearningProgressEngine(
        course_provider=catalog,
        consent_provider=registry,
        event_bus=bus,
        settings=get_settings(),
    )
    outcome = await engine.ingest(raw_event)
    if outcome.status == IngestStatus.ACCEPTED:
        print(outcome.progress.mastery_score)
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from src.core.config.settings import Settings
from src.core.exceptions import CollaboratorError, EngineError, UnknownSectionError
from src.domains.adaptation.engine import AdaptationEngine
from src.domains.analytics.aggregator import AnonymizedAggregator
from src.domains.consent.gate import ConsentGate
from src.domains.mastery.scorer import MasteryScorer
from src.domains.progress.ledger import ProgressLedger
from src.domains.validation.validator import EventValidator
from src.infrastructure.collaborators.calls import call_with_timeout
from src.infrastructure.collaborators.protocols import (
    ConsentProvider,
    CourseDefinitionProvider,
    DirectiveCache,
    ProgressStore,
)
from src.infrastructure.events import EventBus, EventData, EventTypes
from src.models.adaptation import AdaptationDirective
from src.models.analytics import CohortAggregate, InsufficientSample
from src.models.consent import Authorization, ConsentDenied, ConsentRecord
from src.models.course import ObjectiveDefinition
from src.models.events import InteractionEvent, InteractionKind
from src.models.ingest import IngestOutcome, IngestStatus
from src.models.progress import ApplyResult, ProgressState
from src.models.validation import InvalidEvent

logger = logging.getLogger(__name__)


def cohort_key_for(event: InteractionEvent, definition: ObjectiveDefinition) -> str:
    """Cohort of an event: caller supplied, or objective and difficulty."""
    return event.cohort_key or f"{definition.objective_id}:{definition.difficulty.value}"


class LearningProgressEngine:
    """Entry point for ingesting events and reading progress.

    Attributes:
        validator: Raw event validation.
        gate: Consent authorization.
        ledger: Per-student progress.
        aggregator: Anonymous cohort aggregates.
        adaptation: Directive recommendations.
        event_bus: Bus for notifications and consent changes.
    """

    def __init__(
        self,
        course_provider: CourseDefinitionProvider,
        consent_provider: ConsentProvider,
        settings: Settings | None = None,
        store: ProgressStore | None = None,
        event_bus: EventBus | None = None,
        directive_cache: DirectiveCache | None = None,
    ) -> None:
        """Initialize the engine and its components.

        Args:
            course_provider: Objective definitions.
            consent_provider: Consent records.
            settings: Engine settings; defaults are used if omitted.
            store: Progress store; progress is in-memory only if omitted.
            event_bus: Bus for notifications; a private bus if omitted.
            directive_cache: Optional directive cache.
        """
        self.settings = settings or Settings()
        self.consent_provider = consent_provider
        self.event_bus = event_bus or EventBus()

        scorer = MasteryScorer(self.settings.mastery)
        self.validator = EventValidator(self.settings.validation)
        self.gate = ConsentGate(self.settings.consent)
        self.ledger = ProgressLedger(
            course_provider,
            scorer=scorer,
            store=store,
            completion=self.settings.completion,
            settings=self.settings.ledger,
            collaborators=self.settings.collaborators,
        )
        self.aggregator = AnonymizedAggregator(self.settings.aggregation)
        self.adaptation = AdaptationEngine(
            self.ledger,
            scorer=scorer,
            cache=directive_cache,
            settings=self.settings.adaptation,
        )

        self.event_bus.subscribe(EventTypes.Consent.WITHDRAWN, self._on_consent_withdrawn)

    def close(self) -> None:
        """Stop listening for consent changes."""
        self.event_bus.unsubscribe(EventTypes.Consent.WITHDRAWN, self._on_consent_withdrawn)

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def ingest(
        self,
        raw: Mapping[str, Any] | InteractionEvent,
        now: datetime | None = None,
    ) -> IngestOutcome:
        """Run one event through the pipeline.

        Args:
            raw: Raw event mapping or constructed event.
            now: Reference time for validation and consent expiry.

        Returns:
            IngestOutcome. Validation failures and consent denials are
            reported as statuses, never raised.

        Raises:
            UnknownObjectiveError: If the objective is unknown.
            UnknownSectionError: If the section is not in the objective.
            ConcurrencyConflictError: On a same-key write collision.
            CollaboratorError: On transient collaborator failures.
        """
        validated = self.validator.validate(raw, now=now)
        if isinstance(validated, InvalidEvent):
            logger.info("Rejected event with %d issues", len(validated.issues))
            return IngestOutcome(status=IngestStatus.REJECTED, errors=validated.issues)

        event = validated
        consent = await self._get_consent(event.student_ref)
        authorization = self.gate.authorize(event, consent, now=now)

        if authorization.denied:
            logger.info("Consent denied for event %s: %s", event.event_id[:12], authorization.reason)
            return IngestOutcome(
                status=IngestStatus.CONSENT_DENIED,
                event_id=event.event_id,
                reason=authorization.reason,
            )

        event = event.redacted(authorization.stripped_fields)
        definition = await self.ledger.get_definition(event.objective_id)
        cohort_key = cohort_key_for(event, definition)

        if not authorization.allow_identifiable:
            if not definition.has_section(event.section_id):
                raise UnknownSectionError(event.objective_id, event.section_id)
            await self.aggregator.ingest(event, authorization, cohort_key=cohort_key)
            return IngestOutcome(
                status=IngestStatus.AGGREGATE_ONLY,
                event_id=event.event_id,
                reason=authorization.reason,
            )

        result = await self.ledger.apply(event, authorization)
        if isinstance(result, ConsentDenied):
            return IngestOutcome(
                status=IngestStatus.CONSENT_DENIED,
                event_id=event.event_id,
                reason=result.reason,
            )

        if result.duplicate:
            return IngestOutcome(
                status=IngestStatus.DUPLICATE,
                event_id=event.event_id,
                progress=result.progress,
                completion=result.completion,
            )

        await self.aggregator.ingest(event, authorization, result.delta, cohort_key=cohort_key)
        await self._notify(event, authorization, result)
        directive = await self.adaptation.recommend(event.student_ref, event.objective_id)

        return IngestOutcome(
            status=IngestStatus.ACCEPTED,
            event_id=event.event_id,
            progress=result.progress,
            completion=result.completion,
            directive=directive,
        )

    async def ingest_batch(
        self,
        raws: Iterable[Mapping[str, Any] | InteractionEvent],
        cancelled: Callable[[], bool] | None = None,
        now: datetime | None = None,
    ) -> list[IngestOutcome]:
        """Ingest events sequentially, in order.

        Task cancellation takes effect between items; an item is never
        half-applied. A ``cancelled`` callable returning True stops the
        batch and returns the outcomes so far.
        """
        outcomes: list[IngestOutcome] = []
        for raw in raws:
            await asyncio.sleep(0)
            if cancelled is not None and cancelled():
                logger.info("Batch ingest cancelled after %d events", len(outcomes))
                break
            outcomes.append(await self.ingest(raw, now=now))
        return outcomes

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_progress(self, student_ref: str, objective_id: str) -> ProgressState | None:
        """Current progress; None when never recorded or purged."""
        return await self.ledger.get_progress(student_ref, objective_id)

    async def recommend(self, student_ref: str, objective_id: str) -> AdaptationDirective:
        """Adaptation directive for the student's current progress."""
        return await self.adaptation.recommend(student_ref, objective_id)

    async def get_cohort_aggregate(
        self,
        objective_id: str,
        cohort_key: str,
        now: datetime | None = None,
    ) -> CohortAggregate | InsufficientSample:
        """k-anonymous cohort aggregate."""
        result = await self.aggregator.get_cohort_aggregate(objective_id, cohort_key, now=now)
        if isinstance(result, CohortAggregate):
            await self.event_bus.publish(
                EventTypes.Analytics.COHORT_RELEASED,
                {
                    "objective_id": objective_id,
                    "cohort_key": cohort_key,
                    "epoch": result.epoch,
                    "noise_applied": result.noise_applied,
                },
                event_id=f"{objective_id}:{cohort_key}:{result.epoch}",
            )
        return result

    # =========================================================================
    # Consent withdrawal
    # =========================================================================

    async def purge_student(self, student_ref: str) -> int:
        """Remove a student's progress and cached directives.

        Returns:
            Number of progress states removed.
        """
        removed = await self.ledger.purge_student(student_ref)
        await self.adaptation.invalidate_student(student_ref)
        await self.event_bus.publish(
            EventTypes.Progress.STUDENT_PURGED,
            {"student_ref": student_ref, "removed": removed},
        )
        return removed

    async def _on_consent_withdrawn(self, event: EventData) -> None:
        student_ref = event.payload.get("student_ref")
        if not student_ref:
            logger.warning("Consent withdrawal without student_ref ignored")
            return
        await self.purge_student(student_ref)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_consent(self, student_ref: str) -> ConsentRecord:
        try:
            return await call_with_timeout(
                self.consent_provider.get_consent(student_ref),
                "consent_provider",
                self.settings.collaborators.timeout_seconds,
            )
        except EngineError:
            raise
        except Exception as e:
            logger.error("Consent lookup failed: %s", str(e))
            raise CollaboratorError("Consent lookup failed", "consent_provider", e) from e

    async def _notify(
        self,
        event: InteractionEvent,
        authorization: Authorization,
        result: ApplyResult,
    ) -> None:
        """Publish progress notifications keyed by the event id."""
        base = {
            "student_ref": event.student_ref,
            "objective_id": event.objective_id,
            "section_id": event.section_id,
            "event_id": event.event_id,
            "version": result.progress.version,
            "tier": authorization.tier.value,
        }

        await self.event_bus.publish(
            EventTypes.Progress.EVENT_APPLIED,
            {**base, "kind": event.kind.value},
            event_id=f"{event.event_id}:applied",
        )

        if event.kind == InteractionKind.RESET:
            await self.event_bus.publish(
                EventTypes.Progress.SECTION_RESET,
                base,
                event_id=f"{event.event_id}:reset",
            )

        if result.completion is not None and result.completion.newly_completed:
            await self.event_bus.publish(
                EventTypes.Progress.SECTION_COMPLETED,
                {**base, "mastery_score": result.progress.mastery_score},
                event_id=f"{event.event_id}:section_completed",
            )

        if result.delta.objective_completed:
            await self.event_bus.publish(
                EventTypes.Progress.OBJECTIVE_COMPLETED,
                {**base, "mastery_score": result.progress.mastery_score},
                event_id=f"{event.event_id}:objective_completed",
            )
