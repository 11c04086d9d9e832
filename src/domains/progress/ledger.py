# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress ledger.

The ledger maintains one ProgressState per (student, objective) pair and
applies interaction events to it.

Guarantees:
- Idempotent replay: events are identified by a content hash; applying
  the same event twice changes nothing the second time.
- Serialised writes: each (student, objective) key has its own lock, so
  events for one key are applied one at a time while different keys
  proceed concurrently. A key's lock is dropped once nobody holds or
  waits for it.
- Write-through persistence: a new state is saved to the progress store
  before it becomes visible. A failed save leaves the ledger unchanged,
  which makes retries safe.
- Completion monotonicity: a completed section stays completed unless an
  explicit reset event is applied; mastery never decreases otherwise.
- Full purge: purge_student removes every state of a student and leaves a
  tombstone that refuses replays of events from before the purge. States
  from before the tombstone are never returned, even if the store purge
  failed and is still to be retried.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime

from src.core.config.settings import (
    CollaboratorSettings,
    CompletionSettings,
    LedgerSettings,
)
from src.core.exceptions import (
    ConcurrencyConflictError,
    EngineError,
    PersistenceError,
    UnknownObjectiveError,
    UnknownSectionError,
)
from src.domains.mastery.scorer import MasteryScorer
from src.domains.progress.completion import CompletionRule
from src.infrastructure.collaborators.calls import call_with_timeout
from src.infrastructure.collaborators.protocols import CourseDefinitionProvider, ProgressStore
from src.models.consent import Authorization, ConsentDenied
from src.models.course import ObjectiveDefinition
from src.models.events import InteractionEvent, InteractionKind, InteractionRecord
from src.models.progress import (
    ApplyResult,
    CompletionCheck,
    ProgressDelta,
    ProgressState,
    SectionProgress,
)
from src.utils.datetime import utc_now
from src.utils.locks import KeyedLocks, LockTimeoutError

logger = logging.getLogger(__name__)

ProgressKey = tuple[str, str]


class ProgressLedger:
    """Append-only application of interaction events to progress state.

    Attributes:
        course_provider: Course definition collaborator.
        scorer: Mastery scorer used after each applied event.
        store: Optional progress store collaborator.

    Example:
        >>> ledger = ProgressLedger(catalog, store=InMemoryProgressStore())
        >>> result = await ledger.apply(event, authorization)
        >>> result.progress.completed_sections
        {'intro'}
    """

    def __init__(
        self,
        course_provider: CourseDefinitionProvider,
        scorer: MasteryScorer | None = None,
        store: ProgressStore | None = None,
        completion: CompletionSettings | None = None,
        settings: LedgerSettings | None = None,
        collaborators: CollaboratorSettings | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            course_provider: Source of objective definitions.
            scorer: Mastery scorer, defaults if omitted.
            store: Progress store; states live in memory only if omitted.
            completion: Completion thresholds.
            settings: Lock timeout and history retention.
            collaborators: Collaborator call timeouts.
        """
        self.course_provider = course_provider
        self.scorer = scorer or MasteryScorer()
        self.store = store
        self.completion_rule = CompletionRule(completion)
        self.settings = settings or LedgerSettings()
        self.collaborators = collaborators or CollaboratorSettings()

        self._states: dict[ProgressKey, ProgressState] = {}
        self._locks = KeyedLocks()
        self._tombstones: dict[str, datetime] = {}

    # =========================================================================
    # Public API
    # =========================================================================

    async def apply(
        self,
        event: InteractionEvent,
        authorization: Authorization,
    ) -> ApplyResult | ConsentDenied:
        """Apply an event to the student's progress.

        Args:
            event: Validated event, already stripped of disallowed fields.
            authorization: Consent gate decision for the event.

        Returns:
            ApplyResult, or ConsentDenied when identifiable processing is not
            permitted or the student was purged after the event happened.

        Raises:
            UnknownObjectiveError: If the objective is unknown.
            UnknownSectionError: If the section is not part of the objective.
            ConcurrencyConflictError: If the key stays locked too long or the
                store rejects a stale write.
            CollaboratorError: If the course lookup or store fails transiently.
        """
        if not authorization.allow_identifiable:
            reason = authorization.reason if authorization.denied else "identifiable_not_permitted"
            return ConsentDenied(
                student_ref=event.student_ref,
                tier=authorization.tier,
                reason=reason,
            )

        definition = await self.get_definition(event.objective_id)
        if not definition.has_section(event.section_id):
            raise UnknownSectionError(event.objective_id, event.section_id)

        key: ProgressKey = (event.student_ref, event.objective_id)

        async with self._locked(key):
            if self._is_tombstoned(event.student_ref, event.timestamp_utc):
                logger.info("Refused event %s for purged student", event.event_id[:12])
                return ConsentDenied(
                    student_ref=event.student_ref,
                    tier=authorization.tier,
                    reason="student_purged",
                )

            current = await self._current(key)

            if current is not None and event.event_id in current.applied_event_ids:
                logger.debug("Duplicate event %s ignored", event.event_id[:12])
                return ApplyResult(
                    progress=current.model_copy(deep=True),
                    completion=self._completion_snapshot(current, event.section_id, definition),
                    duplicate=True,
                )

            before = current or ProgressState(
                student_ref=event.student_ref,
                objective_id=event.objective_id,
                last_updated=event.timestamp_utc,
            )
            updated, completion = self._transition(before, event, definition)

            await self._persist(updated)
            self._states[key] = updated

        delta = self._delta(before, updated, definition, is_new=current is None, event=event)

        if completion.newly_completed:
            logger.info(
                "Section completed: objective=%s, section=%s, event=%s",
                event.objective_id,
                event.section_id,
                event.event_id[:12],
            )

        return ApplyResult(
            progress=updated.model_copy(deep=True),
            completion=completion,
            delta=delta,
        )

    async def get_progress(self, student_ref: str, objective_id: str) -> ProgressState | None:
        """Current progress of a student on an objective.

        Args:
            student_ref: Opaque student identifier.
            objective_id: Objective identifier.

        Returns:
            A copy of the state, or None when there is none (never recorded,
            or purged).
        """
        state = await self._current((student_ref, objective_id))
        if state is None:
            return None
        return state.model_copy(deep=True)

    async def purge_student(self, student_ref: str) -> int:
        """Remove all progress of a student in one operation.

        The tombstone is recorded first, so events racing with the purge
        are refused and states from before the purge are no longer
        readable, even when the store purge fails. A failed store purge
        raises and can be retried.

        Args:
            student_ref: Opaque student identifier.

        Returns:
            Number of progress states removed.

        Raises:
            CollaboratorError: If the store purge fails.
        """
        self._tombstones[student_ref] = utc_now()

        keys = sorted(key for key in self._states if key[0] == student_ref)
        async with AsyncExitStack() as stack:
            for key in keys:
                await stack.enter_async_context(self._locked(key))

            stored = 0
            if self.store is not None:
                stored = await self._store_call(self.store.purge(student_ref), "purge")

            removed = [key for key in self._states if key[0] == student_ref]
            for key in removed:
                del self._states[key]

        count = max(len(removed), stored)
        logger.info("Purged %d progress states", count)
        return count

    def is_purged(self, student_ref: str) -> bool:
        """Whether a student has been purged."""
        return student_ref in self._tombstones

    def clear_tombstone(self, student_ref: str) -> None:
        """Forget a purge, e.g. after consent was granted again.

        Events timestamped before the purge remain refused only while the
        tombstone exists.
        """
        self._tombstones.pop(student_ref, None)

    async def get_definition(self, objective_id: str) -> ObjectiveDefinition:
        """Look up an objective definition.

        Raises:
            UnknownObjectiveError: If the course collaborator does not know it.
            CollaboratorTimeoutError: If the lookup times out.
        """
        definition = await call_with_timeout(
            self.course_provider.get_objective_definition(objective_id),
            "course_provider",
            self.collaborators.timeout_seconds,
        )
        if definition is None:
            raise UnknownObjectiveError(objective_id)
        return definition

    # =========================================================================
    # State transitions
    # =========================================================================

    def _transition(
        self,
        state: ProgressState,
        event: InteractionEvent,
        definition: ObjectiveDefinition,
    ) -> tuple[ProgressState, CompletionCheck]:
        """Build the state that results from applying an event."""
        new = state.model_copy(deep=True)
        section_id = event.section_id
        section = new.section(section_id).model_copy()

        if event.kind == InteractionKind.RESET:
            new.time_spent_ms = max(0, new.time_spent_ms - section.time_spent_ms)
            new.interaction_count = max(0, new.interaction_count - section.interaction_count)
            new.sections[section_id] = SectionProgress()
            new.completed_sections.discard(section_id)
            new.history = [record for record in new.history if record.section_id != section_id]
            # Reset is the one transition allowed to lower mastery
            new.mastery_score = self.scorer.score(new, new.history).mastery_score
            completion = CompletionCheck(
                section_id=section_id,
                completed=False,
                unmet_criteria=self.completion_rule.unmet_criteria(SectionProgress(), definition),
            )
        else:
            duration = event.payload.duration_ms
            section.time_spent_ms += duration
            new.time_spent_ms += duration
            if event.counts_as_interaction:
                section.interaction_count += 1
                new.interaction_count += 1

            new.history.append(InteractionRecord.from_event(event))
            if len(new.history) > self.settings.history_limit:
                new.history = new.history[-self.settings.history_limit:]

            unmet = self.completion_rule.unmet_criteria(section, definition)
            newly_completed = False
            if not section.completed and not unmet:
                section.completed = True
                section.completed_at = event.timestamp_utc
                new.completed_sections.add(section_id)
                newly_completed = True
            new.sections[section_id] = section

            scored = self.scorer.score(new, new.history).mastery_score
            new.mastery_score = max(state.mastery_score, scored)
            completion = CompletionCheck(
                section_id=section_id,
                completed=section.completed,
                newly_completed=newly_completed,
                unmet_criteria=() if section.completed else unmet,
            )

        new.comprehension_level = self.scorer.comprehension_for(new.mastery_score)
        new.applied_event_ids.add(event.event_id)
        new.version = state.version + 1
        new.last_updated = max(state.last_updated, event.timestamp_utc)
        return new, completion

    def _completion_snapshot(
        self,
        state: ProgressState,
        section_id: str,
        definition: ObjectiveDefinition,
    ) -> CompletionCheck:
        section = state.section(section_id)
        if section.completed:
            return CompletionCheck(section_id=section_id, completed=True)
        return CompletionCheck(
            section_id=section_id,
            completed=False,
            unmet_criteria=self.completion_rule.unmet_criteria(section, definition),
        )

    @staticmethod
    def _delta(
        before: ProgressState,
        after: ProgressState,
        definition: ObjectiveDefinition,
        is_new: bool,
        event: InteractionEvent,
    ) -> ProgressDelta:
        """Anonymous change contributed by an event, for cohort analytics."""
        all_sections = set(definition.all_sections)
        was_complete = not is_new and all_sections <= before.completed_sections
        is_complete = all_sections <= after.completed_sections
        time_delta = 0 if event.kind == InteractionKind.RESET else after.time_spent_ms - before.time_spent_ms
        return ProgressDelta(
            time_spent_ms=max(0, time_delta),
            mastery_delta=after.mastery_score - (0.0 if is_new else before.mastery_score),
            new_tracked_contributor=is_new,
            objective_completed=is_complete and not was_complete,
            objective_reopened=was_complete and not is_complete,
        )

    # =========================================================================
    # Locking, loading and persistence
    # =========================================================================

    @asynccontextmanager
    async def _locked(self, key: ProgressKey) -> AsyncIterator[None]:
        """Hold the key's lock, failing with a conflict after the timeout."""
        try:
            async with self._locks.hold(key, self.settings.lock_timeout_seconds):
                yield
        except LockTimeoutError as e:
            raise ConcurrencyConflictError(
                "Progress key is busy",
                {"objective_id": key[1], "timeout": e.timeout},
            ) from e

    def _is_tombstoned(self, student_ref: str, moment: datetime) -> bool:
        purged_at = self._tombstones.get(student_ref)
        return purged_at is not None and moment <= purged_at

    async def _current(self, key: ProgressKey) -> ProgressState | None:
        state = self._states.get(key)
        if state is not None:
            # Left behind by a purge whose store call failed
            if self._is_tombstoned(key[0], state.last_updated):
                return None
            return state
        if self.store is None:
            return None

        loaded = await self._store_call(self.store.load(*key), "load")
        if loaded is None or self._is_tombstoned(key[0], loaded.last_updated):
            return None
        self._states[key] = loaded
        return loaded

    async def _persist(self, state: ProgressState) -> None:
        if self.store is None:
            return
        await self._store_call(self.store.save(state), "save")

    async def _store_call(self, call, operation: str):
        """Run a store call with timeout, wrapping unexpected failures."""
        try:
            return await call_with_timeout(
                call, "progress_store", self.collaborators.timeout_seconds
            )
        except EngineError:
            raise
        except Exception as e:
            logger.error("Progress store %s failed: %s", operation, str(e))
            raise PersistenceError(f"Progress store {operation} failed", e) from e
