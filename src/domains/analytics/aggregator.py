# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Anonymized cohort aggregation.

The aggregator keeps running sums per (objective_id, cohort_key) and
never stores student identifiers:

- Time spent, mastery and objective completions are kept as sums.
- Distinct contributors are counted through HMAC-SHA256 tokens of the
  student reference under a per-process secret. Tokens cannot be reversed
  without the secret and are only used for counting.
- Contributed time is clipped per student: once a student's total in a
  cohort reaches max_contribution_ms, further time is ignored, bounding
  any one student's influence on the published mean.

Releases are suppressed (InsufficientSample) until at least k distinct
students have contributed. Mean mastery and completion rate are computed
over students with tracked progress only, so they are published as None
until at least k of those contributed as well. With differential privacy
enabled, each release adds Laplace noise once per epoch: the first query
in an epoch draws the noise and caches the published aggregate, later
queries in the same epoch return the identical release. Every release
spends the configured epsilon, split evenly over the three published
metrics.

Usage:
    from src.domains.analytics import AnonymizedAggregator

    aggregator = AnonymizedAggregator(settings.aggregation)
    await aggregator.ingest(event, authorization, delta, cohort_key="algebra-1:beginner")
    result = await aggregator.get_cohort_aggregate("algebra-1", "algebra-1:beginner")
"""

import asyncio
import hashlib
import hmac
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from src.core.config.settings import AggregationSettings
from src.models.analytics import AggregateMetrics, CohortAggregate, InsufficientSample
from src.models.consent import Authorization
from src.models.events import InteractionEvent, InteractionKind
from src.models.progress import ProgressDelta
from src.utils.datetime import utc_now
from src.utils.locks import KeyedLocks

logger = logging.getLogger(__name__)

CohortId = tuple[str, str]

# Metrics sharing each release's epsilon
PUBLISHED_METRICS = 3


@dataclass
class CohortCounters:
    """Running sums for one cohort.

    Attributes:
        total_time_ms: Clipped time contributed by all students.
        mastery_sum: Sum of current mastery of tracked students.
        tracked_contributors: Students with identifiable progress.
        objectives_completed: Tracked students currently complete.
        contributors: Clipped time per contributor token.
        seen_events: Tokens of ingested events, for replay protection.
    """

    total_time_ms: int = 0
    mastery_sum: float = 0.0
    tracked_contributors: int = 0
    objectives_completed: int = 0
    contributors: dict[str, int] = field(default_factory=dict)
    seen_events: set[str] = field(default_factory=set)

    @property
    def sample_size(self) -> int:
        return len(self.contributors)

    def add_time(self, contributor: str, time_ms: int, limit_ms: int) -> None:
        """Add time for a contributor, capped at limit_ms per contributor."""
        previous = self.contributors.get(contributor, 0)
        current = min(previous + max(0, time_ms), limit_ms)
        self.contributors[contributor] = current
        self.total_time_ms += current - previous


@dataclass(frozen=True)
class _CounterSnapshot:
    total_time_ms: int
    mastery_sum: float
    tracked_contributors: int
    objectives_completed: int
    sample_size: int


class AnonymizedAggregator:
    """k-anonymous, optionally differentially private cohort aggregates.

    Attributes:
        settings: k, DP and epoch configuration.
    """

    def __init__(self, settings: AggregationSettings | None = None) -> None:
        """Initialize the aggregator.

        Args:
            settings: Aggregation settings, defaults if omitted.
        """
        self.settings = settings or AggregationSettings()
        self._secret = self.settings.secret.get_secret_value().encode("utf-8")

        self._counters: dict[CohortId, CohortCounters] = {}
        self._locks = KeyedLocks()
        self._releases: dict[CohortId, CohortAggregate] = {}
        self._spent_budget: dict[CohortId, float] = {}
        self._epoch_offset = 0

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def ingest(
        self,
        event: InteractionEvent,
        authorization: Authorization,
        delta: ProgressDelta | None = None,
        cohort_key: str | None = None,
    ) -> None:
        """Fold an event into its cohort's running sums.

        Args:
            event: Validated event.
            authorization: Consent gate decision; ignored unless aggregate
                processing is allowed.
            delta: Ledger change for identifiable events. Aggregate-only
                events contribute their duration and nothing else.
            cohort_key: Cohort of the event, defaults to the event's own
                cohort key or its objective.
        """
        if not authorization.allow_aggregate:
            return

        cohort = (event.objective_id, cohort_key or event.cohort_key or event.objective_id)
        event_token = self._token(event.event_id)

        async with self._locks.hold(cohort):
            counters = self._counters.setdefault(cohort, CohortCounters())
            if event_token in counters.seen_events:
                return
            counters.seen_events.add(event_token)

            if delta is not None:
                time_ms = delta.time_spent_ms
            elif event.kind == InteractionKind.RESET:
                time_ms = 0
            else:
                time_ms = event.payload.duration_ms
            counters.add_time(self._token(event.student_ref), time_ms, self.settings.max_contribution_ms)

            if delta is not None:
                counters.mastery_sum += delta.mastery_delta
                if delta.new_tracked_contributor:
                    counters.tracked_contributors += 1
                if delta.objective_completed:
                    counters.objectives_completed += 1
                if delta.objective_reopened:
                    counters.objectives_completed -= 1

        logger.debug("Aggregated event %s into cohort %s", event.event_id[:12], cohort[1])

    # =========================================================================
    # Release
    # =========================================================================

    async def get_cohort_aggregate(
        self,
        objective_id: str,
        cohort_key: str,
        now: datetime | None = None,
    ) -> CohortAggregate | InsufficientSample:
        """Publish a cohort aggregate.

        Args:
            objective_id: Objective of the cohort.
            cohort_key: Cohort grouping key.
            now: Reference time for epoch selection.

        Returns:
            CohortAggregate when at least k students contributed, otherwise
            InsufficientSample without the actual sample size. Mastery and
            completion rate are None while fewer than k tracked students
            contributed.
        """
        cohort = (objective_id, cohort_key)
        epoch = self.current_epoch(now)

        async with self._locks.hold(cohort):
            counters = self._counters.get(cohort)
            if counters is None or counters.sample_size < self.settings.k_anonymity:
                return InsufficientSample(
                    objective_id=objective_id,
                    cohort_key=cohort_key,
                    required=self.settings.k_anonymity,
                )

            if self.settings.dp_enabled:
                cached = self._releases.get(cohort)
                if cached is not None and cached.epoch == epoch:
                    return cached

            snapshot = _CounterSnapshot(
                total_time_ms=counters.total_time_ms,
                mastery_sum=counters.mastery_sum,
                tracked_contributors=counters.tracked_contributors,
                objectives_completed=counters.objectives_completed,
                sample_size=counters.sample_size,
            )

        # Nothing is cached before the release is complete
        await asyncio.sleep(0)

        metrics = self._metrics(snapshot)
        if self.settings.dp_enabled:
            metrics = self._add_noise(metrics, snapshot, cohort, epoch)

        release = CohortAggregate(
            objective_id=objective_id,
            cohort_key=cohort_key,
            sample_size=snapshot.sample_size,
            aggregate_metrics=metrics,
            noise_applied=self.settings.dp_enabled,
            epoch=epoch,
        )

        if not self.settings.dp_enabled:
            return release

        async with self._locks.hold(cohort):
            cached = self._releases.get(cohort)
            if cached is not None and cached.epoch == epoch:
                return cached
            self._releases[cohort] = release
            self._spent_budget[cohort] = self._spent_budget.get(cohort, 0.0) + self.settings.epsilon

        logger.info(
            "Released noisy aggregate: objective=%s, cohort=%s, epoch=%d",
            objective_id,
            cohort_key,
            epoch,
        )
        return release

    async def get_cohort_aggregates(
        self,
        objective_id: str,
        now: datetime | None = None,
    ) -> list[CohortAggregate | InsufficientSample]:
        """Aggregates of every known cohort of an objective.

        Cancellation between cohorts leaves already released cohorts as
        they are and releases nothing further.
        """
        results: list[CohortAggregate | InsufficientSample] = []
        for cohort_key in self.cohort_keys(objective_id):
            await asyncio.sleep(0)
            results.append(await self.get_cohort_aggregate(objective_id, cohort_key, now))
        return results

    def cohort_keys(self, objective_id: str) -> list[str]:
        """Known cohort keys of an objective, sorted."""
        return sorted(key for obj, key in self._counters if obj == objective_id)

    # =========================================================================
    # Epochs and budget
    # =========================================================================

    def current_epoch(self, now: datetime | None = None) -> int:
        """Release epoch for a point in time."""
        base = 0
        if self.settings.epoch_seconds > 0:
            moment = now or utc_now()
            base = int(moment.timestamp()) // self.settings.epoch_seconds
        return base + self._epoch_offset

    def start_new_epoch(self) -> int:
        """Discard cached releases so the next query draws fresh noise.

        Returns:
            The new epoch number.
        """
        self._epoch_offset += 1
        self._releases.clear()
        epoch = self.current_epoch()
        logger.info("Started aggregation epoch %d", epoch)
        return epoch

    def spent_budget(self, objective_id: str, cohort_key: str) -> float:
        """Total epsilon spent on releases of a cohort."""
        return self._spent_budget.get((objective_id, cohort_key), 0.0)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _token(self, value: str) -> str:
        return hmac.new(self._secret, value.encode("utf-8"), hashlib.sha256).hexdigest()

    def _metrics(self, snapshot: _CounterSnapshot) -> AggregateMetrics:
        mean_time = snapshot.total_time_ms / snapshot.sample_size
        tracked = snapshot.tracked_contributors
        if tracked < self.settings.k_anonymity:
            return AggregateMetrics(mean_time_spent_ms=mean_time)

        mean_mastery = snapshot.mastery_sum / tracked
        completion_rate = snapshot.objectives_completed / tracked
        return AggregateMetrics(
            mean_time_spent_ms=mean_time,
            mean_mastery=max(0.0, min(100.0, mean_mastery)),
            completion_rate=max(0.0, min(1.0, completion_rate)),
        )

    def _add_noise(
        self,
        metrics: AggregateMetrics,
        snapshot: _CounterSnapshot,
        cohort: CohortId,
        epoch: int,
    ) -> AggregateMetrics:
        """Apply Laplace noise scaled to each metric's sensitivity.

        Time is averaged over all contributors, mastery and completion
        over tracked students only, so each uses its own denominator.
        """
        rng = self._rng(cohort, epoch)
        epsilon_per_metric = self.settings.epsilon / PUBLISHED_METRICS

        def laplace(sensitivity: float) -> float:
            scale = sensitivity / epsilon_per_metric
            return scale * (rng.expovariate(1.0) - rng.expovariate(1.0))

        mean_time = metrics.mean_time_spent_ms + laplace(
            self.settings.max_contribution_ms / snapshot.sample_size
        )
        if metrics.mean_mastery is None or metrics.completion_rate is None:
            return AggregateMetrics(mean_time_spent_ms=max(0.0, mean_time))

        tracked = snapshot.tracked_contributors
        mean_mastery = metrics.mean_mastery + laplace(100.0 / tracked)
        completion_rate = metrics.completion_rate + laplace(1.0 / tracked)

        return AggregateMetrics(
            mean_time_spent_ms=max(0.0, mean_time),
            mean_mastery=max(0.0, min(100.0, mean_mastery)),
            completion_rate=max(0.0, min(1.0, completion_rate)),
        )

    def _rng(self, cohort: CohortId, epoch: int) -> random.Random:
        if self.settings.noise_seed is None:
            return random.Random()
        return random.Random(f"{self.settings.noise_seed}:{cohort[0]}:{cohort[1]}:{epoch}")
