# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cohort analytics models."""

from datetime import datetime

from pydantic import Field

from src.models.base import FrozenCamelModel
from src.utils.datetime import utc_now


class AggregateMetrics(FrozenCamelModel):
    """Published cohort metrics.

    Attributes:
        mean_time_spent_ms: Mean time contributed per student.
        mean_mastery: Mean mastery of students with tracked progress, None
            while fewer than k tracked students contributed.
        completion_rate: Share of tracked students who have completed the
            objective, None under the same condition as mean_mastery.
    """

    mean_time_spent_ms: float = Field(ge=0.0)
    mean_mastery: float | None = Field(default=None, ge=0.0, le=100.0)
    completion_rate: float | None = Field(default=None, ge=0.0, le=1.0)


class CohortAggregate(FrozenCamelModel):
    """A released, k-anonymous cohort aggregate.

    Attributes:
        objective_id: Learning objective.
        cohort_key: Cohort grouping key.
        sample_size: Distinct contributors, never below k.
        aggregate_metrics: Metrics, noisy when noise_applied is set.
        noise_applied: Whether Laplace noise was added.
        epoch: Release epoch the aggregate belongs to.
        released_at: When the aggregate was computed.
    """

    objective_id: str
    cohort_key: str
    sample_size: int = Field(ge=1)
    aggregate_metrics: AggregateMetrics
    noise_applied: bool = False
    epoch: int = 0
    released_at: datetime = Field(default_factory=utc_now)


class InsufficientSample(FrozenCamelModel):
    """Aggregate suppressed because fewer than k students contributed.

    The actual sample size is deliberately not disclosed.
    """

    objective_id: str
    cohort_key: str
    required: int
    reason: str = "insufficient_sample"
