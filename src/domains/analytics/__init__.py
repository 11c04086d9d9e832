# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cohort analytics domain.

The AnonymizedAggregator keeps k-anonymous running sums per
(objective, cohort) and publishes optionally noisy aggregates.

Usage:
    from src.domains.analytics import AnonymizedAggregator

    aggregator = AnonymizedAggregator(settings.aggregation)
    result = await aggregator.get_cohort_aggregate("algebra-1", "algebra-1:beginner")
"""

from src.domains.analytics.aggregator import (
    PUBLISHED_METRICS,
    AnonymizedAggregator,
    CohortCounters,
)

__all__ = [
    "AnonymizedAggregator",
    "CohortCounters",
    "PUBLISHED_METRICS",
]
