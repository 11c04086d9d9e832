# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized event type definitions for LearnTrace.

These are notifications published by the engine for external
collaborators (persistence mirrors, notification services) and the
consent change hook. They are distinct from student InteractionEvents.

Adding a new event:
1. Add constant to appropriate class here
2. Pattern subscribers catch new events automatically
"""


class EventTypes:
    """All engine notification types organized by domain."""

    class Consent:
        """Consent change notifications."""

        GRANTED = "consent.granted"
        WITHDRAWN = "consent.withdrawn"

    class Progress:
        """Progress ledger notifications."""

        EVENT_APPLIED = "progress.event.applied"
        SECTION_COMPLETED = "progress.section.completed"
        SECTION_RESET = "progress.section.reset"
        OBJECTIVE_COMPLETED = "progress.objective.completed"
        STUDENT_PURGED = "progress.student.purged"

    class Analytics:
        """Cohort analytics notifications."""

        COHORT_RELEASED = "analytics.cohort.released"


class EventPatterns:
    """Wildcard patterns for subscribing to multiple events."""

    ALL_CONSENT = "consent.*"
    ALL_PROGRESS = "progress.*"
    ALL_ANALYTICS = "analytics.*"
    ALL_COMPLETIONS = "progress.*.completed"
    ALL = "*"
