# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import pytest

from src.core.config.settings import Settings
from src.domains.consent import InMemoryConsentRegistry
from src.domains.validation import EventValidator
from src.infrastructure.collaborators import InMemoryCourseCatalog
from src.infrastructure.events import EventBus
from src.models.consent import Authorization, ConsentRecord, PrivacyTier
from src.models.course import DifficultyLevel, ObjectiveDefinition
from src.models.events import InteractionEvent
from src.utils.datetime import format_iso, utc_now

RawEventFactory = Callable[..., dict[str, Any]]


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (uses a real database driver)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Provide development settings independent of the environment."""
    return Settings(environment="development")


# =============================================================================
# Course Fixtures
# =============================================================================


@pytest.fixture
def algebra_definition() -> ObjectiveDefinition:
    """Beginner objective with three sections."""
    return ObjectiveDefinition(
        objective_id="algebra-1",
        all_sections=("intro", "equations", "review"),
        difficulty=DifficultyLevel.BEGINNER,
    )


@pytest.fixture
def geometry_definition() -> ObjectiveDefinition:
    """Intermediate objective with two sections."""
    return ObjectiveDefinition(
        objective_id="geometry-1",
        all_sections=("angles", "triangles"),
        difficulty=DifficultyLevel.INTERMEDIATE,
    )


@pytest.fixture
def catalog(
    algebra_definition: ObjectiveDefinition,
    geometry_definition: ObjectiveDefinition,
) -> InMemoryCourseCatalog:
    """Course catalog holding the sample objectives."""
    return InMemoryCourseCatalog([algebra_definition, geometry_definition])


# =============================================================================
# Consent Fixtures
# =============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    """Event bus with fast retries."""
    return EventBus(max_attempts=2, retry_backoff_seconds=0.0)


@pytest.fixture
def consent_registry(event_bus: EventBus) -> InMemoryConsentRegistry:
    """Consent registry publishing on the test bus."""
    return InMemoryConsentRegistry(event_bus)


@pytest.fixture
def standard_consent() -> Callable[[str], ConsentRecord]:
    """Build a standard-tier consent record for a student."""

    def _build(student_ref: str, tier: PrivacyTier = PrivacyTier.STANDARD) -> ConsentRecord:
        return ConsentRecord(student_ref=student_ref, tier=tier)

    return _build


# =============================================================================
# Event Fixtures
# =============================================================================


@pytest.fixture
def base_time() -> datetime:
    """Reference time for event timestamps, safely in the past."""
    return utc_now() - timedelta(minutes=30)


@pytest.fixture
def make_event(base_time: datetime) -> RawEventFactory:
    """Build raw camelCase events as sent by the collection layer.

    Each call takes an offset in seconds from ``base_time`` so distinct
    events get distinct content hashes.
    """

    def _build(
        offset_s: int = 0,
        student_ref: str = "s1",
        objective_id: str = "algebra-1",
        section_id: str = "intro",
        kind: str = "practice",
        duration_ms: int = 50_000,
        tier: str = "standard",
        cohort_key: str | None = None,
        **payload: Any,
    ) -> dict[str, Any]:
        raw: dict[str, Any] = {
            "studentRef": student_ref,
            "objectiveId": objective_id,
            "sectionId": section_id,
            "kind": kind,
            "timestampUtc": format_iso(base_time + timedelta(seconds=offset_s)),
            "consentTier": tier,
            "payload": {"durationMs": duration_ms, **payload},
        }
        if kind == "answer":
            raw["payload"].setdefault("selectedOption", "a")
            raw["payload"].setdefault("correctOption", "a")
        if cohort_key is not None:
            raw["cohortKey"] = cohort_key
        return raw

    return _build


@pytest.fixture
def build_event(make_event: RawEventFactory) -> Callable[..., InteractionEvent]:
    """Build validated InteractionEvent models from raw event arguments."""
    validator = EventValidator()

    def _build(**kwargs: Any) -> InteractionEvent:
        result = validator.validate(make_event(**kwargs))
        assert isinstance(result, InteractionEvent), result
        return result

    return _build


@pytest.fixture
def standard_authorization() -> Authorization:
    """Authorization granted at the standard tier."""
    return Authorization(
        tier=PrivacyTier.STANDARD,
        allow_identifiable=True,
        allow_aggregate=True,
    )
