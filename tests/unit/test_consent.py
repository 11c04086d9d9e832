# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the consent gate and the in-memory consent registry."""

from datetime import timedelta

import pytest

from src.core.config.settings import ConsentSettings
from src.domains.consent import ConsentGate, InMemoryConsentRegistry
from src.infrastructure.events import EventBus, EventData, EventTypes
from src.models.consent import ConsentRecord, PrivacyTier
from src.utils.datetime import utc_now


@pytest.fixture
def gate() -> ConsentGate:
    """Gate with fail-closed expiry."""
    return ConsentGate(ConsentSettings())


class TestPrivacyTier:
    """Tests for tier ordering."""

    def test_tiers_are_ordered(self) -> None:
        """Test none < minimal < standard < enhanced."""
        assert PrivacyTier.NONE < PrivacyTier.MINIMAL < PrivacyTier.STANDARD < PrivacyTier.ENHANCED
        assert min(PrivacyTier.ENHANCED, PrivacyTier.MINIMAL) == PrivacyTier.MINIMAL


class TestConsentGate:
    """Tests for ConsentGate.authorize."""

    def test_none_tier_is_denied(self, gate: ConsentGate, build_event) -> None:
        """Test that tier none denies everything."""
        event = build_event(tier="standard")
        consent = ConsentRecord(student_ref="s1", tier=PrivacyTier.NONE)

        authorization = gate.authorize(event, consent)

        assert authorization.denied
        assert authorization.reason == "no_consent"

    def test_minimal_tier_is_aggregate_only(self, gate: ConsentGate, build_event) -> None:
        """Test that minimal consent allows aggregation without identifiable state."""
        event = build_event(tier="minimal")
        consent = ConsentRecord(student_ref="s1", tier=PrivacyTier.ENHANCED)

        authorization = gate.authorize(event, consent)

        assert authorization.tier == PrivacyTier.MINIMAL
        assert authorization.allow_identifiable is False
        assert authorization.allow_aggregate is True
        assert authorization.reason == "aggregate_only"

    def test_standard_tier_strips_behavioral_fields(self, gate: ConsentGate, build_event) -> None:
        """Test that standard consent strips behavioral patterns."""
        event = build_event(tier="enhanced", hesitationMs=1200, focusLosses=2)
        consent = ConsentRecord(student_ref="s1", tier=PrivacyTier.STANDARD)

        authorization = gate.authorize(event, consent)
        redacted = event.redacted(authorization.stripped_fields)

        assert authorization.tier == PrivacyTier.STANDARD
        assert authorization.allow_identifiable is True
        assert "hesitation_ms" in authorization.stripped_fields
        assert redacted.payload.hesitation_ms is None
        assert redacted.payload.focus_losses is None
        assert redacted.payload.duration_ms == event.payload.duration_ms

    def test_enhanced_tier_keeps_behavioral_fields(self, gate: ConsentGate, build_event) -> None:
        """Test that enhanced consent retains everything."""
        event = build_event(tier="enhanced", hesitationMs=1200)
        consent = ConsentRecord(student_ref="s1", tier=PrivacyTier.ENHANCED)

        authorization = gate.authorize(event, consent)

        assert authorization.stripped_fields == frozenset()
        assert event.redacted(authorization.stripped_fields).payload.hesitation_ms == 1200

    def test_effective_tier_is_the_lower_of_event_and_record(self, gate: ConsentGate, build_event) -> None:
        """Test that an event cannot claim more than the stored consent."""
        event = build_event(tier="enhanced")
        consent = ConsentRecord(student_ref="s1", tier=PrivacyTier.MINIMAL)

        authorization = gate.authorize(event, consent)

        assert authorization.tier == PrivacyTier.MINIMAL

    def test_expired_consent_fails_closed(self, gate: ConsentGate, build_event) -> None:
        """Test that expiry denies immediately without grace."""
        event = build_event()
        consent = ConsentRecord(
            student_ref="s1",
            tier=PrivacyTier.STANDARD,
            expires_at=utc_now() - timedelta(seconds=1),
        )

        authorization = gate.authorize(event, consent)

        assert authorization.denied
        assert authorization.reason == "consent_expired"

    def test_expiry_grace_is_configurable(self, build_event) -> None:
        """Test that a configured grace period keeps recently expired consent."""
        gate = ConsentGate(ConsentSettings(expiry_grace_seconds=3600))
        event = build_event()
        consent = ConsentRecord(
            student_ref="s1",
            tier=PrivacyTier.STANDARD,
            expires_at=utc_now() - timedelta(minutes=5),
        )

        authorization = gate.authorize(event, consent)

        assert not authorization.denied

    def test_missing_parental_consent_is_denied(self, gate: ConsentGate, build_event) -> None:
        """Test that required parental consent must be present."""
        event = build_event()
        consent = ConsentRecord(
            student_ref="s1",
            tier=PrivacyTier.ENHANCED,
            parental_consent_required=True,
        )

        authorization = gate.authorize(event, consent)

        assert authorization.denied
        assert authorization.reason == "parental_consent_missing"

    def test_granted_parental_consent_is_accepted(self, gate: ConsentGate, build_event) -> None:
        """Test that a parental grant satisfies the requirement."""
        event = build_event()
        consent = ConsentRecord(
            student_ref="s1",
            tier=PrivacyTier.STANDARD,
            parental_consent_required=True,
            parental_consent_granted_at=utc_now() - timedelta(days=1),
        )

        assert not gate.authorize(event, consent).denied

    def test_record_of_another_student_is_denied(self, gate: ConsentGate, build_event) -> None:
        """Test that consent of a different student never applies."""
        event = build_event(student_ref="s1")
        consent = ConsentRecord(student_ref="s2", tier=PrivacyTier.ENHANCED)

        authorization = gate.authorize(event, consent)

        assert authorization.reason == "consent_mismatch"


class TestInMemoryConsentRegistry:
    """Tests for the consent registry."""

    @pytest.mark.asyncio
    async def test_unknown_student_has_no_consent(self) -> None:
        """Test that unknown students are treated as tier none."""
        registry = InMemoryConsentRegistry()

        record = await registry.get_consent("ghost")

        assert record.tier == PrivacyTier.NONE

    @pytest.mark.asyncio
    async def test_withdraw_publishes_notification(self, event_bus: EventBus) -> None:
        """Test that withdrawal is announced on the bus."""
        registry = InMemoryConsentRegistry(event_bus)
        received: list[EventData] = []

        async def handler(event: EventData) -> None:
            received.append(event)

        event_bus.subscribe(EventTypes.Consent.WITHDRAWN, handler)
        await registry.grant(ConsentRecord(student_ref="s1", tier=PrivacyTier.STANDARD))
        await registry.withdraw("s1")

        assert len(received) == 1
        assert received[0].payload == {"student_ref": "s1", "tier": "none"}
        assert (await registry.get_consent("s1")).tier == PrivacyTier.NONE

    @pytest.mark.asyncio
    async def test_downgrade_below_standard_counts_as_withdrawal(self, event_bus: EventBus) -> None:
        """Test that dropping to minimal announces a withdrawal."""
        registry = InMemoryConsentRegistry(event_bus)
        received: list[str] = []

        async def handler(event: EventData) -> None:
            received.append(event.event_type)

        event_bus.subscribe("consent.*", handler)
        await registry.grant(ConsentRecord(student_ref="s1", tier=PrivacyTier.ENHANCED))
        await registry.grant(ConsentRecord(student_ref="s1", tier=PrivacyTier.MINIMAL))

        assert received == [EventTypes.Consent.GRANTED, EventTypes.Consent.WITHDRAWN]
