# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Consent gate.

Decides, per event, whether processing may proceed and at which privacy
tier. The gate is fail-closed: any doubt about consent results in tier
"none", which the rest of the pipeline treats as a silent no-op.

Decision table:
- Parental consent required without a parental grant: none
- Consent expired (beyond the configured grace period): none
- Effective tier is the lower of the event's tier and the consent tier
- minimal: aggregate analytics only, no per-student state
- standard: per-student state and aggregates, behavioral fields stripped
- enhanced: per-student state and aggregates, behavioral fields kept
"""

from datetime import datetime, timedelta

from src.core.config.settings import ConsentSettings
from src.models.consent import Authorization, ConsentRecord, PrivacyTier
from src.models.events import InteractionEvent
from src.utils.datetime import ensure_utc, utc_now


class ConsentGate:
    """Pure consent decision function.

    Attributes:
        settings: Expiry grace and behavioral field configuration.
    """

    def __init__(self, settings: ConsentSettings | None = None) -> None:
        """Initialize the gate.

        Args:
            settings: Consent settings, defaults if omitted.
        """
        self.settings = settings or ConsentSettings()

    @property
    def behavioral_fields(self) -> frozenset[str]:
        """Payload fields only retained at the enhanced tier."""
        return frozenset(self.settings.behavioral_fields)

    def authorize(
        self,
        event: InteractionEvent,
        consent: ConsentRecord,
        now: datetime | None = None,
    ) -> Authorization:
        """Decide how an event may be processed.

        Args:
            event: Validated interaction event.
            consent: Current consent record of the event's student.
            now: Reference time for expiry checks, defaults to utc_now().

        Returns:
            Authorization with the effective tier and permissions.
        """
        reference = ensure_utc(now) if now is not None else utc_now()

        if consent.student_ref != event.student_ref:
            return self._deny("consent_mismatch")

        if consent.parental_consent_required and not consent.has_parental_grant:
            return self._deny("parental_consent_missing")

        if consent.expires_at is not None:
            grace = timedelta(seconds=self.settings.expiry_grace_seconds)
            if consent.expires_at + grace < reference:
                return self._deny("consent_expired")

        tier = min(event.consent_tier, consent.tier)

        if tier == PrivacyTier.NONE:
            return self._deny("no_consent")

        if tier == PrivacyTier.MINIMAL:
            return Authorization(
                tier=tier,
                allow_identifiable=False,
                allow_aggregate=True,
                stripped_fields=self.behavioral_fields,
                reason="aggregate_only",
            )

        if tier == PrivacyTier.STANDARD:
            return Authorization(
                tier=tier,
                allow_identifiable=True,
                allow_aggregate=True,
                stripped_fields=self.behavioral_fields,
                reason="granted",
            )

        return Authorization(
            tier=tier,
            allow_identifiable=True,
            allow_aggregate=True,
            reason="granted",
        )

    @staticmethod
    def _deny(reason: str) -> Authorization:
        return Authorization(
            tier=PrivacyTier.NONE,
            allow_identifiable=False,
            allow_aggregate=False,
            reason=reason,
        )
