# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Consent and privacy tier models."""

from datetime import datetime
from enum import Enum

from pydantic import Field, field_validator

from src.models.base import FrozenCamelModel
from src.utils.datetime import ensure_utc, utc_now


class PrivacyTier(str, Enum):
    """Consent tiers ordered by how much processing they permit."""

    NONE = "none"
    MINIMAL = "minimal"
    STANDARD = "standard"
    ENHANCED = "enhanced"

    @property
    def rank(self) -> int:
        """Position of the tier in the permissiveness order."""
        return _TIER_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, PrivacyTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, PrivacyTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, PrivacyTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, PrivacyTier):
            return NotImplemented
        return self.rank >= other.rank


_TIER_ORDER = [
    PrivacyTier.NONE,
    PrivacyTier.MINIMAL,
    PrivacyTier.STANDARD,
    PrivacyTier.ENHANCED,
]


class ConsentRecord(FrozenCamelModel):
    """Consent state of one student.

    Mutated only through explicit consent-change operations, which
    replace the record.

    Attributes:
        student_ref: Opaque hashed student identifier.
        tier: Granted privacy tier.
        granted_at: When the tier was granted.
        expires_at: Optional expiry of the grant.
        parental_consent_required: Whether a parent must consent (COPPA).
        parental_consent_granted_at: When the parent granted consent, if ever.
    """

    student_ref: str
    tier: PrivacyTier = PrivacyTier.NONE
    granted_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime | None = None
    parental_consent_required: bool = False
    parental_consent_granted_at: datetime | None = None

    @field_validator("granted_at", "expires_at", "parental_consent_granted_at")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @property
    def has_parental_grant(self) -> bool:
        """Whether a parental grant is on record."""
        return self.parental_consent_granted_at is not None

    @classmethod
    def denied(cls, student_ref: str) -> "ConsentRecord":
        """Record used for students without any consent on file."""
        return cls(student_ref=student_ref, tier=PrivacyTier.NONE)


class Authorization(FrozenCamelModel):
    """Decision of the consent gate for one event.

    Attributes:
        tier: Effective privacy tier.
        allow_identifiable: Whether per-student state may be retained.
        allow_aggregate: Whether the event may feed cohort analytics.
        stripped_fields: Payload fields that must be removed before use.
        reason: Short machine-readable reason for the decision.
    """

    tier: PrivacyTier
    allow_identifiable: bool
    allow_aggregate: bool
    stripped_fields: frozenset[str] = frozenset()
    reason: str = "granted"

    @property
    def denied(self) -> bool:
        """Whether no processing at all is allowed."""
        return not (self.allow_identifiable or self.allow_aggregate)


class ConsentDenied(FrozenCamelModel):
    """Terminal no-op result for events that may not be processed.

    Not an error: callers should treat it silently.
    """

    student_ref: str
    tier: PrivacyTier
    reason: str
