# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory consent collaborator.

Holds the current ConsentRecord per student and publishes consent change
notifications on the EventBus. Withdrawal (or a downgrade that no longer
permits identifiable processing) publishes ``consent.withdrawn``; the
engine subscribes to it and purges the student's progress. A purge that
still fails after the bus retries is raised to the caller of withdraw or
grant, so the withdrawal can be retried.

Applications with their own consent store implement the ConsentProvider
protocol and publish the same event on withdrawal.
"""

import logging

from src.infrastructure.events import EventBus, EventTypes
from src.models.consent import ConsentRecord, PrivacyTier

logger = logging.getLogger(__name__)


class InMemoryConsentRegistry:
    """Consent collaborator backed by a dictionary.

    Attributes:
        event_bus: Bus receiving consent change notifications.

    Example:
        >>> registry = InMemoryConsentRegistry(bus)
        >>> await registry.grant(ConsentRecord(student_ref="s1", tier=PrivacyTier.STANDARD))
        >>> await registry.withdraw("s1")
    """

    def __init__(self, event_bus: EventBus | None = None) -> None:
        """Initialize the registry.

        Args:
            event_bus: Bus for notifications; changes are not announced if omitted.
        """
        self.event_bus = event_bus
        self._records: dict[str, ConsentRecord] = {}

    async def get_consent(self, student_ref: str) -> ConsentRecord:
        """Current consent of a student; tier none if nothing is on file."""
        return self._records.get(student_ref) or ConsentRecord.denied(student_ref)

    async def grant(self, record: ConsentRecord) -> None:
        """Store a new consent record, replacing the previous one.

        A replacement that drops below the standard tier is announced as a
        withdrawal, since identifiable data may no longer be retained.
        """
        previous = self._records.get(record.student_ref)
        self._records[record.student_ref] = record

        was_identifiable = previous is not None and previous.tier >= PrivacyTier.STANDARD
        if was_identifiable and record.tier < PrivacyTier.STANDARD:
            await self._announce(EventTypes.Consent.WITHDRAWN, record)
        else:
            await self._announce(EventTypes.Consent.GRANTED, record)

    async def withdraw(self, student_ref: str) -> None:
        """Withdraw all consent of a student.

        The record is denied before the purge runs, so a failed purge
        leaves the student without consent and can be retried.

        Raises:
            EngineError: If a withdrawal handler such as the purge failed.
        """
        record = ConsentRecord.denied(student_ref)
        self._records[student_ref] = record
        await self._announce(EventTypes.Consent.WITHDRAWN, record)

    async def _announce(self, event_type: str, record: ConsentRecord) -> None:
        if self.event_bus is None:
            return
        logger.info("Consent change published: %s (tier=%s)", event_type, record.tier.value)
        await self.event_bus.publish(
            event_type,
            {"student_ref": record.student_ref, "tier": record.tier.value},
            raise_on_failure=event_type == EventTypes.Consent.WITHDRAWN,
        )
