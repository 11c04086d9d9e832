# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Validation result models."""

from typing import Any

from src.core.exceptions import EventValidationError
from src.models.base import FrozenCamelModel
from src.models.events import InteractionEvent


class FieldIssue(FrozenCamelModel):
    """One problem found in a raw event."""

    field: str
    message: str
    code: str = "invalid"


class InvalidEvent(FrozenCamelModel):
    """Returned by the validator instead of raising.

    Attributes:
        issues: Problems found, at least one.
        index: Position of the event in a batch, if validated in one.
    """

    issues: tuple[FieldIssue, ...]
    index: int | None = None

    def to_exception(self) -> EventValidationError:
        """Build the equivalent exception for raising callers."""
        issues: list[dict[str, Any]] = [issue.model_dump() for issue in self.issues]
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in self.issues)
        return EventValidationError(f"Invalid interaction event ({summary})", issues)


class BatchValidation(FrozenCamelModel):
    """Result of validating a batch of raw events.

    Attributes:
        valid: Events that passed, in input order.
        invalid: Failures, each carrying its batch index.
        processed: Number of items examined before finishing or cancelling.
        cancelled: Whether validation stopped early.
    """

    valid: tuple[InteractionEvent, ...] = ()
    invalid: tuple[InvalidEvent, ...] = ()
    processed: int = 0
    cancelled: bool = False
