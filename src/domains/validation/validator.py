# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Interaction event validation.

The validator turns raw, loosely-typed event dictionaries (as sent by a
JavaScript collection layer) into immutable InteractionEvent objects.

Validation failures are returned as InvalidEvent values instead of being
raised, so a batch of events can be validated without one bad event
aborting the rest.

Checks performed:
- Required fields and types (via the pydantic event model)
- Known interaction kind and kind-specific payload shape
- Timestamp within the allowed skew window and retention horizon
- Student reference looks opaque (no e-mail addresses or free text)
"""

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from src.core.config.settings import ValidationSettings
from src.models.events import InteractionEvent
from src.models.validation import BatchValidation, FieldIssue, InvalidEvent
from src.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

_OPAQUE_REF = re.compile(r"^[A-Za-z0-9_\-:.]+$")


class EventValidator:
    """Validates and normalises raw interaction events.

    Pure: holds configuration only, performs no I/O.

    Attributes:
        settings: Skew window and retention configuration.

    Example:
        >>> validator = EventValidator(ValidationSettings())
        >>> result = validator.validate(raw_event)
        >>> if isinstance(result, InvalidEvent):
        ...     print(result.issues)
    """

    def __init__(self, settings: ValidationSettings | None = None) -> None:
        """Initialize the validator.

        Args:
            settings: Validation settings, defaults if omitted.
        """
        self.settings = settings or ValidationSettings()

    def validate(
        self,
        raw: Mapping[str, Any] | InteractionEvent,
        now: datetime | None = None,
    ) -> InteractionEvent | InvalidEvent:
        """Validate one raw event.

        Args:
            raw: Raw event mapping (camelCase or snake_case keys), or an
                already constructed event to re-check.
            now: Reference time for the skew window, defaults to utc_now().

        Returns:
            The normalised event, or an InvalidEvent listing every issue.
        """
        if isinstance(raw, InteractionEvent):
            event = raw
        else:
            if not isinstance(raw, Mapping):
                return InvalidEvent(
                    issues=(FieldIssue(field="$", message="event must be an object", code="type"),)
                )
            parsed = self._parse(raw)
            if isinstance(parsed, InvalidEvent):
                return parsed
            event = parsed

        issues = [*self._check_student_ref(event.student_ref), *self._check_timestamp(event, now)]
        if issues:
            return InvalidEvent(issues=tuple(issues))
        return event

    def validate_batch(
        self,
        raws: Iterable[Mapping[str, Any]],
        cancelled: Callable[[], bool] | None = None,
        now: datetime | None = None,
    ) -> BatchValidation:
        """Validate many raw events, checking for cancellation between items.

        Args:
            raws: Raw events.
            cancelled: Called before each item; returning True stops the batch.
            now: Reference time shared by every item.

        Returns:
            Valid events and indexed failures for the items processed.
        """
        reference = now or utc_now()
        valid: list[InteractionEvent] = []
        invalid: list[InvalidEvent] = []
        processed = 0

        for index, raw in enumerate(raws):
            if cancelled is not None and cancelled():
                logger.info("Batch validation cancelled after %d items", processed)
                return BatchValidation(
                    valid=tuple(valid),
                    invalid=tuple(invalid),
                    processed=processed,
                    cancelled=True,
                )
            result = self.validate(raw, now=reference)
            if isinstance(result, InvalidEvent):
                invalid.append(result.model_copy(update={"index": index}))
            else:
                valid.append(result)
            processed += 1

        return BatchValidation(valid=tuple(valid), invalid=tuple(invalid), processed=processed)

    def _parse(self, raw: Mapping[str, Any]) -> InteractionEvent | InvalidEvent:
        """Build the event model, mapping pydantic errors to field issues."""
        data = dict(raw)
        kind = data.get("kind")
        payload = data.get("payload", {})
        if payload is None:
            payload = {}
        if isinstance(payload, Mapping) and isinstance(kind, str):
            # The discriminator lives on the payload; the caller sends it once.
            data["payload"] = {**payload, "kind": kind}

        try:
            return InteractionEvent.model_validate(data)
        except PydanticValidationError as e:
            issues = tuple(
                FieldIssue(
                    field=".".join(str(part) for part in error["loc"]) or "$",
                    message=error["msg"],
                    code=error["type"],
                )
                for error in e.errors()
            )
            return InvalidEvent(issues=issues)

    def _check_student_ref(self, student_ref: str) -> list[FieldIssue]:
        if len(student_ref) > self.settings.max_student_ref_length:
            return [
                FieldIssue(
                    field="studentRef",
                    message=f"must be at most {self.settings.max_student_ref_length} characters",
                    code="too_long",
                )
            ]
        if not _OPAQUE_REF.match(student_ref):
            return [
                FieldIssue(
                    field="studentRef",
                    message="must be an opaque identifier, not personal data",
                    code="not_opaque",
                )
            ]
        return []

    def _check_timestamp(
        self, event: InteractionEvent, now: datetime | None
    ) -> list[FieldIssue]:
        reference = ensure_utc(now) if now is not None else utc_now()
        latest = reference + timedelta(seconds=self.settings.future_skew_seconds)
        earliest = reference - timedelta(days=self.settings.retention_horizon_days)

        if event.timestamp_utc > latest:
            return [
                FieldIssue(
                    field="timestampUtc",
                    message=f"more than {self.settings.future_skew_seconds}s in the future",
                    code="timestamp_in_future",
                )
            ]
        if event.timestamp_utc < earliest:
            return [
                FieldIssue(
                    field="timestampUtc",
                    message=f"older than {self.settings.retention_horizon_days} days",
                    code="timestamp_too_old",
                )
            ]
        return []
