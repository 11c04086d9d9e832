# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory event bus for LearnTrace.

This module provides an async event bus for decoupled communication
between the engine and its collaborators. Events are published and
subscribed to by event type strings.

The EventBus supports:
- Exact event type matching (e.g., "consent.withdrawn")
- Wildcard pattern matching (e.g., "progress.*")
- Async handlers, retried with backoff (at-least-once delivery)
- Idempotency keys, so handlers can recognise redeliveries
- Optional propagation of final handler failures to the publisher

The bus is an explicit instance passed to the components that use it;
there is no process-wide singleton.

Example:
    from src.infrastructure.events import EventBus, EventTypes

    bus = EventBus()

    async def on_withdrawn(event):
        await ledger.purge_student(event.payload["student_ref"])

    bus.subscribe(EventTypes.Consent.WITHDRAWN, on_withdrawn)
    await bus.publish(EventTypes.Consent.WITHDRAWN, {"student_ref": "s1"})
"""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import uuid4

logger = logging.getLogger(__name__)

# Type alias for event handlers
EventHandler = Callable[["EventData"], Awaitable[None]]


@dataclass
class EventData:
    """Container for event data with metadata.

    Attributes:
        event_type: The event type string.
        payload: The event payload data.
        event_id: Idempotency key; redeliveries of one event share it.
        timestamp: When the event was published.
        attempt: Delivery attempt for the handler receiving it (1-based).
    """

    event_type: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attempt: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
            "attempt": self.attempt,
        }


class EventBus:
    """In-memory async event bus with pattern matching support.

    Handlers for one event run concurrently. A failing handler is retried
    up to ``max_attempts`` times with exponential backoff. Final failures
    are logged and counted; they reach the publisher only when it asks
    for them with ``raise_on_failure``.

    Thread-safety: designed for single-threaded async use.

    Attributes:
        max_attempts: Delivery attempts per handler.
        retry_backoff_seconds: Initial delay between attempts.
    """

    def __init__(self, max_attempts: int = 3, retry_backoff_seconds: float = 0.05) -> None:
        """Initialize the event bus.

        Args:
            max_attempts: Delivery attempts per handler (at least 1).
            retry_backoff_seconds: Initial backoff, doubled per attempt.
        """
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._handlers: dict[str, list[EventHandler]] = {}
        self._pattern_handlers: dict[str, list[EventHandler]] = {}
        self._event_count = 0
        self._failed_deliveries = 0
        logger.debug("EventBus initialized")

    @staticmethod
    def _is_pattern(event_type: str) -> bool:
        return "*" in event_type or "?" in event_type

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event type or pattern.

        Args:
            event_type: Event type string or pattern with wildcards.
            handler: Async function to call when event is published.
        """
        registry = self._pattern_handlers if self._is_pattern(event_type) else self._handlers
        registry.setdefault(event_type, []).append(handler)
        logger.debug("Subscribed handler to: %s", event_type)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Unsubscribe a handler from an event type or pattern.

        Args:
            event_type: Event type string or pattern.
            handler: The handler function to remove.

        Returns:
            True if handler was found and removed, False otherwise.
        """
        registry = self._pattern_handlers if self._is_pattern(event_type) else self._handlers
        handlers = registry.get(event_type)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        if not handlers:
            del registry[event_type]
        return True

    async def publish(
        self,
        event_type: str,
        payload: dict[str, Any],
        event_id: str | None = None,
        raise_on_failure: bool = False,
    ) -> EventData:
        """Publish an event to all matching subscribers.

        Args:
            event_type: The event type string.
            payload: Event data dictionary.
            event_id: Optional idempotency key. Publishing the same logical
                event twice with the same key lets handlers deduplicate.
            raise_on_failure: Re-raise the error of the first handler that
                still failed after all attempts, once every handler ran.

        Returns:
            EventData object with event metadata.

        Raises:
            Exception: The handler's error, only with raise_on_failure.
        """
        event = EventData(event_type=event_type, payload=payload)
        if event_id is not None:
            event.event_id = event_id

        self._event_count += 1

        handlers_to_call: list[EventHandler] = list(self._handlers.get(event_type, []))
        for pattern, pattern_handlers in self._pattern_handlers.items():
            if fnmatch.fnmatch(event_type, pattern):
                handlers_to_call.extend(pattern_handlers)

        if not handlers_to_call:
            logger.debug("No handlers for event: %s", event_type)
            return event

        logger.debug(
            "Publishing event %s to %d handlers",
            event_type,
            len(handlers_to_call),
        )

        failures = await asyncio.gather(
            *[self._deliver(handler, event) for handler in handlers_to_call],
        )

        if raise_on_failure:
            for failure in failures:
                if failure is not None:
                    raise failure

        return event

    async def _deliver(self, handler: EventHandler, event: EventData) -> Exception | None:
        """Call one handler, retrying failures with backoff.

        Returns:
            The last error when every attempt failed, otherwise None.
        """
        delay = self.retry_backoff_seconds
        for attempt in range(1, self.max_attempts + 1):
            delivery = EventData(
                event_type=event.event_type,
                payload=event.payload,
                event_id=event.event_id,
                timestamp=event.timestamp,
                attempt=attempt,
            )
            try:
                await handler(delivery)
                return None
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if attempt == self.max_attempts:
                    self._failed_deliveries += 1
                    logger.error(
                        "Handler error for event %s after %d attempts: %s",
                        event.event_type,
                        attempt,
                        str(e),
                        exc_info=True,
                    )
                    return e
                logger.warning(
                    "Handler error for event %s (attempt %d), retrying: %s",
                    event.event_type,
                    attempt,
                    str(e),
                )
                await asyncio.sleep(delay)
                delay *= 2
        return None

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()
        self._pattern_handlers.clear()
        logger.debug("EventBus cleared all subscriptions")

    def get_stats(self) -> dict[str, Any]:
        """Get event bus statistics.

        Returns:
            Dictionary with subscription and event counts.
        """
        exact_count = sum(len(h) for h in self._handlers.values())
        pattern_count = sum(len(h) for h in self._pattern_handlers.values())

        return {
            "exact_subscriptions": len(self._handlers),
            "pattern_subscriptions": len(self._pattern_handlers),
            "total_handlers": exact_count + pattern_count,
            "events_published": self._event_count,
            "failed_deliveries": self._failed_deliveries,
            "event_types": list(self._handlers.keys()),
            "patterns": list(self._pattern_handlers.keys()),
        }
