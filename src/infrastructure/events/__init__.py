# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure module for LearnTrace.

This module provides an in-memory event bus used for the consent
withdrawal hook and for progress notifications to external collaborators.

Components:
- EventBus: In-memory pub/sub with pattern matching and retries
- EventTypes: Centralized event type constants

Quick Start:
    from src.infrastructure.events import EventBus, EventTypes

    bus = EventBus()
    bus.subscribe(EventTypes.Progress.SECTION_COMPLETED, notify_teacher)
"""

from src.infrastructure.events.bus import EventBus, EventData, EventHandler
from src.infrastructure.events.types import EventPatterns, EventTypes

__all__ = [
    # Event Bus
    "EventBus",
    "EventData",
    "EventHandler",
    # Event Types
    "EventTypes",
    "EventPatterns",
]
