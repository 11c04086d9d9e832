# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Interfaces of the engine's external collaborators.

The engine never authors course content, never chooses a storage
technology and never owns consent. It talks to those concerns through the
protocols below; in-memory, YAML, SQLAlchemy and Redis implementations
live next to this module.
"""

from typing import Protocol, runtime_checkable

from src.models.adaptation import AdaptationDirective
from src.models.consent import ConsentRecord
from src.models.course import ObjectiveDefinition
from src.models.progress import ProgressState


@runtime_checkable
class CourseDefinitionProvider(Protocol):
    """Read-only course definitions."""

    async def get_objective_definition(self, objective_id: str) -> ObjectiveDefinition | None:
        """Definition of an objective, or None when unknown."""
        ...


@runtime_checkable
class ProgressStore(Protocol):
    """Durable progress storage with purge-on-demand.

    ``save`` must be idempotent for a given (student, objective, version)
    so at-least-once retries are safe.
    """

    async def save(self, state: ProgressState) -> None:
        """Persist a progress state."""
        ...

    async def load(self, student_ref: str, objective_id: str) -> ProgressState | None:
        """Load a progress state, or None when absent."""
        ...

    async def purge(self, student_ref: str) -> int:
        """Remove every state of a student; returns the number removed."""
        ...


@runtime_checkable
class ConsentProvider(Protocol):
    """Source of consent records."""

    async def get_consent(self, student_ref: str) -> ConsentRecord:
        """Current consent of a student."""
        ...


@runtime_checkable
class DirectiveCache(Protocol):
    """Optional cache for adaptation directives."""

    async def get(self, student_ref: str, objective_id: str, version: int) -> AdaptationDirective | None:
        """Cached directive for a state version, if any."""
        ...

    async def set(self, directive: AdaptationDirective) -> None:
        """Cache a directive under its state version."""
        ...

    async def invalidate_student(self, student_ref: str) -> None:
        """Drop every cached directive of a student."""
        ...
