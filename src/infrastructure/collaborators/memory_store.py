# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory progress store.

Used by default and in tests. Applies the same version rules as the
SQLAlchemy store: re-saving a version is a no-op, saving an older version
than the stored one is a concurrency conflict.
"""

from src.core.exceptions import ConcurrencyConflictError
from src.models.progress import ProgressState


class InMemoryProgressStore:
    """Progress store backed by a dictionary of serialised states."""

    def __init__(self) -> None:
        self._states: dict[tuple[str, str], dict] = {}

    async def save(self, state: ProgressState) -> None:
        """Persist a copy of the state."""
        key = (state.student_ref, state.objective_id)
        stored = self._states.get(key)
        if stored is not None:
            if stored["version"] == state.version:
                return
            if stored["version"] > state.version:
                raise ConcurrencyConflictError(
                    "Stale progress write",
                    {"stored_version": stored["version"], "version": state.version},
                )
        self._states[key] = state.model_dump(mode="json")

    async def load(self, student_ref: str, objective_id: str) -> ProgressState | None:
        """Load a fresh copy of a stored state."""
        stored = self._states.get((student_ref, objective_id))
        if stored is None:
            return None
        return ProgressState.model_validate(stored)

    async def purge(self, student_ref: str) -> int:
        """Remove every state of a student."""
        keys = [key for key in self._states if key[0] == student_ref]
        for key in keys:
            del self._states[key]
        return len(keys)

    def __len__(self) -> int:
        return len(self._states)
