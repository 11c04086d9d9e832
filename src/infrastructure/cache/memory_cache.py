# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory directive cache, for tests and single-process use."""

from src.models.adaptation import AdaptationDirective


class InMemoryDirectiveCache:
    """DirectiveCache backed by a dictionary without expiry."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str, int], AdaptationDirective] = {}

    async def get(self, student_ref: str, objective_id: str, version: int) -> AdaptationDirective | None:
        return self._entries.get((student_ref, objective_id, version))

    async def set(self, directive: AdaptationDirective) -> None:
        key = (directive.student_ref, directive.objective_id, directive.based_on_version)
        self._entries[key] = directive

    async def invalidate_student(self, student_ref: str) -> None:
        for key in [key for key in self._entries if key[0] == student_ref]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
