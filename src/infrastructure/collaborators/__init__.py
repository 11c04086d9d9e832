# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""External collaborator interfaces and lightweight implementations.

Protocols:
- CourseDefinitionProvider: read-only objective definitions
- ProgressStore: durable progress storage with purge
- ConsentProvider: consent records
- DirectiveCache: optional directive cache

Implementations here need no external services; database and Redis
backed implementations live in src.infrastructure.database and
src.infrastructure.cache.
"""

from src.infrastructure.collaborators.calls import call_with_timeout
from src.infrastructure.collaborators.course_catalog import (
    InMemoryCourseCatalog,
    YamlCourseCatalog,
)
from src.infrastructure.collaborators.memory_store import InMemoryProgressStore
from src.infrastructure.collaborators.protocols import (
    ConsentProvider,
    CourseDefinitionProvider,
    DirectiveCache,
    ProgressStore,
)

__all__ = [
    # Protocols
    "CourseDefinitionProvider",
    "ProgressStore",
    "ConsentProvider",
    "DirectiveCache",
    # Implementations
    "InMemoryCourseCatalog",
    "YamlCourseCatalog",
    "InMemoryProgressStore",
    # Helpers
    "call_with_timeout",
]
