# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Directive cache implementations.

Example:
    from src.infrastructure.cache import RedisDirectiveCache

    cache = RedisDirectiveCache.from_settings(settings.redis)
    engine = LearningProgressEngine(catalog, registry, directive_cache=cache)
"""

from src.infrastructure.cache.memory_cache import InMemoryDirectiveCache
from src.infrastructure.cache.redis_cache import RedisDirectiveCache

__all__ = [
    "InMemoryDirectiveCache",
    "RedisDirectiveCache",
]
