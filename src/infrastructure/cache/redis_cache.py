# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis-backed directive cache.

Directives are stored as JSON under

    {prefix}:{student_ref}:{objective_id}:{version}

so a new progress version never reads a stale directive, and every entry
of a student can be found with one key pattern when the student is purged.

Example:
    from redis.asyncio import Redis
    from src.infrastructure.cache import RedisDirectiveCache

    cache = RedisDirectiveCache.from_settings(settings.redis)
    await cache.set(directive)
    await cache.invalidate_student("s1")
    await cache.close()
"""

import json
import logging

from pydantic import ValidationError
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from src.core.config.settings import RedisSettings
from src.core.exceptions import CollaboratorError
from src.models.adaptation import AdaptationDirective

logger = logging.getLogger(__name__)

COLLABORATOR = "directive_cache"


class RedisDirectiveCache:
    """DirectiveCache implementation on redis.asyncio.

    Attributes:
        redis: Async Redis client.
        ttl_seconds: Expiry of cached directives.
        prefix: Key prefix.
    """

    def __init__(self, redis: Redis, ttl_seconds: int = 300, prefix: str = "directive") -> None:
        """Initialize the cache.

        Args:
            redis: Connected async Redis client (decode_responses=True).
            ttl_seconds: Expiry of cached directives.
            prefix: Key prefix.
        """
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    @classmethod
    def from_settings(cls, settings: RedisSettings) -> "RedisDirectiveCache":
        """Create a cache with its own connection pool."""
        pool = ConnectionPool.from_url(settings.url, decode_responses=True)
        return cls(Redis(connection_pool=pool), ttl_seconds=settings.directive_ttl_seconds)

    def _key(self, student_ref: str, objective_id: str, version: int) -> str:
        return f"{self.prefix}:{student_ref}:{objective_id}:{version}"

    async def get(self, student_ref: str, objective_id: str, version: int) -> AdaptationDirective | None:
        """Cached directive for a state version.

        Raises:
            CollaboratorError: If Redis fails.
        """
        key = self._key(student_ref, objective_id, version)
        try:
            value = await self.redis.get(key)
        except RedisError as e:
            raise CollaboratorError("Failed to read cached directive", COLLABORATOR, e) from e

        if value is None:
            return None
        try:
            return AdaptationDirective.model_validate(json.loads(value))
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Discarding undecodable cached directive")
            return None

    async def set(self, directive: AdaptationDirective) -> None:
        """Cache a directive under its state version.

        Raises:
            CollaboratorError: If Redis fails.
        """
        key = self._key(directive.student_ref, directive.objective_id, directive.based_on_version)
        value = json.dumps(directive.model_dump(mode="json", by_alias=True), ensure_ascii=False)
        try:
            await self.redis.set(key, value, ex=self.ttl_seconds)
        except RedisError as e:
            raise CollaboratorError("Failed to cache directive", COLLABORATOR, e) from e

    async def invalidate_student(self, student_ref: str) -> None:
        """Delete every cached directive of a student.

        Raises:
            CollaboratorError: If Redis fails.
        """
        try:
            keys = []
            async for key in self.redis.scan_iter(match=f"{self.prefix}:{student_ref}:*"):
                keys.append(key)
            if keys:
                await self.redis.delete(*keys)
        except RedisError as e:
            raise CollaboratorError("Failed to invalidate cached directives", COLLABORATOR, e) from e

        logger.debug("Invalidated %d cached directives", len(keys))

    async def ping(self) -> bool:
        """Whether Redis is reachable."""
        try:
            await self.redis.ping()
            return True
        except RedisError:
            return False

    async def close(self) -> None:
        """Close the Redis client."""
        await self.redis.aclose()
