# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Timeout wrapper for collaborator calls.

Only calls that leave the engine (course lookup, consent lookup,
persistence) are subject to timeouts; in-memory scoring and adaptation
are not.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from src.core.exceptions import CollaboratorTimeoutError

T = TypeVar("T")


async def call_with_timeout(call: Awaitable[T], collaborator: str, timeout: float) -> T:
    """Await a collaborator call, mapping timeouts to a transient error.

    Args:
        call: The pending collaborator call.
        collaborator: Collaborator name for error reporting.
        timeout: Timeout in seconds.

    Returns:
        The collaborator's result.

    Raises:
        CollaboratorTimeoutError: If the call does not finish in time.
    """
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise CollaboratorTimeoutError(collaborator, timeout) from e
