# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for LearnTrace.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
- locks: Per-key asyncio locks
"""

from src.utils.datetime import (
    ensure_utc,
    format_iso,
    utc_now,
)
from src.utils.locks import KeyedLocks, LockTimeoutError
from src.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    mask_student_refs,
    setup_logging,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "mask_student_refs",
    # Datetime
    "utc_now",
    "ensure_utc",
    "format_iso",
    # Locks
    "KeyedLocks",
    "LockTimeoutError",
]
