# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Adaptation domain."""

from src.domains.adaptation.engine import (
    CHALLENGE_TAGS,
    PRACTICE_TAGS,
    REMEDIATION_TAGS,
    AdaptationEngine,
)

__all__ = [
    "AdaptationEngine",
    "REMEDIATION_TAGS",
    "CHALLENGE_TAGS",
    "PRACTICE_TAGS",
]
