# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mastery scoring domain."""

from src.domains.mastery.scorer import DEPTH_WEIGHTS, MasteryResult, MasteryScorer

__all__ = [
    "MasteryScorer",
    "MasteryResult",
    "DEPTH_WEIGHTS",
]
