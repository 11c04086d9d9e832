# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning progress engine facade."""

from src.domains.engine.service import LearningProgressEngine, cohort_key_for

__all__ = [
    "LearningProgressEngine",
    "cohort_key_for",
]
