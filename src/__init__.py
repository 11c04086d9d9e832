"""LearnTrace engine.

Privacy-gated learning progress and adaptive content engine: turns raw
student interaction events into consent-aware progress state, k-anonymous
cohort analytics and bounded difficulty adaptations.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "0.1.0"
