# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Consent domain.

- ConsentGate: pure per-event consent decision
- InMemoryConsentRegistry: consent collaborator with withdrawal notifications
"""

from src.domains.consent.gate import ConsentGate
from src.domains.consent.registry import InMemoryConsentRegistry

__all__ = [
    "ConsentGate",
    "InMemoryConsentRegistry",
]
