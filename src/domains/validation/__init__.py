# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event validation domain.

Usage:
    from src.domains.validation import EventValidator

    validator = EventValidator(settings.validation)
    result = validator.validate(raw_event)
"""

from src.domains.validation.validator import EventValidator

__all__ = [
    "EventValidator",
]
