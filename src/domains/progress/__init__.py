# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress tracking domain.

ProgressLedger applies validated, consented interaction events to
per-student progress states; CompletionRule decides when a section is
complete.
"""

from src.domains.progress.completion import CompletionRule
from src.domains.progress.ledger import ProgressLedger

__all__ = [
    "ProgressLedger",
    "CompletionRule",
]
