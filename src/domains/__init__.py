# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for LearnTrace.

Domains:
    validation: Raw event normalisation and validation.
    consent: Consent gate and consent registry.
    progress: Per-student progress ledger and completion rule.
    mastery: Mastery and comprehension scoring.
    analytics: k-anonymous, optionally differentially private cohort aggregates.
    adaptation: Difficulty and content adaptation state machine.
    engine: Pipeline facade tying the domains together.
"""
