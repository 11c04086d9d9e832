# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for LearnTrace.

This package contains shared foundations used by every domain:
- config: Engine configuration and settings
- exceptions: Error taxonomy
"""
