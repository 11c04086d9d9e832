# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for external collaborators.

This package contains:
- Collaborator protocols with in-memory and YAML implementations
- Progress store database (SQLAlchemy async)
- Directive cache (Redis)
- In-process event bus for notifications and consent changes
"""
