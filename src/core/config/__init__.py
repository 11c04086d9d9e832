# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for LearnTrace.

This package provides centralized configuration management:
- Settings: Pydantic-based settings loaded from environment variables
- YAML loader: Utilities for loading YAML course definition files

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.aggregation.k_anonymity
    5
"""

from src.core.config.settings import (
    DIFFICULTY_DELTA_LIMIT,
    AdaptationSettings,
    AggregationSettings,
    CollaboratorSettings,
    CompletionSettings,
    ConsentSettings,
    DatabaseSettings,
    LedgerSettings,
    MasterySettings,
    RedisSettings,
    Settings,
    ValidationSettings,
    clear_settings_cache,
    get_settings,
)
from src.core.config.yaml_loader import (
    YAMLLoadError,
    load_yaml,
    load_yaml_directory,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "DIFFICULTY_DELTA_LIMIT",
    # Subsettings
    "ValidationSettings",
    "ConsentSettings",
    "CompletionSettings",
    "MasterySettings",
    "LedgerSettings",
    "AggregationSettings",
    "AdaptationSettings",
    "CollaboratorSettings",
    "DatabaseSettings",
    "RedisSettings",
    # YAML utilities
    "load_yaml",
    "load_yaml_directory",
    "YAMLLoadError",
]
