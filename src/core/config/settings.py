# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Engine configuration settings using Pydantic Settings.

This module provides centralized configuration management for LearnTrace.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A cached instance is provided via get_settings(); engine components receive
their subsettings explicitly so tests can build them directly.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.completion.min_time_on_task_ms
    120000
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_AGGREGATOR_SECRET = "change-this-in-production"

# Hard bound on adaptation steps, independent of configuration.
DIFFICULTY_DELTA_LIMIT = 2


class ValidationSettings(BaseSettings):
    """Event validation configuration.

    Attributes:
        future_skew_seconds: Maximum allowed clock skew into the future.
        retention_horizon_days: Events older than this are rejected.
        max_student_ref_length: Maximum length of an opaque student ref.
    """

    model_config = SettingsConfigDict(
        env_prefix="VALIDATION_",
        extra="ignore",
    )

    future_skew_seconds: int = Field(default=300, ge=0)
    retention_horizon_days: int = Field(default=30, ge=1)
    max_student_ref_length: int = Field(default=128, ge=1)


class ConsentSettings(BaseSettings):
    """Consent gate configuration.

    Attributes:
        expiry_grace_seconds: Grace period after consent expiry. Zero keeps
            the gate fail-closed.
        behavioral_fields: Payload fields only retained at the enhanced tier.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONSENT_",
        extra="ignore",
    )

    expiry_grace_seconds: int = Field(default=0, ge=0)
    behavioral_fields: list[str] = [
        "hesitation_ms",
        "answer_changes",
        "scroll_depth",
        "focus_losses",
    ]


class CompletionSettings(BaseSettings):
    """Section completion thresholds.

    Attributes:
        min_time_on_task_ms: Minimum time on a section before completion.
        min_interactions: Minimum interactions for non-beginner objectives.
        beginner_min_interactions: Minimum interactions for beginner objectives.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMPLETION_",
        extra="ignore",
    )

    min_time_on_task_ms: int = Field(default=120_000, ge=0)
    min_interactions: int = Field(default=2, ge=1)
    beginner_min_interactions: int = Field(default=3, ge=1)


class MasterySettings(BaseSettings):
    """Mastery scoring weights and thresholds.

    The three weights are maximum point contributions and should sum
    to 100.

    Attributes:
        engagement_weight: Points available from time engagement.
        quality_weight: Points available from interaction depth.
        evidence_weight: Points available from assessment evidence.
        expected_time_per_section_ms: Time that saturates engagement.
        evidence_saturation: Assessed attempts for full evidence confidence.
        high_threshold: Minimum score for high comprehension.
        medium_threshold: Minimum score for medium comprehension.
    """

    model_config = SettingsConfigDict(
        env_prefix="MASTERY_",
        extra="ignore",
    )

    engagement_weight: float = Field(default=20.0, ge=0.0)
    quality_weight: float = Field(default=30.0, ge=0.0)
    evidence_weight: float = Field(default=50.0, ge=0.0)
    expected_time_per_section_ms: int = Field(default=300_000, ge=1)
    evidence_saturation: int = Field(default=5, ge=1)
    high_threshold: float = Field(default=75.0, ge=0.0, le=100.0)
    medium_threshold: float = Field(default=45.0, ge=0.0, le=100.0)


class LedgerSettings(BaseSettings):
    """Progress ledger configuration.

    Attributes:
        lock_timeout_seconds: Wait for a per-key lock before reporting a
            concurrency conflict.
        history_limit: Maximum interaction records retained per progress key.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore",
    )

    lock_timeout_seconds: float = Field(default=5.0, gt=0)
    history_limit: int = Field(default=2000, ge=10)


class AggregationSettings(BaseSettings):
    """Anonymized cohort aggregation configuration.

    Attributes:
        k_anonymity: Minimum distinct contributors before release.
        dp_enabled: Whether Laplace noise is applied to releases.
        epsilon: Privacy budget spent per release (split across metrics).
        epoch_seconds: Release epoch length; zero disables time-based epochs.
        max_contribution_ms: Per-student cap on time contributed to a cohort.
        noise_seed: Optional seed for reproducible noise.
        secret: Key for contributor tokens.
    """

    model_config = SettingsConfigDict(
        env_prefix="AGGREGATION_",
        extra="ignore",
    )

    k_anonymity: int = Field(default=5, ge=1)
    dp_enabled: bool = False
    epsilon: float = Field(default=1.0, gt=0)
    epoch_seconds: int = Field(default=86_400, ge=0)
    max_contribution_ms: int = Field(default=3_600_000, ge=1)
    noise_seed: int | None = None
    secret: SecretStr = SecretStr(DEFAULT_AGGREGATOR_SECRET)


class AdaptationSettings(BaseSettings):
    """Adaptation state machine configuration.

    Attributes:
        assessment_min_attempts: Attempts needed to leave Assessing.
        reinforce_attempt_threshold: Attempts above which low comprehension
            triggers reinforcement.
        advance_mastery_threshold: Mastery needed to advance.
        max_difficulty_delta: Bound on the recommended difficulty delta.
    """

    model_config = SettingsConfigDict(
        env_prefix="ADAPTATION_",
        extra="ignore",
    )

    assessment_min_attempts: int = Field(default=2, ge=0)
    reinforce_attempt_threshold: int = Field(default=3, ge=0)
    advance_mastery_threshold: float = Field(default=80.0, ge=0.0, le=100.0)
    max_difficulty_delta: int = Field(default=2, ge=0, le=DIFFICULTY_DELTA_LIMIT)


class CollaboratorSettings(BaseSettings):
    """External collaborator call configuration.

    Attributes:
        timeout_seconds: Timeout for course, consent and store calls.
    """

    model_config = SettingsConfigDict(
        env_prefix="COLLABORATOR_",
        extra="ignore",
    )

    timeout_seconds: float = Field(default=2.0, gt=0)


class DatabaseSettings(BaseSettings):
    """Progress store database configuration.

    Attributes:
        url: SQLAlchemy async database URL.
        pool_size: Connection pool size (ignored for SQLite).
        echo: Whether to log SQL statements.
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        extra="ignore",
    )

    url: str = "sqlite+aiosqlite:///./learntrace.db"
    pool_size: int = 10
    echo: bool = False


class RedisSettings(BaseSettings):
    """Redis configuration for the directive cache.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
        directive_ttl_seconds: Time-to-live for cached directives.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    database: int = 0
    directive_ttl_seconds: int = 300

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        if self.password is not None:
            pwd = self.password.get_secret_value()
            return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"
        return f"redis://{self.host}:{self.port}/{self.database}"


class Settings(BaseSettings):
    """Main engine settings aggregating all subsettings.

    Use get_settings() to obtain a cached instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        validation: Event validation settings.
        consent: Consent gate settings.
        completion: Completion thresholds.
        mastery: Mastery scoring settings.
        ledger: Progress ledger settings.
        aggregation: Cohort aggregation settings.
        adaptation: Adaptation engine settings.
        collaborators: Collaborator call settings.
        database: Progress store database settings.
        redis: Directive cache settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    consent: ConsentSettings = Field(default_factory=ConsentSettings)
    completion: CompletionSettings = Field(default_factory=CompletionSettings)
    mastery: MasterySettings = Field(default_factory=MasterySettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    adaptation: AdaptationSettings = Field(default_factory=AdaptationSettings)
    collaborators: CollaboratorSettings = Field(default_factory=CollaboratorSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.aggregation.secret.get_secret_value() == DEFAULT_AGGREGATOR_SECRET:
                raise ValueError(
                    "Aggregator secret must be changed from default in production. "
                    "Set AGGREGATION_SECRET environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
