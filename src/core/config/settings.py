# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
behavior analytics service. Settings are loaded from environment
variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.behavior.batch_time_budget_seconds
    3600
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational database configuration.

    The database holds both the behavior tables owned by this service
    (sessions, activity logs, snapshots, interventions, audit logs) and
    the academic tables it reads from (users, assignments, grades,
    attendance).

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "behaviorlens"
    password: SecretStr = SecretStr("behaviorlens_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "behaviorlens"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"

    @property
    def sync_url(self) -> str:
        """Build the sync database URL for migrations."""
        pwd = self.password.get_secret_value()
        return f"postgresql://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class RedisSettings(BaseSettings):
    """Redis configuration for the Dramatiq message broker.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr = SecretStr("")
    database: int = 0

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        pwd = self.password.get_secret_value()
        if pwd:
            return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"
        return f"redis://{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """JWT verification configuration.

    Attributes:
        secret_key: Secret key for signing tokens.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Access token expiration time.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr("change-this-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=30,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        workers: Number of worker processes.
        reload: Whether to enable auto-reload.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 2
    reload: bool = False


class WorkerSettings(BaseSettings):
    """Background worker configuration.

    Attributes:
        processes: Number of worker processes.
        threads: Number of threads per process.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKER_",
        extra="ignore",
    )

    processes: int = 1
    threads: int = 1


class BehaviorSettings(BaseSettings):
    """Behavior analytics pipeline configuration.

    Attributes:
        batch_time_budget_seconds: Wall-clock ceiling for the scheduled run.
        request_time_budget_seconds: Wall-clock ceiling for on-demand runs.
        schedule_cron: Cron expression for the weekly recompute.
        scheduler_enabled: Whether the weekly recompute is registered.
        timezone: IANA timezone used for week boundaries and local hours.
        at_risk_default_limit: Default page size for the at-risk listing.
        at_risk_max_limit: Maximum page size for the at-risk listing.
        history_default_weeks: Default number of snapshots in pattern history.
        history_max_weeks: Maximum number of snapshots in pattern history.
        intervention_default_limit: Default page size for interventions.
        intervention_max_limit: Maximum page size for interventions.
        session_history_default_weeks: Default lookback for session history.
        session_history_max_limit: Maximum sessions returned in history.
    """

    model_config = SettingsConfigDict(
        env_prefix="BEHAVIOR_",
        extra="ignore",
    )

    batch_time_budget_seconds: float = 3600.0
    request_time_budget_seconds: float = 300.0
    schedule_cron: str = "0 23 * * 0"
    scheduler_enabled: bool = True
    timezone: str = "UTC"

    at_risk_default_limit: int = 50
    at_risk_max_limit: int = 200
    history_default_weeks: int = 8
    history_max_weeks: int = 52
    intervention_default_limit: int = 50
    intervention_max_limit: int = 100
    session_history_default_weeks: int = 4
    session_history_max_limit: int = 500


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        db: Database settings.
        redis: Redis settings.
        jwt: JWT settings.
        cors: CORS settings.
        api: API server settings.
        worker: Background worker settings.
        behavior: Behavior pipeline settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    behavior: BehaviorSettings = Field(default_factory=BehaviorSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            default_jwt_secret = "change-this-in-production"
            if self.jwt.secret_key.get_secret_value() == default_jwt_secret:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
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
    """
    get_settings.cache_clear()
