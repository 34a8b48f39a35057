"""Application settings loaded from the environment.

Each concern has its own nested model (logging, tracing, database, rate
lookup), read from variables such as ``TAX_CONFIG__DEFAULT_TAX_RATE``.
Values set in the process environment override a ``.env`` file, which
overrides the defaults below. ``get_settings`` caches the result, so tests
clear its cache after changing the environment.

The database URL may be supplied either as ``DATABASE_CONFIG__DATABASE_URL``
or as the conventional ``DATABASE_URL``.
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ASYNC_DRIVER_PREFIX = "postgresql+asyncpg://"
_PLAIN_POSTGRES_PREFIXES = ("postgres://", "postgresql://")


class LogConfig(BaseModel):
    """Logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_formatter_type: Literal["console", "json"] | None = Field(
        default=None,
        description="Log output formatter. Auto-detected if not specified.",
    )
    excluded_paths: list[str] = Field(
        default_factory=lambda: ["/health"],
        description="Paths to exclude from request logging",
    )
    slow_request_threshold_ms: int = Field(
        default=1000,
        gt=0,
        description="Threshold for slow request warnings (milliseconds)",
    )
    enable_sql_logging: bool = Field(
        default=False,
        description="Enable slow SQL query logging",
    )
    slow_query_threshold_ms: int = Field(
        default=100,
        gt=0,
        description="Slow query threshold in milliseconds",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: ["password", "secret", "database_url"],
        description="Field names to redact",
    )


class ObservabilityConfig(BaseModel):
    """OpenTelemetry tracing configuration."""

    enable_tracing: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    exporter_type: Literal["console", "otlp", "none"] = Field(
        default="console",
        description="Trace exporter type. Console routes spans through Loguru.",
    )
    exporter_endpoint: str | None = Field(
        default=None,
        description="OTLP exporter endpoint",
    )
    trace_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Trace sampling rate (0.0 to 1.0)",
    )

    @field_validator("exporter_endpoint", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


def normalize_database_url(url: str) -> str:
    """Rewrite a plain PostgreSQL URL to use the asyncpg driver.

    Args:
        url: Connection URL as found in the environment.

    Returns:
        str: The URL with the ``postgresql+asyncpg://`` scheme.

    Raises:
        ValueError: If the URL is not a PostgreSQL URL.
    """
    if url.startswith(ASYNC_DRIVER_PREFIX):
        return url
    for prefix in _PLAIN_POSTGRES_PREFIXES:
        if url.startswith(prefix):
            return ASYNC_DRIVER_PREFIX + url.removeprefix(prefix)
    msg = "Database URL must be a postgresql:// or postgresql+asyncpg:// URL"
    raise ValueError(msg)


class DatabaseConfig(BaseModel):
    """Database connection, pool and timeout settings."""

    database_url: str | None = Field(
        default=None,
        description="Database connection URL. Required at startup.",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connections kept open in the pool (max idle)",
    )
    max_overflow: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Connections allowed above pool_size (max open = sum)",
    )
    pool_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout in seconds for acquiring a connection from the pool",
    )
    pool_pre_ping: bool = Field(
        default=True,
        description="Whether to test connections before using them",
    )
    echo: bool = Field(
        default=False,
        description="Whether to log SQL statements (use only for debugging)",
    )
    connect_max_attempts: int = Field(
        default=10,
        ge=1,
        description="Ping attempts before giving up at startup",
    )
    connect_retry_interval: float = Field(
        default=2.0,
        ge=0,
        description="Seconds to wait between startup ping attempts",
    )
    connect_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Overall bound in seconds on waiting for the database",
    )
    statement_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for single-statement reads",
    )
    write_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Timeout in seconds for writes and schema creation",
    )

    @field_validator("database_url", mode="after")
    @classmethod
    def validate_database_url(cls, v: str | None) -> str | None:
        """Normalize the URL to the async PostgreSQL driver."""
        if not v:
            return None
        return normalize_database_url(v)


class TaxConfig(BaseModel):
    """Rate lookup behaviour. Immutable once the service has started."""

    model_config = ConfigDict(frozen=True)

    max_municipality_name_length: int = Field(
        default=100,
        gt=0,
        description="Maximum municipality name length in code points",
    )
    default_tax_rate: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Rate returned when no declaration matches; None means 404",
    )
    municipality_path_key: str = Field(
        default="municipality",
        min_length=1,
        description="Path parameter holding the municipality name",
    )
    date_path_key: str = Field(
        default="date",
        min_length=1,
        description="Path parameter holding the query date",
    )


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application settings
    app_name: str = Field(default="TaxMan", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    # API settings
    api_host: str = Field(default="0.0.0.0", description="API host")  # noqa: S104
    api_port: int = Field(default=8080, description="API port")
    docs_url: str | None = Field(default="/docs", description="Swagger UI URL")
    redoc_url: str | None = Field(default=None, description="ReDoc URL")
    openapi_url: str | None = Field(
        default="/openapi.json", description="OpenAPI schema URL"
    )

    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )
    observability_config: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Observability configuration"
    )
    database_config: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    tax_config: TaxConfig = Field(
        default_factory=TaxConfig, description="Rate lookup configuration"
    )

    def model_post_init(self, __context: object) -> None:
        """Fill in environment-derived defaults."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = self._detect_formatter()

        if self.database_config.database_url is None:
            if plain_url := os.getenv("DATABASE_URL"):
                self.database_config.database_url = normalize_database_url(
                    plain_url
                )

    def _detect_formatter(self) -> Literal["console", "json"]:
        """Auto-detect log formatter based on environment."""
        if self.environment == "development":
            return "console"
        return "json"

    @field_validator("docs_url", "redoc_url", "openapi_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        _ = cls
        if v == "":
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
