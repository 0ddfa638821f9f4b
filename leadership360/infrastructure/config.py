"""
Centralized configuration management for the leadership assessment engine.

Provides environment-specific configuration with validation and type safety
using pydantic-settings. Each section reads its own environment prefix.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseSettings):
    """
    Database configuration settings.

    Handles both SQLite and PostgreSQL configurations with validation
    and connection URL generation.

    Example:
        >>> db_config = DatabaseConfig(backend="sqlite", sqlite_path="./test.db")
        >>> db_config.get_connection_url()
        'sqlite:///./test.db'
    """

    backend: Literal["sqlite", "postgresql"] = Field("sqlite", description="Database backend type")

    sqlite_path: str | None = Field("./leadership360.db", description="SQLite database file path")

    postgres_host: str | None = Field("localhost", description="PostgreSQL host")
    postgres_port: int | None = Field(5432, ge=1, le=65535, description="PostgreSQL port")
    postgres_user: str | None = Field("postgres", description="PostgreSQL username")
    postgres_password: str | None = Field("", description="PostgreSQL password")
    postgres_database: str | None = Field("leadership360", description="PostgreSQL database name")

    pool_pre_ping: bool = Field(True, description="Enable connection pool pre-ping")
    pool_recycle: int = Field(3600, ge=60, description="Connection pool recycle time (seconds)")
    echo: bool = Field(False, description="Enable SQL query logging")

    model_config = {"env_prefix": "DB_", "case_sensitive": False}

    @field_validator("sqlite_path")
    def validate_sqlite_path(cls, v):
        """Ensure a .db suffix on file-backed SQLite paths."""
        if v and v != ":memory:":
            path = Path(v)
            if not path.suffix:
                v = str(path.with_suffix(".db"))
        return v

    @model_validator(mode="after")
    def validate_postgres_config(self):
        """Validate PostgreSQL configuration completeness."""
        if self.backend == "postgresql":
            missing = []
            if not self.postgres_host:
                missing.append("postgres_host")
            if not self.postgres_user:
                missing.append("postgres_user")
            if not self.postgres_database:
                missing.append("postgres_database")
            if missing:
                raise ValueError(f"PostgreSQL backend requires: {', '.join(missing)}")
        return self

    def get_connection_url(self) -> str:
        """
        Generate database connection URL.

        Raises:
            ValueError: If backend is unsupported
        """
        if self.backend == "sqlite":
            return f"sqlite:///{self.sqlite_path}"
        elif self.backend == "postgresql":
            password_part = f":{self.postgres_password}" if self.postgres_password else ""
            return (
                f"postgresql+psycopg://{self.postgres_user}{password_part}@{self.postgres_host}:"
                f"{self.postgres_port}/{self.postgres_database}"
            )
        else:
            raise ValueError(f"Unsupported database backend: {self.backend}")

    def get_engine_options(self) -> dict[str, Any]:
        """Get SQLAlchemy engine options."""
        return {
            "echo": self.echo,
            "pool_pre_ping": self.pool_pre_ping,
            "pool_recycle": self.pool_recycle,
        }


class LoggingConfig(BaseSettings):
    """Logging levels, output format and file destination."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Minimum logging level"
    )
    file_path: str | None = Field("./logs/leadership360.log", description="Log file path")
    max_bytes: int = Field(10 * 1024 * 1024, ge=1024, description="Max log file size in bytes")
    backup_count: int = Field(5, ge=1, description="Number of backup log files")
    structured: bool = Field(True, description="Use structured JSON logging")
    console_enabled: bool = Field(True, description="Enable console output")

    model_config = {"env_prefix": "LOG_", "case_sensitive": False}


class AssessmentConfig(BaseSettings):
    """
    Scoring engine settings.

    Example:
        >>> AssessmentConfig(catalog_version="v1").catalog_version
        'v1'
    """

    catalog_version: Literal["v1", "v2"] = Field(
        "v2", description="Question catalog version used for new computations"
    )
    top_n: int = Field(
        3, ge=1, le=10, description="Length of the strengths, opportunities and gaps lists"
    )

    model_config = {"env_prefix": "ASSESSMENT_", "case_sensitive": False}


class ApplicationConfig(BaseSettings):
    """Environment, debug flag and version."""

    environment: Literal["development", "testing", "production"] = Field(
        "development", description="Application environment"
    )
    debug: bool = Field(False, description="Enable debug mode")
    version: str = Field("0.1.0", description="Application version")

    model_config = {"env_prefix": "APP_", "case_sensitive": False}

    @model_validator(mode="after")
    def debug_implies_development(self):
        """Ensure debug mode is never enabled in production."""
        if self.debug and self.environment == "production":
            raise ValueError("Debug mode cannot be enabled in production")
        return self


class Settings:
    """
    Complete application settings container with lazily built sections.

    Example:
        >>> settings = get_settings()
        >>> settings.assessment.catalog_version
        'v2'
    """

    def __init__(self):
        self._app: ApplicationConfig | None = None
        self._database: DatabaseConfig | None = None
        self._logging: LoggingConfig | None = None
        self._assessment: AssessmentConfig | None = None

    @property
    def app(self) -> ApplicationConfig:
        if self._app is None:
            self._app = ApplicationConfig()
        return self._app

    @property
    def database(self) -> DatabaseConfig:
        if self._database is None:
            self._database = DatabaseConfig()
        return self._database

    @property
    def logging(self) -> LoggingConfig:
        if self._logging is None:
            overrides: dict[str, Any] = {"level": "DEBUG" if self.app.debug else "INFO"}
            if self.app.environment == "production":
                overrides["level"] = "WARNING"
            elif self.app.environment == "testing":
                overrides.update(level="WARNING", file_path=None, console_enabled=False)
            self._logging = LoggingConfig(**overrides)
        return self._logging

    @property
    def assessment(self) -> AssessmentConfig:
        if self._assessment is None:
            self._assessment = AssessmentConfig()
        return self._assessment

    def get_environment_info(self) -> dict[str, Any]:
        """Get summary of current environment configuration."""
        return {
            "environment": self.app.environment,
            "version": self.app.version,
            "debug": self.app.debug,
            "database_backend": self.database.backend,
            "logging_level": self.logging.level,
            "assessment": {
                "catalog_version": self.assessment.catalog_version,
                "top_n": self.assessment.top_n,
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached application settings instance."""
    return Settings()


def load_settings_from_file(file_path: str) -> Settings:
    """
    Load settings from a JSON configuration file.

    Each top-level section maps onto an environment prefix, e.g.
    ``{"assessment": {"top_n": 5}}`` sets ``ASSESSMENT_TOP_N``.

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        ValueError: If file format is unsupported
    """
    config_path = Path(file_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    if config_path.suffix.lower() != ".json":
        raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

    with open(config_path, encoding="utf-8") as f:
        config_data = json.load(f)

    prefixes = {"app": "APP", "database": "DB", "logging": "LOG", "assessment": "ASSESSMENT"}
    for section, values in config_data.items():
        if isinstance(values, dict):
            prefix = prefixes.get(section, section.upper())
            for key, value in values.items():
                os.environ[f"{prefix}_{key.upper()}"] = str(value)

    get_settings.cache_clear()
    return get_settings()


def override_settings(**kwargs: Any) -> Settings:
    """
    Override settings through environment variables, mainly for tests.

    Example:
        >>> settings = override_settings(app_environment="testing", assessment_top_n=5)
    """
    for key, value in kwargs.items():
        os.environ[key.upper()] = str(value)

    get_settings.cache_clear()
    return get_settings()


def reset_settings() -> None:
    """Reset settings cache to reload from environment."""
    get_settings.cache_clear()
