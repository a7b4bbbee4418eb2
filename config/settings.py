"""
BI Executor Configuration Module.

Centralized configuration using Pydantic Settings.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExecutorConfig(BaseSettings):
    """Plan execution configuration."""

    model_config = SettingsConfigDict(env_prefix="EXECUTOR_")

    retry_attempts: int = Field(default=3, ge=1, description="Max attempts per tool call")
    retry_backoff_multiplier: float = Field(
        default=0.5, ge=0, description="Exponential backoff multiplier (seconds)"
    )
    retry_backoff_min: float = Field(default=0.0, ge=0, description="Minimum backoff (seconds)")
    retry_backoff_max: float = Field(default=8.0, ge=0, description="Maximum backoff (seconds)")
    tool_timeout_ms: int = Field(default=30_000, ge=0, description="Per-attempt tool timeout")
    timeout_ms: int = Field(default=180_000, ge=0, description="Whole-run deadline, 0 = none")
    parallel_tool_calls: bool = Field(
        default=False, description="Run data requirements and step tool calls concurrently"
    )


class PostgresConfig(BaseSettings):
    """PostgreSQL database configuration."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="bi_executor", description="PostgreSQL username")
    password: str = Field(default="", description="PostgreSQL password")
    db: str = Field(default="bi_executor", description="PostgreSQL database name")
    max_rows: int = Field(default=10_000, description="Row cap applied to SELECT queries")
    statement_timeout_seconds: int = Field(default=30, description="Server-side statement timeout")

    @property
    def connection_string(self) -> str:
        """Get asyncpg connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"


class HTTPToolConfig(BaseSettings):
    """Outbound HTTP tool configuration."""

    model_config = SettingsConfigDict(env_prefix="HTTP_TOOL_")

    base_url: str = Field(default="", description="Base URL prepended to relative paths")
    timeout_seconds: float = Field(default=15.0, description="Request timeout")


class APIConfig(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=8000, description="API port")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sub-configs
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    http_tool: HTTPToolConfig = Field(default_factory=HTTPToolConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="json", description="Logging format"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global config instance
config = get_settings()
