"""Configuration module."""

from .settings import (
    APIConfig,
    ExecutorConfig,
    HTTPToolConfig,
    PostgresConfig,
    Settings,
    config,
    get_settings,
)

__all__ = [
    "APIConfig",
    "ExecutorConfig",
    "HTTPToolConfig",
    "PostgresConfig",
    "Settings",
    "config",
    "get_settings",
]
