"""MCP tools module."""

from .http_fetch import HTTPFetchTool
from .sql_executor import SQLExecutor

__all__ = [
    "HTTPFetchTool",
    "SQLExecutor",
]
