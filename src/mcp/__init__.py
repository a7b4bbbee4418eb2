"""MCP tool integration module."""

from .registry import FunctionTool, Tool, ToolCapability, ToolRegistry
from .server import MCPServer, build_default_registry
from .tools import HTTPFetchTool, SQLExecutor

__all__ = [
    "FunctionTool",
    "Tool",
    "ToolCapability",
    "ToolRegistry",
    "MCPServer",
    "build_default_registry",
    "HTTPFetchTool",
    "SQLExecutor",
]
