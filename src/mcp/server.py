"""
MCP Server integration.

Owns the built-in tools and exposes them to the executor through a
ToolRegistry.
"""

from __future__ import annotations

import logging

from config import Settings, config
from src.executor.models import RequirementType

from .registry import ToolRegistry
from .tools import HTTPFetchTool, SQLExecutor

logger = logging.getLogger(__name__)


class MCPServer:
    """
    Built-in tool host.

    Registers:
    - SQL execution (database_query)
    - HTTP fetch (api_call)

    Host applications add their own tools (semantic search, custom
    executors) to ``server.registry``.
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize MCP server."""
        self.settings = settings or config
        self.registry = ToolRegistry()
        self.sql = SQLExecutor(self.settings.postgres)
        self.http = HTTPFetchTool(self.settings.http_tool)
        self._register_tools()

    def _register_tools(self) -> None:
        """Register available tools."""
        self.registry.register(self.sql, capabilities=[RequirementType.DATABASE_QUERY])
        self.registry.register(self.http, capabilities=[RequirementType.API_CALL])
        logger.info(f"[MCP] Registered tools: {self.registry.tool_ids()}")

    async def close(self) -> None:
        """Release tool resources."""
        await self.sql.close()
        await self.http.close()


def build_default_registry(settings: Settings | None = None) -> ToolRegistry:
    """Registry with the built-in tools only."""
    return MCPServer(settings).registry
