"""
Tool Registry.

Maps tool ids to invocable capabilities and resolves data requirements to
tools. Resolution uses explicit capability tags first and falls back to
substring matching on tool ids for tools registered without tags.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Protocol, runtime_checkable

from src.executor.errors import ToolNotFoundError
from src.executor.models import DataRequirement, RequirementType

logger = logging.getLogger(__name__)


# Substring hints used when no tagged tool matches
FALLBACK_KEYWORDS: dict[RequirementType, tuple[str, ...]] = {
    RequirementType.DATABASE_QUERY: ("supabase", "postgres", "sql"),
    RequirementType.SEMANTIC_SEARCH: ("search", "knowledge", "vector"),
    RequirementType.API_CALL: ("api", "fetch", "http"),
    RequirementType.TOOL_EXECUTION: ("execute",),
}


@runtime_checkable
class Tool(Protocol):
    """Invocable capability: ``execute(input) -> {data, insights?}``."""

    name: str
    description: str

    async def execute(self, input: dict[str, Any]) -> Any:
        ...


@dataclass(frozen=True)
class ToolCapability:
    """Capability tag attached to a registered tool."""

    type: RequirementType
    id: str


class FunctionTool:
    """Adapts a plain sync or async callable to the Tool protocol."""

    def __init__(
        self,
        name: str,
        func: Callable[[dict[str, Any]], Any] | Callable[[dict[str, Any]], Awaitable[Any]],
        description: str = "",
    ):
        self.name = name
        self.description = description or (func.__doc__ or "").strip()
        self._func = func

    async def execute(self, input: dict[str, Any]) -> Any:
        result = self._func(input)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionTool(name={self.name})"


class ToolRegistry:
    """
    Registry of tools available to the executor.

    Usage:
        registry = ToolRegistry()
        registry.register(tool, capabilities=[RequirementType.DATABASE_QUERY])
        tool_id = registry.resolve(requirement)
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}
        self._capabilities: list[ToolCapability] = []

    def register(
        self,
        tool: Tool,
        capabilities: Iterable[RequirementType | str] = (),
        *,
        tool_id: str | None = None,
    ) -> str:
        """
        Register a tool under ``tool_id`` (defaults to ``tool.name``).

        Args:
            tool: Tool instance
            capabilities: Requirement types this tool can satisfy
            tool_id: Optional explicit id

        Returns:
            The id the tool was registered under
        """
        key = tool_id or tool.name
        if not key:
            raise ValueError("Tool id must be a non-empty string")
        if key in self._tools:
            logger.warning(f"[Registry] Replacing tool '{key}'")
            self._capabilities = [c for c in self._capabilities if c.id != key]
        self._tools[key] = tool
        for cap in capabilities:
            self._capabilities.append(ToolCapability(type=RequirementType(cap), id=key))
        return key

    def register_function(
        self,
        name: str,
        func: Callable[[dict[str, Any]], Any],
        capabilities: Iterable[RequirementType | str] = (),
        description: str = "",
    ) -> str:
        """Shortcut for registering a callable."""
        return self.register(FunctionTool(name, func, description), capabilities)

    def get(self, tool_id: str) -> Tool:
        try:
            return self._tools[tool_id]
        except KeyError:
            raise ToolNotFoundError(tool_id) from None

    def tool_ids(self) -> list[str]:
        return list(self._tools)

    def capabilities_for(self, tool_id: str) -> list[RequirementType]:
        return [c.type for c in self._capabilities if c.id == tool_id]

    def describe(self) -> list[dict[str, Any]]:
        """List registered tools with their capability tags."""
        return [
            {
                "id": tool_id,
                "description": getattr(tool, "description", ""),
                "capabilities": [c.value for c in self.capabilities_for(tool_id)],
            }
            for tool_id, tool in self._tools.items()
        ]

    def resolve(self, requirement: DataRequirement) -> str | None:
        """
        Pick a tool id for a data requirement, or None.

        Tagged tools are matched exactly on requirement type; for
        tool_execution a tagged tool whose id equals the requirement source
        wins. Otherwise fall back to substring matching on the ids of
        untagged tools.
        """
        tagged = [c.id for c in self._capabilities if c.type is requirement.type]
        if tagged:
            if requirement.type is RequirementType.TOOL_EXECUTION and requirement.source in tagged:
                return requirement.source
            return tagged[0]
        return self._resolve_by_name(requirement)

    def _resolve_by_name(self, requirement: DataRequirement) -> str | None:
        keywords = FALLBACK_KEYWORDS[requirement.type]
        if requirement.type is RequirementType.TOOL_EXECUTION and requirement.source:
            keywords = (requirement.source, *keywords)
        tagged_ids = {c.id for c in self._capabilities}
        untagged = [tool_id for tool_id in self._tools if tool_id not in tagged_ids]
        # Keyword order decides precedence
        for keyword in keywords:
            for tool_id in untagged:
                if keyword in tool_id:
                    logger.debug(f"[Registry] Fallback match {requirement.type.value} -> {tool_id}")
                    return tool_id
        return None

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={self.tool_ids()})"
