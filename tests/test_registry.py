import pytest

from src.executor import DataRequirement, RequirementType, ToolNotFoundError
from src.mcp import FunctionTool, Tool, ToolRegistry
from tests.fakes import RecordingTool


def req(type: str, source: str = "src") -> DataRequirement:
    return DataRequirement(source=source, type=RequirementType(type))


def test_tagged_tools_resolve_by_type():
    registry = ToolRegistry()
    registry.register(RecordingTool("warehouse"), capabilities=["database_query"])
    registry.register(RecordingTool("kb"), capabilities=[RequirementType.SEMANTIC_SEARCH])

    assert registry.resolve(req("database_query")) == "warehouse"
    assert registry.resolve(req("semantic_search")) == "kb"
    assert registry.resolve(req("api_call")) is None


def test_tool_execution_prefers_tool_named_after_source():
    registry = ToolRegistry()
    registry.register(RecordingTool("forecast"), capabilities=["tool_execution"])
    registry.register(RecordingTool("cohorts"), capabilities=["tool_execution"])

    assert registry.resolve(req("tool_execution", source="cohorts")) == "cohorts"
    assert registry.resolve(req("tool_execution", source="unknown")) == "forecast"


def test_untagged_tools_fall_back_to_name_matching():
    registry = ToolRegistry()
    registry.register(RecordingTool("supabase_reader"))
    registry.register(RecordingTool("vector_search"))
    registry.register(RecordingTool("http_fetcher"))
    registry.register(RecordingTool("execute_notebook"))

    assert registry.resolve(req("database_query")) == "supabase_reader"
    assert registry.resolve(req("semantic_search")) == "vector_search"
    assert registry.resolve(req("api_call")) == "http_fetcher"
    assert registry.resolve(req("tool_execution")) == "execute_notebook"


def test_tool_execution_fallback_matches_source_first():
    registry = ToolRegistry()
    registry.register(RecordingTool("execute_anything"))
    registry.register(RecordingTool("churn_model_v2"))

    assert registry.resolve(req("tool_execution", source="churn_model")) == "churn_model_v2"


def test_tagged_tools_are_not_picked_by_name_for_other_types():
    registry = ToolRegistry()
    registry.register(RecordingTool("sql_api_bridge"), capabilities=["database_query"])

    assert registry.resolve(req("api_call")) is None


def test_register_replaces_and_drops_old_tags():
    registry = ToolRegistry()
    registry.register(RecordingTool("t"), capabilities=["database_query"])
    replacement = RecordingTool("t")
    registry.register(replacement, capabilities=["api_call"])

    assert len(registry) == 1
    assert registry.get("t") is replacement
    assert registry.capabilities_for("t") == [RequirementType.API_CALL]
    assert registry.resolve(req("database_query")) is None


def test_register_rejects_unknown_capability():
    with pytest.raises(ValueError):
        ToolRegistry().register(RecordingTool("t"), capabilities=["teleport"])


def test_get_unknown_tool_raises():
    with pytest.raises(ToolNotFoundError, match="Tool not found: nope"):
        ToolRegistry().get("nope")


def test_describe_lists_capabilities():
    registry = ToolRegistry()
    registry.register(RecordingTool("warehouse", description="SQL"), capabilities=["database_query"])

    assert registry.describe() == [
        {"id": "warehouse", "description": "SQL", "capabilities": ["database_query"]}
    ]
    assert "warehouse" in registry


@pytest.mark.asyncio
async def test_function_tools_accept_sync_and_async_callables():
    def add(input):
        """Adds a and b."""
        return {"data": {"sum": input["a"] + input["b"]}}

    async def echo(input):
        return input

    registry = ToolRegistry()
    registry.register_function("add", add, capabilities=["tool_execution"])
    registry.register_function("echo", echo)

    add_tool = registry.get("add")
    assert isinstance(add_tool, Tool)
    assert isinstance(add_tool, FunctionTool)
    assert add_tool.description == "Adds a and b."
    assert await add_tool.execute({"a": 1, "b": 2}) == {"data": {"sum": 3}}
    assert await registry.get("echo").execute({"x": 1}) == {"x": 1}
