import pytest

from src.executor import (
    DataCollector,
    DataRequirement,
    ExecutionState,
    RequirementType,
    RetryPolicy,
    assess_data_quality,
)
from src.mcp import ToolRegistry
from tests.fakes import FailingTool, RecordingTool

NO_RETRY = RetryPolicy(attempts=1, backoff_multiplier=0.0, backoff_max=0.0)


def requirement(source: str, type: RequirementType, **parameters) -> DataRequirement:
    return DataRequirement(source=source, type=type, parameters=parameters)


def test_quality_heuristic():
    assert assess_data_quality({}) == 0.5
    assert assess_data_quality({"rows": []}) == pytest.approx(0.7)
    assert assess_data_quality({"success": True}) == pytest.approx(0.9)
    assert assess_data_quality({"success": True, "result": "12 rows"}) == pytest.approx(1.0)
    assert assess_data_quality({"success": "yes", "result": ""}) == pytest.approx(0.7)


@pytest.mark.asyncio
async def test_collects_and_scores_each_requirement():
    registry = ToolRegistry()
    sql = RecordingTool("warehouse_sql")
    registry.register(sql, capabilities=[RequirementType.DATABASE_QUERY])

    state = ExecutionState.fresh()
    results = await DataCollector(registry, NO_RETRY).collect(
        [requirement("sales", RequirementType.DATABASE_QUERY, query="select 1")], state
    )

    assert len(results) == 1
    result = results[0]
    assert result.data_source == "sales"
    assert result.tool_id == "warehouse_sql"
    assert result.quality_score == pytest.approx(1.0)
    assert result.errors is None
    assert state.collected_data["sales"] == {"success": True, "result": "warehouse_sql ok"}
    assert sql.calls == [{"query": "select 1"}]


@pytest.mark.asyncio
async def test_missing_tool_is_recorded_not_raised():
    state = ExecutionState.fresh()
    results = await DataCollector(ToolRegistry(), NO_RETRY).collect(
        [requirement("docs", RequirementType.SEMANTIC_SEARCH)], state
    )

    assert results[0].quality_score == 0
    assert results[0].errors == ("No suitable tool found for requirement type: semantic_search",)
    assert results[0].tool_id is None
    assert state.collected_data["docs"] == {}


@pytest.mark.asyncio
async def test_tool_exception_becomes_zero_quality_result():
    registry = ToolRegistry()
    registry.register(FailingTool("crm_api", message="503 upstream"), capabilities=["api_call"])

    state = ExecutionState.fresh()
    results = await DataCollector(registry, NO_RETRY).collect(
        [requirement("crm", RequirementType.API_CALL)], state
    )

    assert results[0].quality_score == 0
    assert results[0].errors == ("503 upstream",)
    assert "crm" in state.collected_data


@pytest.mark.asyncio
async def test_low_quality_data_is_flagged_and_still_stored():
    registry = ToolRegistry()
    registry.register(RecordingTool("empty_sql", result={}), capabilities=["database_query"])

    state = ExecutionState.fresh()
    results = await DataCollector(registry, NO_RETRY).collect(
        [requirement("sales", RequirementType.DATABASE_QUERY)], state
    )

    # 0.5 is not below the threshold
    assert results[0].quality_score == 0.5
    assert results[0].errors is None
    assert state.collected_data["sales"] == {}


@pytest.mark.asyncio
async def test_one_result_per_requirement_in_plan_order(registry):
    requirements = [
        requirement("sales", RequirementType.DATABASE_QUERY),
        requirement("docs", RequirementType.SEMANTIC_SEARCH),
        requirement("trend_analyzer", RequirementType.TOOL_EXECUTION),
    ]
    for parallel in (False, True):
        state = ExecutionState.fresh()
        results = await DataCollector(registry, NO_RETRY, parallel=parallel).collect(
            requirements, state
        )
        assert [r.data_source for r in results] == ["sales", "docs", "trend_analyzer"]
        assert [r.tool_id for r in results] == ["warehouse_sql", None, "trend_analyzer"]
        assert list(state.collected_data) == ["sales", "docs", "trend_analyzer"]


@pytest.mark.asyncio
async def test_duplicate_source_keeps_last_data():
    registry = ToolRegistry()
    registry.register(RecordingTool("sql", result={"v": 1}), capabilities=["database_query"])
    registry.register(RecordingTool("http", result={"v": 2}), capabilities=["api_call"])

    state = ExecutionState.fresh()
    results = await DataCollector(registry, NO_RETRY).collect(
        [
            requirement("sales", RequirementType.DATABASE_QUERY),
            requirement("sales", RequirementType.API_CALL),
        ],
        state,
    )

    assert len(results) == 2
    assert state.collected_data == {"sales": {"v": 2}}
