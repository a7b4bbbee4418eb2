import pytest

from src.executor import (
    AnalysisStep,
    RetryPolicy,
    StepExecutor,
    StepStatus,
    ToolCall,
    classify_step,
)
from src.mcp import ToolRegistry
from tests.fakes import FailingTool, RecordingTool

NO_RETRY = RetryPolicy(attempts=1, backoff_multiplier=0.0, backoff_max=0.0)


def analysis_step(step_id: str, *tool_ids: str, step_type: str = "analysis") -> AnalysisStep:
    return AnalysisStep(
        step_id=step_id,
        step_type=step_type,
        tool_calls=tuple(ToolCall(tool_id=t, parameters={"metric": "revenue"}) for t in tool_ids),
    )


@pytest.mark.parametrize(
    "successful,total,expected",
    [
        (0, 0, StepStatus.FAILED),
        (0, 3, StepStatus.FAILED),
        (1, 3, StepStatus.PARTIAL),
        (2, 3, StepStatus.PARTIAL),
        (3, 3, StepStatus.COMPLETED),
        (1, 1, StepStatus.COMPLETED),
    ],
)
def test_classify_step(successful, total, expected):
    assert classify_step(successful, total) is expected


@pytest.mark.asyncio
async def test_all_tools_succeed():
    registry = ToolRegistry()
    trend = RecordingTool("trend", insights=["Q3 down 12%", "EMEA worst"])
    registry.register(trend)

    collected = {"sales": {"rows": 3}}
    result = await StepExecutor(registry, NO_RETRY).execute_step(
        analysis_step("s1", "trend"), collected
    )

    assert result.status is StepStatus.COMPLETED
    assert result.data_quality_score == 1.0
    assert result.confidence_in_results == 1.0
    assert result.derived_insights == ("Q3 down 12%", "EMEA worst")
    assert result.next_step_recommendations == ("Generate visualizations for key findings",)
    assert trend.calls == [{"metric": "revenue", "available_data": collected}]


@pytest.mark.asyncio
async def test_partial_step_keeps_going_after_failure():
    registry = ToolRegistry()
    registry.register(FailingTool("broken", message="division by zero"))
    registry.register(RecordingTool("trend", insights=["still useful"]))

    result = await StepExecutor(registry, NO_RETRY).execute_step(
        analysis_step("s1", "broken", "trend"), {}
    )

    assert result.status is StepStatus.PARTIAL
    assert result.data_quality_score == 0.5
    assert [t.tool_id for t in result.tool_results] == ["broken", "trend"]
    assert result.tool_results[0].error == "division by zero"
    assert result.tool_results[0].output is None
    assert result.tool_results[1].succeeded
    assert result.derived_insights == ("still useful",)
    assert result.next_step_recommendations[0] == "Retry failed tools: broken"


@pytest.mark.asyncio
async def test_missing_tool_fails_the_call_not_the_run():
    result = await StepExecutor(ToolRegistry(), NO_RETRY).execute_step(
        analysis_step("s1", "ghost"), {}
    )

    assert result.status is StepStatus.FAILED
    assert result.tool_results[0].error == "Tool not found: ghost"
    assert result.data_quality_score == 0.0
    assert result.derived_insights is None


@pytest.mark.asyncio
async def test_step_without_tool_calls_is_failed():
    result = await StepExecutor(ToolRegistry(), NO_RETRY).execute_step(
        AnalysisStep(step_id="empty", step_type="reporting"), {}
    )

    assert result.status is StepStatus.FAILED
    assert result.tool_results == ()
    assert result.next_step_recommendations is None


@pytest.mark.asyncio
async def test_many_insights_suggest_deeper_analysis():
    registry = ToolRegistry()
    registry.register(RecordingTool("miner", insights=["a", "b", "c", "d"]))

    result = await StepExecutor(registry, NO_RETRY).execute_step(
        analysis_step("s1", "miner", step_type="data_collection"), {}
    )

    assert result.next_step_recommendations == (
        "Consider deeper analysis of generated insights",
        "Proceed with data validation and cleaning",
    )


@pytest.mark.asyncio
async def test_parallel_calls_keep_declaration_order():
    registry = ToolRegistry()
    registry.register(RecordingTool("slow", insights=["first"], delay_seconds=0.05))
    registry.register(RecordingTool("fast", insights=["second"]))

    result = await StepExecutor(registry, NO_RETRY, parallel=True).execute_step(
        analysis_step("s1", "slow", "fast"), {}
    )

    assert [t.tool_id for t in result.tool_results] == ["slow", "fast"]
    assert result.derived_insights == ("first", "second")
