"""
Step Executor.

Runs one analysis step: every tool call in declaration order against the
data collected so far, then classifies the step as completed, partial or
failed. Tool failures are recorded on the ToolCallResult and never abort
the step.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from src.utils import elapsed_ms, ratio

from .invocation import ExecutionDeadline, RetryPolicy, invoke_tool
from .models import (
    AnalysisStep,
    ExecutionStepResult,
    StepStatus,
    ToolCall,
    ToolCallResult,
)

if TYPE_CHECKING:
    from src.mcp.registry import ToolRegistry

logger = logging.getLogger(__name__)


DEEPER_ANALYSIS_INSIGHT_COUNT = 3

STEP_TYPE_HINTS = {
    "data_collection": "Proceed with data validation and cleaning",
    "analysis": "Generate visualizations for key findings",
}


def classify_step(successful: int, total: int) -> StepStatus:
    """Status from the number of error-free tool results."""
    if total == 0 or successful == 0:
        return StepStatus.FAILED
    if successful == total:
        return StepStatus.COMPLETED
    return StepStatus.PARTIAL


def recommend_next_steps(
    step: AnalysisStep,
    tool_results: list[ToolCallResult],
    insights: list[str],
) -> list[str]:
    recommendations = []

    failed = [r.tool_id for r in tool_results if not r.succeeded]
    if failed:
        recommendations.append(f"Retry failed tools: {', '.join(failed)}")

    if len(insights) > DEEPER_ANALYSIS_INSIGHT_COUNT:
        recommendations.append("Consider deeper analysis of generated insights")

    hint = STEP_TYPE_HINTS.get(step.step_type)
    if hint:
        recommendations.append(hint)

    return recommendations


class StepExecutor:
    """
    Executes analysis steps against a tool registry.

    Skip filtering is the caller's job: a skipped step must never be passed
    to ``execute_step``.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        policy: RetryPolicy | None = None,
        deadline: ExecutionDeadline | None = None,
        *,
        parallel: bool = False,
    ):
        self.registry = registry
        self.policy = policy or RetryPolicy()
        self.deadline = deadline or ExecutionDeadline()
        self.parallel = parallel

    async def execute_step(
        self,
        step: AnalysisStep,
        collected_data: dict[str, Any],
        priority_mode: str | None = None,
    ) -> ExecutionStepResult:
        """
        Execute every tool call of a step.

        Args:
            step: Step to run
            collected_data: Data gathered so far, passed to tools as ``available_data``
            priority_mode: Run priority; only recorded in logs here, the retry
                policy already reflects it

        Returns:
            ExecutionStepResult; never raises for tool failures
        """
        logger.info(
            f"[Step] Executing {step.step_id} ({step.step_type}, "
            f"{len(step.tool_calls)} tool calls, priority={priority_mode or 'accuracy'})"
        )

        if self.parallel:
            tool_results = list(
                await asyncio.gather(*(self._call(c, collected_data) for c in step.tool_calls))
            )
        else:
            tool_results = [await self._call(c, collected_data) for c in step.tool_calls]

        insights = [i for r in tool_results for i in r.insights]

        successful = sum(1 for r in tool_results if r.succeeded)
        total = len(tool_results)
        status = classify_step(successful, total)
        success_ratio = ratio(successful, total)

        recommendations = recommend_next_steps(step, tool_results, insights)

        logger.info(f"[Step] {step.step_id} {status.value} ({successful}/{total} tools ok)")

        return ExecutionStepResult(
            step_id=step.step_id,
            status=status,
            tool_results=tuple(tool_results),
            derived_insights=tuple(insights) or None,
            data_quality_score=success_ratio,
            confidence_in_results=success_ratio,
            next_step_recommendations=tuple(recommendations) or None,
        )

    async def _call(self, call: ToolCall, collected_data: dict[str, Any]) -> ToolCallResult:
        tool_input = {**call.parameters, "available_data": collected_data}
        start = time.perf_counter()
        try:
            data, insights = await invoke_tool(
                self.registry.get(call.tool_id),
                tool_input,
                tool_id=call.tool_id,
                policy=self.policy,
                deadline=self.deadline,
            )
        except Exception as e:
            logger.warning(f"[Step] Tool {call.tool_id} failed: {e}")
            return ToolCallResult(
                tool_id=call.tool_id,
                input=tool_input,
                error=str(e) or "Tool execution failed",
                execution_time_ms=elapsed_ms(start),
            )

        return ToolCallResult(
            tool_id=call.tool_id,
            input=tool_input,
            output=data,
            insights=tuple(insights),
            execution_time_ms=elapsed_ms(start),
        )
