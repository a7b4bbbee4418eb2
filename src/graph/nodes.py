"""
LangGraph Node implementations.

Each node represents a phase of a plan run. Nodes are bound methods of
PipelineNodes so the registry and settings travel with the compiled graph,
while everything run-scoped lives in PipelineState.
"""

from __future__ import annotations

import logging
from typing import Any

from config import Settings, config
from src.executor import (
    DataCollector,
    ExecutionDeadline,
    ExecutionState,
    RetryPolicy,
    StepExecutor,
)
from src.executor.synthesizer import synthesize as build_output
from src.mcp.registry import ToolRegistry
from src.utils import elapsed_ms

from .state import PipelinePhase, PipelineState

logger = logging.getLogger(__name__)


class PipelineNodes:
    """Node implementations sharing one registry and one settings object."""

    def __init__(self, registry: ToolRegistry, settings: Settings | None = None):
        self.registry = registry
        self.settings = settings or config

    # === Node Implementations ===

    async def initialize(self, state: PipelineState) -> dict[str, Any]:
        """
        Initialize node.

        Builds the run-scoped ExecutionState, deadline and retry policy from
        the settings and the caller's runtime adjustments.
        """
        adjustments = state["adjustments"]
        executor_cfg = self.settings.executor

        timeout_ms = adjustments.timeout_ms
        if timeout_ms is None:
            timeout_ms = executor_cfg.timeout_ms

        execution = ExecutionState.fresh(
            timeout_ms=timeout_ms,
            priority_mode=adjustments.priority_override,
        )
        priority_mode = execution.metadata["priority_mode"]

        logger.info(
            f"[Initialize] Run {state['run_id']}: "
            f"{len(state['plan'].data_requirements)} requirements, "
            f"{len(state['plan'].analysis_steps)} steps, "
            f"priority={priority_mode}, timeout_ms={timeout_ms}"
        )

        return {
            "execution": execution,
            "retry_policy": RetryPolicy.from_config(executor_cfg, priority_mode),
            "deadline": ExecutionDeadline(timeout_ms),
            "current_phase": PipelinePhase.DATA_COLLECTION.value,
        }

    async def collect_data(self, state: PipelineState) -> dict[str, Any]:
        """
        Data Collection node.

        Resolves and invokes a tool for every data requirement.
        """
        collector = DataCollector(
            self.registry,
            state["retry_policy"],
            state["deadline"],
            parallel=self.settings.executor.parallel_tool_calls,
        )
        execution = state["execution"]
        results = await collector.collect(state["plan"].data_requirements, execution)

        return {
            "execution": execution,
            "collection_results": results,
            "current_phase": PipelinePhase.ANALYSIS.value,
        }

    async def execute_step(self, state: PipelineState) -> dict[str, Any]:
        """
        Step node.

        Runs the plan step under the cursor, or skips it when the caller
        asked to. Runs once per plan step.
        """
        plan = state["plan"]
        cursor = state.get("step_cursor", 0)
        step = plan.analysis_steps[cursor]
        execution = state["execution"]

        if step.step_id in state["adjustments"].skip_steps:
            logger.info(f"[Step] Skipping {step.step_id}")
            return {"step_cursor": cursor + 1}

        runner = StepExecutor(
            self.registry,
            state["retry_policy"],
            state["deadline"],
            parallel=self.settings.executor.parallel_tool_calls,
        )
        result = await runner.execute_step(
            step,
            execution.collected_data,
            priority_mode=execution.metadata.get("priority_mode"),
        )
        execution.record_step(result)

        return {
            "execution": execution,
            "step_results": [*state.get("step_results", []), result],
            "step_cursor": cursor + 1,
        }

    async def synthesize(self, state: PipelineState) -> dict[str, Any]:
        """
        Synthesis node.

        Aggregates the run into the final ExecutorOutput.
        """
        execution = state["execution"]
        execution.metadata["elapsed_ms"] = elapsed_ms(state["started_monotonic"])

        output = build_output(
            execution,
            state.get("step_results", []),
            state.get("collection_results", []),
            state["plan"],
        )

        summary = output.execution_summary
        logger.info(
            f"[Synthesize] Run {state['run_id']} done in {summary.total_execution_time_ms}ms: "
            f"{summary.steps_completed} completed, {summary.steps_partial} partial, "
            f"{summary.steps_failed} failed"
        )

        return {
            "output": output,
            "current_phase": PipelinePhase.COMPLETE.value,
        }
