"""
Plan Execution Workflow Graph.

Assembles the pipeline nodes and edges into a LangGraph workflow and wraps
it in PlanExecutor, the entry point for running an analysis plan.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from langgraph.graph import END, StateGraph

from config import Settings, config
from src.executor.models import AnalysisPlan, ExecutorOutput, RuntimeAdjustments
from src.mcp.registry import ToolRegistry
from src.validation import ensure_valid

from .edges import route_after_collection, route_after_step
from .nodes import PipelineNodes
from .state import PipelineState, create_initial_state

logger = logging.getLogger(__name__)

# initialize + collect_data + synthesize plus slack for the router
BASE_RECURSION_LIMIT = 10


def create_executor_workflow(
    registry: ToolRegistry,
    settings: Settings | None = None,
) -> StateGraph:
    """
    Create the plan execution graph.

    Graph structure:
    ```
    START
      │
      ▼
    initialize
      │
      ▼
    collect_data
      │
      ├──(no steps)────────────────┐
      ▼                            │
    execute_step ◄──(more steps)──┐│
      │                           ││
      ├───────────────────────────┘│
      │ (all steps done)           │
      ▼                            │
    synthesize ◄───────────────────┘
      │
      ▼
     END
    ```

    Args:
        registry: Tool registry used by every node
        settings: Optional settings (defaults to global config)

    Returns:
        Uncompiled StateGraph
    """
    nodes = PipelineNodes(registry, settings)
    workflow = StateGraph(PipelineState)

    # === Add Nodes ===
    workflow.add_node("initialize", nodes.initialize)
    workflow.add_node("collect_data", nodes.collect_data)
    workflow.add_node("execute_step", nodes.execute_step)
    workflow.add_node("synthesize", nodes.synthesize)

    # === Add Edges ===
    workflow.set_entry_point("initialize")
    workflow.add_edge("initialize", "collect_data")

    workflow.add_conditional_edges(
        "collect_data",
        route_after_collection,
        {
            "execute_step": "execute_step",
            "synthesize": "synthesize",
        },
    )

    workflow.add_conditional_edges(
        "execute_step",
        route_after_step,
        {
            "execute_step": "execute_step",
            "synthesize": "synthesize",
        },
    )

    workflow.add_edge("synthesize", END)

    return workflow


def compile_workflow(
    registry: ToolRegistry,
    settings: Settings | None = None,
) -> Any:
    """
    Compile the workflow.

    No checkpointer is attached: run state is dropped when the run ends.
    """
    return create_executor_workflow(registry, settings).compile()


def _coerce_plan(plan: AnalysisPlan | dict[str, Any]) -> tuple[AnalysisPlan | None, Any]:
    if isinstance(plan, AnalysisPlan):
        return plan, plan.to_dict()
    return None, plan


def _coerce_adjustments(
    adjustments: RuntimeAdjustments | dict[str, Any] | None,
) -> RuntimeAdjustments:
    if isinstance(adjustments, RuntimeAdjustments):
        return adjustments
    return RuntimeAdjustments.from_dict(adjustments)


class PlanExecutor:
    """
    High-level runner for analysis plans.

    Usage:
        executor = PlanExecutor(registry)
        output = await executor.execute(plan, {"skip_steps": ["step_3"]})
    """

    def __init__(self, registry: ToolRegistry, settings: Settings | None = None):
        """
        Initialize the executor.

        Args:
            registry: Tools available to the plan
            settings: Optional settings (defaults to global config)
        """
        self.registry = registry
        self.settings = settings or config
        self.graph = compile_workflow(registry, self.settings)

    def _prepare(
        self,
        plan: AnalysisPlan | dict[str, Any],
        runtime_adjustments: RuntimeAdjustments | dict[str, Any] | None,
    ) -> PipelineState:
        adjustments = _coerce_adjustments(runtime_adjustments)
        plan_obj, plan_data = _coerce_plan(plan)

        ensure_valid(plan_data, adjustments.skip_steps)
        if plan_obj is None:
            plan_obj = AnalysisPlan.from_dict(plan_data)

        return create_initial_state(plan_obj, adjustments)

    def _run_config(self, state: PipelineState) -> dict[str, Any]:
        return {"recursion_limit": len(state["plan"].analysis_steps) + BASE_RECURSION_LIMIT}

    async def execute(
        self,
        plan: AnalysisPlan | dict[str, Any],
        runtime_adjustments: RuntimeAdjustments | dict[str, Any] | None = None,
    ) -> ExecutorOutput:
        """
        Execute an analysis plan.

        Args:
            plan: AnalysisPlan or its dict form (camelCase keys accepted)
            runtime_adjustments: Optional skip list, priority and timeout

        Returns:
            ExecutorOutput for the run

        Raises:
            PlanValidationError: If the plan is malformed. Tool failures
                never raise; they are recorded in the output.
        """
        initial_state = self._prepare(plan, runtime_adjustments)

        logger.info(
            f"[Executor] Starting run {initial_state['run_id']} "
            f"for plan {initial_state['plan'].plan_id}"
        )

        final_state = await self.graph.ainvoke(initial_state, self._run_config(initial_state))

        logger.info(f"[Executor] Run complete. Phase: {final_state.get('current_phase')}")

        return final_state["output"]

    def stream(
        self,
        plan: AnalysisPlan | dict[str, Any],
        runtime_adjustments: RuntimeAdjustments | dict[str, Any] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Stream the run.

        The plan is validated before this returns, so PlanValidationError
        is raised here rather than on first iteration. The iterator yields
        one ``{node_name: update}`` mapping per finished node.
        """
        initial_state = self._prepare(plan, runtime_adjustments)
        return self.graph.astream(
            initial_state, self._run_config(initial_state), stream_mode="updates"
        )
