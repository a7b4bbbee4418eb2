"""LangGraph orchestration module."""

from .edges import route_after_collection, route_after_step
from .nodes import PipelineNodes
from .state import PipelinePhase, PipelineState, create_initial_state
from .workflow import PlanExecutor, compile_workflow, create_executor_workflow

__all__ = [
    # State
    "PipelinePhase",
    "PipelineState",
    "create_initial_state",
    # Nodes
    "PipelineNodes",
    # Edges
    "route_after_collection",
    "route_after_step",
    # Workflow
    "create_executor_workflow",
    "compile_workflow",
    "PlanExecutor",
]
