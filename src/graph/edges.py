"""
LangGraph Conditional Edge functions.

Defines routing logic between nodes based on state.
"""

from __future__ import annotations

from typing import Literal

from .state import PipelineState


def route_after_collection(
    state: PipelineState,
) -> Literal["execute_step", "synthesize"]:
    """Go to the step loop when the plan has any analysis steps."""
    if state["plan"].analysis_steps:
        return "execute_step"
    return "synthesize"


def route_after_step(
    state: PipelineState,
) -> Literal["execute_step", "synthesize"]:
    """
    Route after one step.

    Decision:
    - More plan steps left (executed or skipped) → next step
    - Otherwise → synthesis
    """
    if state.get("step_cursor", 0) < len(state["plan"].analysis_steps):
        return "execute_step"
    return "synthesize"
