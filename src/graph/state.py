"""
LangGraph Shared State definitions.

Defines the state schema for the plan execution graph. A fresh state is
built for every run and never shared between runs.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import TypedDict
from uuid import uuid4

from src.executor.invocation import ExecutionDeadline, RetryPolicy
from src.executor.models import (
    AnalysisPlan,
    DataCollectionResult,
    ExecutionState,
    ExecutionStepResult,
    ExecutorOutput,
    RuntimeAdjustments,
)


class PipelinePhase(str, Enum):
    """Current phase of a run."""

    INITIALIZE = "initialize"
    DATA_COLLECTION = "data_collection"
    ANALYSIS = "analysis"
    SYNTHESIS = "synthesis"
    COMPLETE = "complete"


class PipelineState(TypedDict, total=False):
    """
    Shared state for the plan execution graph.

    Uses TypedDict for LangGraph compatibility.
    """

    # === Run Info ===
    run_id: str
    started_monotonic: float

    # === Input ===
    plan: AnalysisPlan
    adjustments: RuntimeAdjustments

    # === Execution ===
    execution: ExecutionState
    retry_policy: RetryPolicy
    deadline: ExecutionDeadline
    step_cursor: int

    # === Results ===
    collection_results: list[DataCollectionResult]
    step_results: list[ExecutionStepResult]
    output: ExecutorOutput | None

    # === Control ===
    current_phase: str


def create_initial_state(
    plan: AnalysisPlan,
    adjustments: RuntimeAdjustments | None = None,
) -> PipelineState:
    """
    Create initial state for a new run.

    Args:
        plan: Plan to execute
        adjustments: Optional runtime adjustments

    Returns:
        Initial PipelineState with defaults
    """
    return PipelineState(
        run_id=str(uuid4()),
        started_monotonic=time.perf_counter(),
        plan=plan,
        adjustments=adjustments or RuntimeAdjustments(),
        step_cursor=0,
        collection_results=[],
        step_results=[],
        output=None,
        current_phase=PipelinePhase.INITIALIZE.value,
    )
