"""
Plan execution data model.

Input entities (plan, requirements, steps) are produced upstream by the
planner; result entities are created once during a run and never mutated
afterwards. ExecutionState is the only mutable record and belongs to a
single run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4


class RequirementType(str, Enum):
    """Kind of external data need."""

    DATABASE_QUERY = "database_query"
    SEMANTIC_SEARCH = "semantic_search"
    API_CALL = "api_call"
    TOOL_EXECUTION = "tool_execution"


class AnalysisApproach(str, Enum):
    """Analysis approach chosen by the planner."""

    DESCRIPTIVE = "descriptive"
    DIAGNOSTIC = "diagnostic"
    PREDICTIVE = "predictive"
    PRESCRIPTIVE = "prescriptive"


class StepStatus(str, Enum):
    """Outcome of one analysis step."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key (snake_case or camelCase)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# === Plan (input) ===

@dataclass(frozen=True)
class DataRequirement:
    """One external data need declared by the plan."""

    source: str
    type: RequirementType
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "type": self.type.value,
            "parameters": self.parameters,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DataRequirement":
        return cls(
            source=data.get("source", ""),
            type=RequirementType(data.get("type")),
            parameters=dict(data.get("parameters") or {}),
        )


@dataclass(frozen=True)
class ToolCall:
    """A single tool invocation inside a step."""

    tool_id: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"tool_id": self.tool_id, "parameters": self.parameters}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolCall":
        return cls(
            tool_id=_pick(data, "tool_id", "toolId", default=""),
            parameters=dict(data.get("parameters") or {}),
        )


@dataclass(frozen=True)
class AnalysisStep:
    """A named group of tool calls sharing a completion/failure fate."""

    step_id: str
    step_type: str = "analysis"
    tool_calls: tuple[ToolCall, ...] = ()
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "step_type": self.step_type,
            "tool_calls": [c.to_dict() for c in self.tool_calls],
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisStep":
        calls = _pick(data, "tool_calls", "toolCalls", default=[])
        return cls(
            step_id=_pick(data, "step_id", "stepId", default=""),
            step_type=_pick(data, "step_type", "stepType", default="analysis"),
            tool_calls=tuple(ToolCall.from_dict(c) for c in calls),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class AnalysisPlan:
    """Ordered data requirements and analysis steps for one query."""

    data_requirements: tuple[DataRequirement, ...] = ()
    analysis_steps: tuple[AnalysisStep, ...] = ()
    approach: AnalysisApproach = AnalysisApproach.DESCRIPTIVE
    original_query: str = ""
    plan_id: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "original_query": self.original_query,
            "approach": self.approach.value,
            "data_requirements": [r.to_dict() for r in self.data_requirements],
            "analysis_steps": [s.to_dict() for s in self.analysis_steps],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisPlan":
        """Create from dictionary (handles camelCase keys)."""
        requirements = _pick(data, "data_requirements", "dataRequirements", default=[])
        steps = _pick(data, "analysis_steps", "analysisSteps", default=[])
        approach = _pick(data, "approach", "analysis_approach", "analysisApproach", default="descriptive")
        return cls(
            data_requirements=tuple(DataRequirement.from_dict(r) for r in requirements),
            analysis_steps=tuple(AnalysisStep.from_dict(s) for s in steps),
            approach=AnalysisApproach(approach),
            original_query=_pick(data, "original_query", "originalQuery", "query", default=""),
            plan_id=_pick(data, "plan_id", "planId", default=None) or str(uuid4()),
        )


@dataclass(frozen=True)
class RuntimeAdjustments:
    """Caller-supplied tweaks for a single run."""

    skip_steps: tuple[str, ...] = ()
    priority_override: str | None = None
    timeout_ms: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RuntimeAdjustments":
        data = data or {}
        return cls(
            skip_steps=tuple(_pick(data, "skip_steps", "skipSteps", default=[])),
            priority_override=_pick(data, "priority_override", "priorityOverride"),
            timeout_ms=_pick(data, "timeout_ms", "timeoutMs"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "skip_steps": list(self.skip_steps),
            "priority_override": self.priority_override,
            "timeout_ms": self.timeout_ms,
        }


# === Run state ===

@dataclass
class ExecutionState:
    """
    Run-scoped mutable record.

    Owned by one pipeline run; a step id appears in at most one of
    completed_steps, partial_steps and failed_steps.
    """

    current_step_index: int = 0
    completed_steps: list[str] = field(default_factory=list)
    partial_steps: list[str] = field(default_factory=list)
    failed_steps: list[str] = field(default_factory=list)
    collected_data: dict[str, Any] = field(default_factory=dict)
    derived_insights: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def fresh(
        cls,
        *,
        timeout_ms: int | None = None,
        priority_mode: str | None = None,
    ) -> "ExecutionState":
        return cls(
            metadata={
                "started_at": datetime.now(timezone.utc).isoformat(),
                "timeout_ms": timeout_ms,
                "priority_mode": priority_mode or "accuracy",
            }
        )

    def record_step(self, result: "ExecutionStepResult") -> None:
        """Book a step outcome into the completed/partial/failed sets."""
        if result.status is StepStatus.COMPLETED:
            self.completed_steps.append(result.step_id)
            if result.derived_insights:
                self.derived_insights.extend(result.derived_insights)
        elif result.status is StepStatus.FAILED:
            self.failed_steps.append(result.step_id)
        elif result.status is StepStatus.PARTIAL:
            self.partial_steps.append(result.step_id)
        self.current_step_index += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_step_index": self.current_step_index,
            "completed_steps": list(self.completed_steps),
            "partial_steps": list(self.partial_steps),
            "failed_steps": list(self.failed_steps),
            "collected_data": dict(self.collected_data),
            "derived_insights": list(self.derived_insights),
            "execution_metadata": dict(self.metadata),
        }


# === Results ===

@dataclass(frozen=True)
class DataCollectionResult:
    """Outcome of resolving one data requirement."""

    data_source: str
    data_collected: dict[str, Any]
    quality_score: float
    collection_time_ms: int
    errors: tuple[str, ...] | None = None
    tool_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "data_source": self.data_source,
            "data_collected": self.data_collected,
            "quality_score": self.quality_score,
            "collection_time_ms": self.collection_time_ms,
            "tool_id": self.tool_id,
        }
        if self.errors:
            result["errors"] = list(self.errors)
        return result


@dataclass(frozen=True)
class ToolCallResult:
    """Outcome of one tool call."""

    tool_id: str
    input: dict[str, Any]
    execution_time_ms: int
    output: Any = None
    error: str | None = None
    insights: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "tool_id": self.tool_id,
            "input": self.input,
            "execution_time_ms": self.execution_time_ms,
        }
        if self.error is None:
            result["output"] = self.output
        else:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class ExecutionStepResult:
    """Outcome of one executed analysis step."""

    step_id: str
    status: StepStatus
    tool_results: tuple[ToolCallResult, ...]
    data_quality_score: float
    confidence_in_results: float
    derived_insights: tuple[str, ...] | None = None
    next_step_recommendations: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "step_id": self.step_id,
            "status": self.status.value,
            "tool_results": [t.to_dict() for t in self.tool_results],
            "data_quality_score": self.data_quality_score,
            "confidence_in_results": self.confidence_in_results,
        }
        if self.derived_insights:
            result["derived_insights"] = list(self.derived_insights)
        if self.next_step_recommendations:
            result["next_step_recommendations"] = list(self.next_step_recommendations)
        return result


@dataclass(frozen=True)
class FinalAnalysis:
    """Synthesised analysis for the whole run."""

    key_findings: tuple[str, ...]
    insights: tuple[str, ...]
    recommendations: tuple[str, ...]
    confidence_score: float
    data_quality_assessment: str
    limitations: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "key_findings": list(self.key_findings),
            "insights": list(self.insights),
            "recommendations": list(self.recommendations),
            "confidence_score": self.confidence_score,
            "data_quality_assessment": self.data_quality_assessment,
        }
        if self.limitations is not None:
            result["limitations"] = list(self.limitations)
        return result


@dataclass(frozen=True)
class ExecutionSummary:
    """Counters describing a run."""

    total_execution_time_ms: int
    steps_attempted: int
    steps_completed: int
    steps_partial: int
    steps_failed: int
    tools_executed: int
    data_sources_accessed: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_execution_time_ms": self.total_execution_time_ms,
            "steps_attempted": self.steps_attempted,
            "steps_completed": self.steps_completed,
            "steps_partial": self.steps_partial,
            "steps_failed": self.steps_failed,
            "tools_executed": self.tools_executed,
            "data_sources_accessed": list(self.data_sources_accessed),
        }


@dataclass(frozen=True)
class ExecutorOutput:
    """Top-level result returned to the caller."""

    original_query: str
    execution_summary: ExecutionSummary
    step_results: tuple[ExecutionStepResult, ...]
    data_collection_results: tuple[DataCollectionResult, ...]
    final_analysis: FinalAnalysis
    deliverables: dict[str, Any]
    executive_summary: str
    next_actions: tuple[str, ...]
    metadata: dict[str, Any]

    @property
    def execution_quality_score(self) -> float:
        return self.metadata["execution_quality_score"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_query": self.original_query,
            "execution_summary": self.execution_summary.to_dict(),
            "step_results": [r.to_dict() for r in self.step_results],
            "data_collection_results": [r.to_dict() for r in self.data_collection_results],
            "final_analysis": self.final_analysis.to_dict(),
            "deliverables": self.deliverables,
            "executive_summary": self.executive_summary,
            "next_actions": list(self.next_actions),
            "metadata": self.metadata,
        }
