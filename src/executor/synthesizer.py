"""
Synthesizer.

Turns the final run state plus every step and collection result into the
ExecutorOutput: findings, confidence, data-quality assessment, limitations,
deliverables, executive summary, next actions and quality metrics.

Everything here is a pure function of its inputs; the only time-dependent
value (total execution time) is read from state metadata recorded by the
driver.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from typing import Any, Sequence

from src.utils import clamp, ratio

from .models import (
    AnalysisApproach,
    AnalysisPlan,
    DataCollectionResult,
    ExecutionState,
    ExecutionStepResult,
    ExecutionSummary,
    ExecutorOutput,
    FinalAnalysis,
    StepStatus,
)


MAX_FINDINGS = 5
NEUTRAL_DATA_QUALITY = 0.5
LOW_QUALITY_THRESHOLD = 0.5
FAST_TOOL_MS = 5000
INSIGHT_NORMALISER = 5
FOLLOW_UP_CONFIDENCE = 0.7

DEFAULT_FINDING = "Analysis completed with available data"
DEFAULT_INSIGHT = "Insights generated from available information"

RECOMMENDATIONS = (
    "Monitor key metrics identified in the analysis",
    "Implement data quality improvements for better future analysis",
    "Consider additional data sources for more comprehensive insights",
)

# Ordered top-down, first exclusive lower bound that matches wins
QUALITY_BANDS = (
    (0.8, "High quality data with strong reliability"),
    (0.6, "Good quality data with minor limitations"),
    (0.4, "Moderate quality data with notable limitations"),
)
LOWEST_QUALITY_BAND = "Lower quality data requiring caution in interpretation"

APPROACH_ACTIONS = {
    AnalysisApproach.DESCRIPTIVE: "Consider diagnostic analysis to understand underlying causes",
    AnalysisApproach.DIAGNOSTIC: "Develop action plans to address identified root causes",
    AnalysisApproach.PREDICTIVE: "Monitor predictions against actual outcomes for model refinement",
}


# === Scoring ===

def average_data_quality(collection_results: Sequence[DataCollectionResult]) -> float:
    """Mean quality score, 0.5 when nothing was collected."""
    if not collection_results:
        return NEUTRAL_DATA_QUALITY
    return sum(r.quality_score for r in collection_results) / len(collection_results)


def assess_quality_band(avg_quality: float) -> str:
    for threshold, label in QUALITY_BANDS:
        if avg_quality > threshold:
            return label
    return LOWEST_QUALITY_BAND


def calculate_confidence(
    steps_completed: int,
    steps_attempted: int,
    avg_quality: float,
) -> float:
    """Mean of step completion ratio and average data quality."""
    base_confidence = ratio(steps_completed, steps_attempted)
    return (base_confidence + avg_quality) / 2


def calculate_execution_quality_score(
    step_results: Sequence[ExecutionStepResult],
    collection_results: Sequence[DataCollectionResult],
) -> float:
    """
    Weighted execution quality in [0, 1].

    40% step completion, 30% data quality, 20% tool success rate,
    10% insight volume (saturating at five insights).
    """
    attempted = len(step_results)
    completed = sum(1 for r in step_results if r.status is StepStatus.COMPLETED)
    tool_results = [t for r in step_results for t in r.tool_results]
    successful_tools = sum(1 for t in tool_results if t.succeeded)
    insight_count = sum(len(r.derived_insights or ()) for r in step_results)

    score = (
        0.4 * clamp(ratio(completed, attempted))
        + 0.3 * clamp(average_data_quality(collection_results))
        + 0.2 * clamp(ratio(successful_tools, len(tool_results)))
        + 0.1 * min(1.0, insight_count / INSIGHT_NORMALISER)
    )
    return clamp(score)


def calculate_tools_effectiveness(
    step_results: Sequence[ExecutionStepResult],
) -> dict[str, float]:
    """Best effectiveness observed per tool across all calls."""
    effectiveness: dict[str, float] = {}
    for step in step_results:
        step_has_insights = bool(step.derived_insights)
        for result in step.tool_results:
            score = 0.7 if result.succeeded else 0.0
            if result.succeeded and result.execution_time_ms < FAST_TOOL_MS:
                score += 0.2
            if step_has_insights:
                score += 0.1
            effectiveness[result.tool_id] = max(effectiveness.get(result.tool_id, 0.0), score)
    return effectiveness


# === Report assembly ===

def build_final_analysis(
    state: ExecutionState,
    step_results: Sequence[ExecutionStepResult],
    collection_results: Sequence[DataCollectionResult],
) -> FinalAnalysis:
    key_findings = [
        insight
        for r in step_results
        if r.status is StepStatus.COMPLETED
        for insight in (r.derived_insights or ())
    ][:MAX_FINDINGS]
    insights = list(state.derived_insights[:MAX_FINDINGS])

    completed = sum(1 for r in step_results if r.status is StepStatus.COMPLETED)
    avg_quality = average_data_quality(collection_results)
    confidence = calculate_confidence(completed, len(step_results), avg_quality)

    limitations = []
    failed_steps = sum(1 for r in step_results if r.status is StepStatus.FAILED)
    if failed_steps:
        limitations.append(f"{failed_steps} analysis steps failed to complete")
    low_quality = sum(1 for r in collection_results if r.quality_score < LOW_QUALITY_THRESHOLD)
    if low_quality:
        limitations.append(f"{low_quality} data sources had quality issues")

    return FinalAnalysis(
        key_findings=tuple(key_findings) or (DEFAULT_FINDING,),
        insights=tuple(insights) or (DEFAULT_INSIGHT,),
        recommendations=RECOMMENDATIONS,
        confidence_score=confidence,
        data_quality_assessment=assess_quality_band(avg_quality),
        limitations=tuple(limitations) or None,
    )


def _tools_used(step_results: Sequence[ExecutionStepResult]) -> list[str]:
    return list(OrderedDict.fromkeys(t.tool_id for r in step_results for t in r.tool_results))


def _describe_type(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return type(value).__name__


def build_deliverables(
    plan: AnalysisPlan,
    step_results: Sequence[ExecutionStepResult],
    collected_data: dict[str, Any],
) -> dict[str, Any]:
    return {
        "analysis_results": [
            {
                "step_id": r.step_id,
                "status": r.status.value,
                "key_outputs": [t.output for t in r.tool_results if t.succeeded],
            }
            for r in step_results
        ],
        "data_summary": [
            {
                "source": source,
                "record_count": len(data) if isinstance(data, (list, tuple)) else 1,
                "data_type": _describe_type(data),
            }
            for source, data in collected_data.items()
        ],
        "methodology": {
            "approach": plan.approach.value,
            "steps_executed": sum(1 for r in step_results if r.status is StepStatus.COMPLETED),
            "tools_used": _tools_used(step_results),
        },
    }


def as_percent(value: float) -> int:
    """Whole percent, halves rounded up."""
    return math.floor(value * 100 + 0.5)


def build_executive_summary(
    original_query: str,
    analysis: FinalAnalysis,
    approach: AnalysisApproach,
) -> str:
    lines = [
        f"Executive Summary: {original_query}",
        "",
        f"Analysis Approach: {approach.value}",
        f"Confidence Level: {as_percent(analysis.confidence_score)}%",
        "",
        "Key Findings:",
        *(f"{i}. {finding}" for i, finding in enumerate(analysis.key_findings, 1)),
        "",
        "Recommendations:",
        *(f"{i}. {rec}" for i, rec in enumerate(analysis.recommendations, 1)),
        "",
        f"Data Quality: {analysis.data_quality_assessment}",
    ]
    if analysis.limitations:
        lines.extend(["", "Limitations:"])
        lines.extend(f"• {limitation}" for limitation in analysis.limitations)
    return "\n".join(lines)


def build_next_actions(analysis: FinalAnalysis, approach: AnalysisApproach) -> list[str]:
    actions = [
        "Review and validate findings with stakeholders",
        "Implement recommended actions with appropriate timelines",
    ]
    if analysis.confidence_score < FOLLOW_UP_CONFIDENCE:
        actions.append("Gather additional data to improve analysis confidence")
    approach_action = APPROACH_ACTIONS.get(approach)
    if approach_action:
        actions.append(approach_action)
    actions.append("Schedule follow-up analysis to track progress and changes")
    return actions


def synthesize(
    state: ExecutionState,
    step_results: Sequence[ExecutionStepResult],
    collection_results: Sequence[DataCollectionResult],
    plan: AnalysisPlan,
) -> ExecutorOutput:
    """
    Build the ExecutorOutput for a finished run.

    Args:
        state: Final run state (read only)
        step_results: Results of every executed (non-skipped) step
        collection_results: One result per data requirement
        plan: The executed plan

    Returns:
        ExecutorOutput
    """
    attempted = len(step_results)
    completed = sum(1 for r in step_results if r.status is StepStatus.COMPLETED)
    partial = sum(1 for r in step_results if r.status is StepStatus.PARTIAL)
    failed = sum(1 for r in step_results if r.status is StepStatus.FAILED)
    tools_executed = sum(len(r.tool_results) for r in step_results)

    sources = [r.data_source for r in collection_results]
    summary = ExecutionSummary(
        total_execution_time_ms=int(state.metadata.get("elapsed_ms") or 0),
        steps_attempted=attempted,
        steps_completed=completed,
        steps_partial=partial,
        steps_failed=failed,
        tools_executed=tools_executed,
        data_sources_accessed=tuple(sources + _tools_used(step_results)),
    )

    analysis = build_final_analysis(state, step_results, collection_results)

    return ExecutorOutput(
        original_query=plan.original_query,
        execution_summary=summary,
        step_results=tuple(step_results),
        data_collection_results=tuple(collection_results),
        final_analysis=analysis,
        deliverables=build_deliverables(plan, step_results, state.collected_data),
        executive_summary=build_executive_summary(plan.original_query, analysis, plan.approach),
        next_actions=tuple(build_next_actions(analysis, plan.approach)),
        metadata={
            "plan_id": plan.plan_id,
            "analysis_approach_used": plan.approach.value,
            "primary_data_sources": sources,
            "tools_effectiveness": calculate_tools_effectiveness(step_results),
            "execution_quality_score": calculate_execution_quality_score(
                step_results, collection_results
            ),
            "priority_mode": state.metadata.get("priority_mode"),
            "started_at": state.metadata.get("started_at"),
        },
    )
