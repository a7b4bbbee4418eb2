"""
Plan Validator - structural checks run before execution.

A plan that fails these checks is the only condition allowed to abort a run
with an exception; everything that goes wrong while executing a well-formed
plan is reported inside the ExecutorOutput instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from src.executor.errors import PlanValidationError
from src.executor.models import RequirementType

logger = logging.getLogger(__name__)


REQUIREMENT_TYPES = {t.value for t in RequirementType}
APPROACHES = {"descriptive", "diagnostic", "predictive", "prescriptive"}


@dataclass
class PlanIssue:
    """A problem found in a plan."""

    severity: str  # "error", "warning"
    location: str  # e.g. "data_requirements[0]", "analysis_steps[s2]"
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity,
            "location": self.location,
            "message": self.message,
        }


@dataclass
class PlanValidationResult:
    """Result of plan validation."""

    issues: list[PlanIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[PlanIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[PlanIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def passed(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "issues": [i.to_dict() for i in self.issues],
        }


def _get(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _check_requirements(requirements: Any, result: PlanValidationResult) -> None:
    if requirements is None:
        result.issues.append(PlanIssue("error", "data_requirements", "data_requirements is missing"))
        return
    if not isinstance(requirements, list):
        result.issues.append(PlanIssue("error", "data_requirements", "data_requirements must be a list"))
        return

    for index, req in enumerate(requirements):
        location = f"data_requirements[{index}]"
        if not isinstance(req, Mapping):
            result.issues.append(PlanIssue("error", location, "requirement must be an object"))
            continue
        source = req.get("source")
        if not source:
            result.issues.append(PlanIssue("error", location, "requirement source is empty"))
        elif not isinstance(source, str):
            result.issues.append(PlanIssue("error", location, "requirement source must be a string"))
        req_type = req.get("type")
        if req_type not in REQUIREMENT_TYPES:
            result.issues.append(
                PlanIssue("error", location, f"unknown requirement type: {req_type!r}")
            )
        parameters = req.get("parameters")
        if parameters is not None and not isinstance(parameters, Mapping):
            result.issues.append(PlanIssue("error", location, "parameters must be an object"))


def _check_steps(steps: Any, result: PlanValidationResult) -> set[str]:
    step_ids: set[str] = set()
    if steps is None:
        result.issues.append(PlanIssue("error", "analysis_steps", "analysis_steps is missing"))
        return step_ids
    if not isinstance(steps, list):
        result.issues.append(PlanIssue("error", "analysis_steps", "analysis_steps must be a list"))
        return step_ids
    if not steps:
        result.issues.append(PlanIssue("warning", "analysis_steps", "plan has no analysis steps"))

    for index, step in enumerate(steps):
        if not isinstance(step, Mapping):
            result.issues.append(
                PlanIssue("error", f"analysis_steps[{index}]", "step must be an object")
            )
            continue

        step_id = _get(step, "step_id", "stepId")
        if step_id and not isinstance(step_id, str):
            location = f"analysis_steps[{index}]"
            result.issues.append(PlanIssue("error", location, "step_id must be a string"))
        else:
            location = f"analysis_steps[{step_id or index}]"
            if not step_id:
                result.issues.append(PlanIssue("error", location, "step_id is empty"))
            elif step_id in step_ids:
                result.issues.append(PlanIssue("error", location, f"duplicate step_id: {step_id}"))
            else:
                step_ids.add(step_id)

        step_type = _get(step, "step_type", "stepType")
        if step_type is not None and not isinstance(step_type, str):
            result.issues.append(PlanIssue("error", location, "step_type must be a string"))

        calls = _get(step, "tool_calls", "toolCalls") or []
        if not isinstance(calls, list):
            result.issues.append(PlanIssue("error", location, "tool_calls must be a list"))
            continue
        if not calls:
            result.issues.append(
                PlanIssue("warning", location, "step has no tool calls and will be marked failed")
            )
        for call_index, call in enumerate(calls):
            call_location = f"{location}.tool_calls[{call_index}]"
            if not isinstance(call, Mapping):
                result.issues.append(PlanIssue("error", call_location, "tool call must be an object"))
                continue
            tool_id = _get(call, "tool_id", "toolId")
            if not tool_id:
                result.issues.append(PlanIssue("error", call_location, "tool_id is empty"))
            elif not isinstance(tool_id, str):
                result.issues.append(PlanIssue("error", call_location, "tool_id must be a string"))
            parameters = call.get("parameters")
            if parameters is not None and not isinstance(parameters, Mapping):
                result.issues.append(PlanIssue("error", call_location, "parameters must be an object"))

    return step_ids


def validate_plan(
    plan: Any,
    skip_steps: Iterable[str] = (),
) -> PlanValidationResult:
    """
    Validate a plan given as a mapping (snake_case or camelCase keys).

    Args:
        plan: Plan dictionary
        skip_steps: Step ids the caller intends to skip

    Returns:
        PlanValidationResult with errors and warnings
    """
    result = PlanValidationResult()

    if not isinstance(plan, Mapping):
        result.issues.append(PlanIssue("error", "plan", "plan must be an object"))
        return result

    _check_requirements(_get(plan, "data_requirements", "dataRequirements"), result)
    step_ids = _check_steps(_get(plan, "analysis_steps", "analysisSteps"), result)

    approach = _get(plan, "approach", "analysis_approach", "analysisApproach")
    if approach is not None and approach not in APPROACHES:
        result.issues.append(PlanIssue("error", "approach", f"unknown analysis approach: {approach!r}"))

    for step_id in skip_steps:
        if step_id not in step_ids:
            result.issues.append(
                PlanIssue("warning", "runtime_adjustments.skip_steps", f"unknown step to skip: {step_id}")
            )

    for issue in result.warnings:
        logger.warning(f"[Validator] {issue.location}: {issue.message}")

    return result


def ensure_valid(plan: Any, skip_steps: Iterable[str] = ()) -> PlanValidationResult:
    """Validate and raise PlanValidationError when any error is found."""
    result = validate_plan(plan, skip_steps)
    if not result.passed:
        logger.error(f"[Validator] Plan rejected with {len(result.errors)} errors")
        raise PlanValidationError(result.errors)
    return result
