"""
Data models module.

Pydantic models for API requests/responses. Plans are accepted as plain
JSON objects and handed to the validator unchanged, so malformed plans
come back as validation issues rather than schema errors.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ExecutePlanRequest(BaseModel):
    """Request to execute an analysis plan."""

    plan: dict[str, Any] = Field(..., description="Analysis plan (snake_case or camelCase keys)")
    runtime_adjustments: dict[str, Any] | None = Field(
        None, description="Optional skip_steps, priority_override and timeout_ms"
    )


class ValidatePlanRequest(BaseModel):
    """Request to validate a plan without running it."""

    plan: dict[str, Any]
    skip_steps: list[str] = Field(default_factory=list)


class PlanIssueModel(BaseModel):
    """A single plan validation issue."""

    severity: str
    location: str
    message: str


class ValidatePlanResponse(BaseModel):
    """Plan validation outcome."""

    passed: bool
    issues: list[PlanIssueModel] = Field(default_factory=list)


class ToolInfo(BaseModel):
    """Registered tool."""

    id: str
    description: str = ""
    capabilities: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    tools: int = 0
