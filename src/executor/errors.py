"""
Executor error hierarchy.

Only PlanValidationError is allowed to escape PlanExecutor.execute(); every
other error is caught at the tool-call boundary and recorded as data.
"""

from __future__ import annotations

from typing import Any


class ExecutorError(Exception):
    """Base class for plan execution errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details = details or {}


class PlanValidationError(ExecutorError):
    """The plan is malformed and cannot be executed at all."""

    def __init__(self, issues: list[Any]):
        self.issues = list(issues)
        messages = "; ".join(getattr(i, "message", str(i)) for i in self.issues)
        super().__init__(
            f"Invalid analysis plan: {messages}",
            details={"issues": [i.to_dict() if hasattr(i, "to_dict") else str(i) for i in self.issues]},
        )


class ToolNotFoundError(ExecutorError):
    """A tool id is not present in the registry."""

    def __init__(self, tool_id: str):
        super().__init__(f"Tool not found: {tool_id}", details={"tool_id": tool_id})
        self.tool_id = tool_id


class ToolExecutionError(ExecutorError):
    """A tool ran but reported failure."""


class ToolTimeoutError(ExecutorError):
    """A single tool attempt exceeded its time budget."""


class DeadlineExceededError(ExecutorError):
    """The run-level deadline expired before a tool could be invoked."""

    def __init__(self, message: str = "Execution deadline exceeded"):
        super().__init__(message)
