"""
Tool invocation policy.

Wraps each tool call in bounded exponential-backoff retries (tenacity) and a
per-attempt timeout capped by the run deadline.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tenacity import (
    AsyncRetrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import ExecutorConfig

from .errors import DeadlineExceededError, ToolNotFoundError, ToolTimeoutError

if TYPE_CHECKING:
    from src.mcp.registry import Tool

logger = logging.getLogger(__name__)


SPEED_PRIORITY = "speed"


@dataclass(frozen=True)
class RetryPolicy:
    """How many times and how patiently a tool call is attempted."""

    attempts: int = 3
    backoff_multiplier: float = 0.5
    backoff_min: float = 0.0
    backoff_max: float = 8.0
    call_timeout_ms: int | None = 30_000

    @classmethod
    def from_config(
        cls,
        cfg: ExecutorConfig,
        priority_mode: str | None = None,
    ) -> "RetryPolicy":
        attempts = 1 if priority_mode == SPEED_PRIORITY else cfg.retry_attempts
        return cls(
            attempts=max(1, attempts),
            backoff_multiplier=cfg.retry_backoff_multiplier,
            backoff_min=cfg.retry_backoff_min,
            backoff_max=cfg.retry_backoff_max,
            call_timeout_ms=cfg.tool_timeout_ms or None,
        )


class ExecutionDeadline:
    """Run-level deadline checked at every tool invocation."""

    def __init__(self, timeout_ms: int | None = None):
        self.timeout_ms = timeout_ms or None
        self._expires_at = (
            time.monotonic() + self.timeout_ms / 1000 if self.timeout_ms else None
        )

    def remaining(self) -> float | None:
        """Seconds left, or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        if self.expired:
            raise DeadlineExceededError()

    def attempt_timeout(self, call_timeout_ms: int | None) -> tuple[float | None, bool]:
        """
        Time budget for one attempt in seconds.

        Returns ``(timeout, bound_by_deadline)``; the flag is True when the
        run deadline, not the per-call timeout, sets the budget.
        """
        remaining = self.remaining()
        call_timeout = call_timeout_ms / 1000 if call_timeout_ms else None
        if remaining is not None and (call_timeout is None or remaining <= call_timeout):
            return remaining, True
        return call_timeout, False


async def _attempt(
    tool: Tool,
    tool_id: str,
    payload: dict[str, Any],
    policy: RetryPolicy,
    deadline: ExecutionDeadline,
) -> Any:
    deadline.check()
    timeout, bound_by_deadline = deadline.attempt_timeout(policy.call_timeout_ms)
    try:
        return await asyncio.wait_for(tool.execute(payload), timeout=timeout)
    except asyncio.TimeoutError:
        if bound_by_deadline:
            raise DeadlineExceededError() from None
        raise ToolTimeoutError(
            f"Tool {tool_id} timed out after {int((timeout or 0) * 1000)}ms",
            details={"tool_id": tool_id},
        ) from None


async def invoke_tool(
    tool: Tool,
    payload: dict[str, Any],
    *,
    tool_id: str,
    policy: RetryPolicy,
    deadline: ExecutionDeadline,
) -> tuple[dict[str, Any], list[str]]:
    """
    Invoke a tool with retries and return normalised ``(data, insights)``.

    Raises the last error once attempts are exhausted; a deadline expiry is
    raised immediately without further attempts.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.attempts),
        wait=wait_exponential(
            multiplier=policy.backoff_multiplier,
            min=policy.backoff_min,
            max=policy.backoff_max,
        ),
        retry=retry_if_not_exception_type((DeadlineExceededError, ToolNotFoundError)),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            number = attempt.retry_state.attempt_number
            if number > 1:
                logger.info(f"[Invoke] Retrying {tool_id} (attempt {number}/{policy.attempts})")
            raw = await _attempt(tool, tool_id, payload, policy, deadline)
    return normalize_tool_output(raw)


def normalize_tool_output(raw: Any) -> tuple[dict[str, Any], list[str]]:
    """
    Split a raw tool return value into (data, insights).

    ``{"data": {...}, "insights": [...]}`` is the canonical shape; any other
    mapping is treated as the data itself, anything else is wrapped as
    ``{"result": raw}``.
    """
    insights: list[str] = []
    if isinstance(raw, dict):
        raw_insights = raw.get("insights")
        if isinstance(raw_insights, (list, tuple)):
            insights = [i for i in raw_insights if isinstance(i, str)]
        if "data" in raw:
            data = raw["data"]
            if not isinstance(data, dict):
                data = {"result": data}
            return data, insights
        return {k: v for k, v in raw.items() if k != "insights"}, insights
    if raw is None:
        return {}, insights
    return {"result": raw}, insights
