import asyncio

import pytest

from config import ExecutorConfig
from src.executor import (
    DeadlineExceededError,
    ExecutionDeadline,
    RetryPolicy,
    ToolTimeoutError,
    invoke_tool,
)
from src.executor.invocation import normalize_tool_output
from tests.fakes import FailingTool, FlakyTool, RecordingTool


def fast_policy(attempts: int = 3, call_timeout_ms: int | None = 2_000) -> RetryPolicy:
    return RetryPolicy(
        attempts=attempts,
        backoff_multiplier=0.0,
        backoff_min=0.0,
        backoff_max=0.0,
        call_timeout_ms=call_timeout_ms,
    )


@pytest.mark.asyncio
async def test_transient_failures_are_retried_until_success():
    tool = FlakyTool("flaky", failures=2, insights=["recovered"])
    data, insights = await invoke_tool(
        tool, {}, tool_id="flaky", policy=fast_policy(), deadline=ExecutionDeadline()
    )
    assert tool.calls == 3
    assert data == {"success": True, "attempt": 3}
    assert insights == ["recovered"]


@pytest.mark.asyncio
async def test_last_error_is_raised_when_attempts_run_out():
    tool = FailingTool("broken", message="database unreachable")
    with pytest.raises(RuntimeError, match="database unreachable"):
        await invoke_tool(
            tool, {}, tool_id="broken", policy=fast_policy(attempts=2), deadline=ExecutionDeadline()
        )
    assert tool.calls == 2


def test_speed_priority_uses_a_single_attempt():
    cfg = ExecutorConfig(retry_attempts=4)
    assert RetryPolicy.from_config(cfg).attempts == 4
    assert RetryPolicy.from_config(cfg, "accuracy").attempts == 4
    assert RetryPolicy.from_config(cfg, "speed").attempts == 1


def test_zero_tool_timeout_means_no_per_call_limit():
    cfg = ExecutorConfig(tool_timeout_ms=0)
    assert RetryPolicy.from_config(cfg).call_timeout_ms is None


@pytest.mark.asyncio
async def test_slow_tool_times_out_per_attempt():
    tool = RecordingTool("slow", delay_seconds=1.0)
    with pytest.raises(ToolTimeoutError, match="timed out"):
        await invoke_tool(
            tool,
            {},
            tool_id="slow",
            policy=fast_policy(attempts=2, call_timeout_ms=20),
            deadline=ExecutionDeadline(),
        )
    assert len(tool.calls) == 2


@pytest.mark.asyncio
async def test_expired_deadline_is_not_retried():
    tool = RecordingTool("fast")
    deadline = ExecutionDeadline(timeout_ms=1)
    await asyncio.sleep(0.01)
    assert deadline.expired

    with pytest.raises(DeadlineExceededError):
        await invoke_tool(tool, {}, tool_id="fast", policy=fast_policy(), deadline=deadline)
    assert tool.calls == []


@pytest.mark.asyncio
async def test_deadline_shorter_than_call_timeout_raises_deadline_error():
    tool = RecordingTool("slow", delay_seconds=1.0)
    deadline = ExecutionDeadline(timeout_ms=30)
    with pytest.raises(DeadlineExceededError):
        await invoke_tool(
            tool, {}, tool_id="slow", policy=fast_policy(call_timeout_ms=5_000), deadline=deadline
        )
    assert len(tool.calls) == 1


def test_unbounded_deadline():
    deadline = ExecutionDeadline()
    assert deadline.remaining() is None
    assert not deadline.expired
    assert deadline.attempt_timeout(None) == (None, False)
    assert deadline.attempt_timeout(1_500) == (1.5, False)


def test_normalize_canonical_shape():
    data, insights = normalize_tool_output(
        {"data": {"rows": [1, 2]}, "insights": ["two rows", 3, None]}
    )
    assert data == {"rows": [1, 2]}
    assert insights == ["two rows"]


def test_normalize_wraps_non_mapping_data():
    data, insights = normalize_tool_output({"data": [1, 2, 3]})
    assert data == {"result": [1, 2, 3]}
    assert insights == []


def test_normalize_plain_mapping_and_scalars():
    assert normalize_tool_output({"total": 5, "insights": ["x"]}) == ({"total": 5}, ["x"])
    assert normalize_tool_output(None) == ({}, [])
    assert normalize_tool_output("42 rows") == ({"result": "42 rows"}, [])
