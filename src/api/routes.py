"""
API Routes.

Defines all API endpoints for the plan executor.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from src.executor import PlanValidationError
from src.graph import PlanExecutor
from src.mcp import ToolRegistry
from src.models import (
    ExecutePlanRequest,
    HealthResponse,
    ToolInfo,
    ValidatePlanRequest,
    ValidatePlanResponse,
)
from src.validation import validate_plan

logger = logging.getLogger(__name__)

router = APIRouter()

API_VERSION = "0.1.0"


def _validation_failed(error: PlanValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={
            "message": str(error),
            "issues": error.details.get("issues", []),
        },
    )


# === Endpoints ===

@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint."""
    registry: ToolRegistry = request.app.state.registry
    return HealthResponse(status="healthy", version=API_VERSION, tools=len(registry))


@router.get("/tools", response_model=list[ToolInfo])
async def list_tools(request: Request) -> list[ToolInfo]:
    """List registered tools and their capability tags."""
    registry: ToolRegistry = request.app.state.registry
    return [ToolInfo(**entry) for entry in registry.describe()]


@router.post("/plans/validate", response_model=ValidatePlanResponse)
async def validate(body: ValidatePlanRequest) -> ValidatePlanResponse:
    """Validate a plan without executing it."""
    result = validate_plan(body.plan, body.skip_steps)
    return ValidatePlanResponse(**result.to_dict())


@router.post("/execute")
async def execute(request: Request, body: ExecutePlanRequest) -> dict[str, Any]:
    """
    Execute an analysis plan and return the full ExecutorOutput.

    Malformed plans are rejected with 422; tool failures are reported
    inside the output.
    """
    executor: PlanExecutor = request.app.state.executor

    try:
        output = await executor.execute(body.plan, body.runtime_adjustments)
    except PlanValidationError as e:
        raise _validation_failed(e) from e

    return output.to_dict()


@router.post("/execute/stream")
async def execute_stream(request: Request, body: ExecutePlanRequest) -> StreamingResponse:
    """Execute a plan, streaming one Server-Sent Event per finished node."""
    executor: PlanExecutor = request.app.state.executor

    try:
        events = executor.stream(body.plan, body.runtime_adjustments)
    except PlanValidationError as e:
        raise _validation_failed(e) from e

    return StreamingResponse(_stream_run(events), media_type="text/event-stream")


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, default=str)}\n\n"


async def _stream_run(events: AsyncIterator[dict[str, Any]]) -> AsyncIterator[str]:
    """Convert graph updates into SSE frames."""
    yield _sse({"type": "RUN_STARTED"})

    try:
        async for event in events:
            for node_name, update in event.items():
                update = update or {}
                frame: dict[str, Any] = {"type": "NODE_FINISHED", "node": node_name}

                if update.get("current_phase"):
                    frame["phase"] = update["current_phase"]
                if node_name == "collect_data":
                    frame["data_collection_results"] = [
                        r.to_dict() for r in update.get("collection_results", [])
                    ]
                if node_name == "execute_step" and update.get("step_results"):
                    frame["step_result"] = update["step_results"][-1].to_dict()

                yield _sse(frame)

                if update.get("output") is not None:
                    yield _sse({"type": "RUN_FINISHED", "output": update["output"].to_dict()})

    except Exception as e:
        logger.error(f"[API] Streaming error: {e}")
        yield _sse({"type": "RUN_ERROR", "message": str(e)})
