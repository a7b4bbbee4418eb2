"""
Data Collector.

Resolves each data requirement of a plan to a tool, invokes it, scores the
quality of what came back and records the data into the run state keyed by
requirement source. Failures are kept as zero-quality results.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

from src.utils import elapsed_ms

from .invocation import ExecutionDeadline, RetryPolicy, invoke_tool
from .models import DataCollectionResult, DataRequirement, ExecutionState

if TYPE_CHECKING:
    from src.mcp.registry import ToolRegistry

logger = logging.getLogger(__name__)


QUALITY_THRESHOLD = 0.5


def assess_data_quality(data: dict[str, Any]) -> float:
    """
    Heuristic quality of collected data in [0, 1].

    Base 0.5, +0.2 for a non-empty mapping, +0.2 when the tool reported
    ``success=True``, +0.1 for a non-empty ``result`` string.
    """
    score = 0.5
    if data:
        score += 0.2
    if data.get("success") is True:
        score += 0.2
    result = data.get("result")
    if isinstance(result, str) and result:
        score += 0.1
    return min(1.0, score)


@dataclass
class _Collected:
    """Outcome of one requirement before it is committed to the state."""

    requirement: DataRequirement
    data: dict[str, Any] = field(default_factory=dict)
    quality_score: float = 0.0
    errors: list[str] = field(default_factory=list)
    tool_id: str | None = None
    time_ms: int = 0


class DataCollector:
    """
    Collects data for every requirement of a plan.

    Requirements are processed in plan order; with ``parallel=True`` they are
    fetched concurrently but still committed in plan order.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        policy: RetryPolicy | None = None,
        deadline: ExecutionDeadline | None = None,
        *,
        parallel: bool = False,
    ):
        self.registry = registry
        self.policy = policy or RetryPolicy()
        self.deadline = deadline or ExecutionDeadline()
        self.parallel = parallel

    async def collect(
        self,
        requirements: Sequence[DataRequirement],
        state: ExecutionState,
    ) -> list[DataCollectionResult]:
        """
        Collect data for all requirements.

        Args:
            requirements: Plan data requirements, in order
            state: Run state; ``collected_data`` is populated in place

        Returns:
            One DataCollectionResult per requirement, in plan order
        """
        if self.parallel:
            outcomes = await asyncio.gather(*(self._collect_one(r) for r in requirements))
        else:
            outcomes = [await self._collect_one(r) for r in requirements]

        results = []
        for outcome in outcomes:
            results.append(self._commit(outcome, state))

        failed = sum(1 for r in results if r.quality_score == 0)
        logger.info(f"[Collector] Collected {len(results)} sources ({failed} failed)")
        return results

    async def _collect_one(self, requirement: DataRequirement) -> _Collected:
        start = time.perf_counter()
        outcome = _Collected(requirement=requirement)

        tool_id = self.registry.resolve(requirement)
        if tool_id is None:
            outcome.errors.append(
                f"No suitable tool found for requirement type: {requirement.type.value}"
            )
            outcome.time_ms = elapsed_ms(start)
            logger.warning(f"[Collector] No tool for {requirement.source} ({requirement.type.value})")
            return outcome

        outcome.tool_id = tool_id
        try:
            data, _ = await invoke_tool(
                self.registry.get(tool_id),
                dict(requirement.parameters),
                tool_id=tool_id,
                policy=self.policy,
                deadline=self.deadline,
            )
        except Exception as e:
            logger.error(f"[Collector] {requirement.source} via {tool_id} failed: {e}")
            outcome.errors.append(str(e) or e.__class__.__name__)
            outcome.time_ms = elapsed_ms(start)
            return outcome

        outcome.data = data
        outcome.quality_score = assess_data_quality(data)
        if outcome.quality_score < QUALITY_THRESHOLD:
            outcome.errors.append(f"Data quality below threshold: {outcome.quality_score}")
        outcome.time_ms = elapsed_ms(start)
        return outcome

    def _commit(self, outcome: _Collected, state: ExecutionState) -> DataCollectionResult:
        source = outcome.requirement.source
        state.collected_data[source] = outcome.data
        return DataCollectionResult(
            data_source=source,
            data_collected=outcome.data,
            quality_score=outcome.quality_score,
            collection_time_ms=outcome.time_ms,
            errors=tuple(outcome.errors) or None,
            tool_id=outcome.tool_id,
        )
