"""Research traces and an injectable performance monitor."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from switchyard.types import ResearchSummary, SubagentResult, now_ms

logger = logging.getLogger(__name__)


@dataclass
class ExecutionMetrics:
    task_id: str
    success: bool
    duration_ms: int
    tool_call_count: int = 0
    tokens_used: int | None = None

    @classmethod
    def from_result(cls, result: SubagentResult) -> ExecutionMetrics:
        return cls(
            task_id=result.task_id,
            success=result.success,
            duration_ms=result.duration_ms,
            tool_call_count=result.tool_call_count,
            tokens_used=result.tokens_used,
        )


@dataclass
class ResearchTrace:
    """One ``research()`` run, from start to completion or failure."""

    trace_id: str
    query: str
    started_at: int = field(default_factory=now_ms)
    ended_at: int | None = None
    subagent_count: int = 0
    total_tool_calls: int = 0
    parallel_efficiency: float = 0.0
    subagents: list[ExecutionMetrics] = field(default_factory=list)
    succeeded: bool = False
    error: str | None = None

    @property
    def duration_ms(self) -> int:
        end = self.ended_at if self.ended_at is not None else now_ms()
        return max(0, end - self.started_at)

    def record_subagent(self, result: SubagentResult) -> None:
        self.subagents.append(ExecutionMetrics.from_result(result))

    def complete(self, summary: ResearchSummary) -> None:
        self.ended_at = now_ms()
        self.subagent_count = summary.subagent_count
        self.total_tool_calls = summary.total_tool_calls
        self.parallel_efficiency = summary.parallel_efficiency
        self.succeeded = True

    def fail(self, error: BaseException | str) -> None:
        self.ended_at = now_ms()
        self.subagent_count = len(self.subagents)
        self.succeeded = False
        self.error = str(error)


class PerformanceMonitor:
    """Collects completed traces in a bounded buffer.

    Passed explicitly to the components that report to it; there is no
    process-wide instance.
    """

    def __init__(self, max_traces: int = 100) -> None:
        if max_traces < 1:
            raise ValueError("max_traces must be at least 1")
        self._traces: deque[ResearchTrace] = deque(maxlen=max_traces)

    def record_trace(self, trace: ResearchTrace) -> None:
        self._traces.append(trace)
        logger.debug(
            "[%s] Trace recorded: %s in %dms",
            trace.trace_id,
            "ok" if trace.succeeded else "failed",
            trace.duration_ms,
        )

    @property
    def traces(self) -> list[ResearchTrace]:
        return list(self._traces)

    def get_stats(self) -> dict[str, Any]:
        traces = list(self._traces)
        if not traces:
            return {
                "total_traces": 0,
                "success_rate": 0.0,
                "avg_duration_ms": 0.0,
                "p95_duration_ms": 0.0,
                "avg_subagents": 0.0,
                "avg_parallel_efficiency": 0.0,
            }

        n = len(traces)
        durations = sorted(t.duration_ms for t in traces)
        succeeded = [t for t in traces if t.succeeded]
        return {
            "total_traces": n,
            "success_rate": len(succeeded) / n * 100,
            "avg_duration_ms": sum(durations) / n,
            "p95_duration_ms": float(durations[(95 * n) // 100]),
            "avg_subagents": sum(t.subagent_count for t in traces) / n,
            "avg_parallel_efficiency": (
                sum(t.parallel_efficiency for t in succeeded) / len(succeeded)
                if succeeded
                else 0.0
            ),
        }

    def reset(self) -> None:
        self._traces.clear()
