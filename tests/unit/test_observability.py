"""Tests for research traces and the performance monitor."""

from __future__ import annotations

import pytest

from switchyard.research.observability import PerformanceMonitor, ResearchTrace
from switchyard.types import ResearchSummary, SubagentResult


def _trace(trace_id: str, duration_ms: int, ok: bool = True, subagents: int = 2) -> ResearchTrace:
    trace = ResearchTrace(trace_id=trace_id, query="q", started_at=1000)
    if ok:
        trace.complete(
            ResearchSummary(
                subagent_count=subagents,
                success_count=subagents,
                failure_count=0,
                total_tool_calls=4,
                total_duration_ms=duration_ms,
                parallel_efficiency=0.5,
            )
        )
    else:
        trace.fail(RuntimeError("planner down"))
    trace.ended_at = 1000 + duration_ms
    return trace


def test_trace_records_subagents():
    trace = ResearchTrace(trace_id="t", query="q")
    trace.record_subagent(SubagentResult(task_id="a", success=True, duration_ms=5, tokens_used=9))
    trace.record_subagent(SubagentResult(task_id="b", success=False, error="x"))
    assert [m.task_id for m in trace.subagents] == ["a", "b"]
    assert trace.subagents[0].tokens_used == 9


def test_failed_trace_keeps_error():
    trace = _trace("t", 10, ok=False)
    assert trace.succeeded is False
    assert trace.error == "planner down"


def test_monitor_stats():
    monitor = PerformanceMonitor()
    monitor.record_trace(_trace("a", 100))
    monitor.record_trace(_trace("b", 300, subagents=4))
    monitor.record_trace(_trace("c", 200, ok=False))
    stats = monitor.get_stats()
    assert stats["total_traces"] == 3
    assert stats["success_rate"] == pytest.approx(200 / 3)
    assert stats["avg_duration_ms"] == pytest.approx(200)
    assert stats["p95_duration_ms"] == 300
    assert stats["avg_parallel_efficiency"] == pytest.approx(0.5)


def test_monitor_buffer_is_bounded_and_resettable():
    monitor = PerformanceMonitor(max_traces=2)
    for i in range(3):
        monitor.record_trace(_trace(f"t{i}", 10))
    assert [t.trace_id for t in monitor.traces] == ["t1", "t2"]
    monitor.reset()
    assert monitor.get_stats()["total_traces"] == 0


def test_monitors_are_independent():
    first, second = PerformanceMonitor(), PerformanceMonitor()
    first.record_trace(_trace("a", 1))
    assert second.get_stats()["total_traces"] == 0
