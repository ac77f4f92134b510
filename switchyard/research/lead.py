"""Lead researcher — plan, schedule, execute and synthesize one query."""

from __future__ import annotations

import logging
import time
from typing import Any

from switchyard.llm.factory import LLMProvider
from switchyard.research.effort import estimate_effort_level, get_effort_config_from_estimate
from switchyard.research.executor import SubagentExecutor, SubagentNamespace
from switchyard.research.observability import PerformanceMonitor, ResearchTrace
from switchyard.research.planner import create_research_plan, validate_plan_dependencies
from switchyard.research.synthesizer import synthesize_results
from switchyard.state import StateStore
from switchyard.types import (
    AgentContext,
    AgentResult,
    Complexity,
    QueryCategory,
    QueryClassification,
    ResearchHistoryEntry,
    ResearchPlan,
    SubagentResult,
    SubagentTask,
    SubagentType,
    generate_id,
    now_ms,
)

logger = logging.getLogger(__name__)


class LeadResearcher:
    """Owns the current plan and the research history of one actor.

    Usage:
        lead = LeadResearcher(provider, store=JsonFileStateStore(state_dir, "lead"))
        result = await lead.research("Compare the top three vector databases")

    Requests to one instance are expected to run one at a time; the plan
    and history are not guarded against interleaved ``research()`` calls.
    """

    def __init__(
        self,
        provider: LLMProvider,
        store: StateStore | None = None,
        namespaces: dict[SubagentType, SubagentNamespace] | None = None,
        monitor: PerformanceMonitor | None = None,
        max_history: int = 50,
    ) -> None:
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.provider = provider
        self.monitor = monitor
        self.max_history = max_history
        self._store = store
        self._namespaces = namespaces or {}
        self._current_plan: ResearchPlan | None = None
        self._history: list[ResearchHistoryEntry] = []
        if store is not None:
            self._load()

    def _load(self) -> None:
        if self._store is None:
            return
        state = self._store.get() or {}
        for raw in state.get("research_history") or []:
            try:
                self._history.append(ResearchHistoryEntry.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed research history entry: %s", e)
        self._history = self._history[-self.max_history :]

    def _save(self) -> None:
        if self._store is None:
            return
        state = self._store.get() or {}
        state["research_history"] = [entry.to_dict() for entry in self._history]
        self._store.set(state)

    async def research(
        self,
        query: str,
        context: AgentContext | None = None,
        classification: QueryClassification | None = None,
    ) -> AgentResult:
        """Run the full pipeline. Failures come back as an error result."""
        context = context or AgentContext()
        trace_id = context.trace_id or generate_id("trace")
        started = time.monotonic()
        trace = ResearchTrace(trace_id=trace_id, query=query)

        try:
            if classification is not None and classification.effort_estimate is not None:
                estimate = classification.effort_estimate
            else:
                estimate = estimate_effort_level(
                    classification.complexity if classification else Complexity.MEDIUM,
                    classification.category if classification else QueryCategory.GENERAL,
                    len(query),
                )
            effort_config = get_effort_config_from_estimate(estimate)
            logger.info(
                "[%s] Effort %s: %d subagents, %d tool calls",
                trace_id,
                estimate.level.value,
                effort_config.max_subagents,
                effort_config.max_tool_calls,
            )

            plan = await create_research_plan(
                query, estimate, effort_config, self.provider, trace_id=trace_id
            )
            self._current_plan = plan
            logger.info(
                "[%s] Research plan %s created with %d tasks",
                trace_id,
                plan.plan_id,
                len(plan.subagent_tasks),
            )

            for error in validate_plan_dependencies(plan.subagent_tasks):
                logger.warning("[%s] Plan dependency issue: %s", trace_id, error)

            def on_result(task: SubagentTask, result: SubagentResult) -> None:
                trace.record_subagent(result)

            executor = SubagentExecutor(self.provider, self._namespaces, on_result=on_result)
            results = await executor.run_plan(plan, context, trace_id)

            elapsed_ms = int((time.monotonic() - started) * 1000)
            outcome = await synthesize_results(
                plan, results, self.provider, elapsed_ms, trace_id=trace_id
            )
        except Exception as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.error("[%s] Research failed: %s", trace_id, e)
            trace.fail(e)
            self._report(trace)
            return AgentResult.failure(e, duration_ms)

        trace.complete(outcome.summary)
        self._report(trace)

        self._history.append(
            ResearchHistoryEntry(
                plan_id=plan.plan_id,
                query=query,
                summary=outcome.summary,
                timestamp=now_ms(),
            )
        )
        if len(self._history) > self.max_history:
            del self._history[: len(self._history) - self.max_history]
        self._save()

        duration_ms = int((time.monotonic() - started) * 1000)
        return AgentResult(
            success=True,
            content=outcome.response,
            duration_ms=duration_ms,
            data={
                "plan_id": plan.plan_id,
                "summary": outcome.summary.to_dict(),
                "citations": [
                    {
                        "id": c.id,
                        "source": c.source,
                        "content": c.content,
                        "confidence": c.confidence,
                        "timestamp": c.timestamp,
                    }
                    for c in outcome.citations
                ],
                "errors": outcome.errors,
                "trace_id": trace_id,
            },
        )

    def _report(self, trace: ResearchTrace) -> None:
        if self.monitor is not None:
            self.monitor.record_trace(trace)

    def get_current_plan(self) -> ResearchPlan | None:
        return self._current_plan

    @property
    def history(self) -> list[ResearchHistoryEntry]:
        return list(self._history)

    def get_stats(self) -> dict[str, Any]:
        if not self._history:
            return {
                "total_researched": 0,
                "avg_subagent_count": 0.0,
                "avg_duration_ms": 0.0,
                "parallel_efficiency": 0.0,
            }
        n = len(self._history)
        return {
            "total_researched": n,
            "avg_subagent_count": sum(h.summary.subagent_count for h in self._history) / n,
            "avg_duration_ms": sum(h.summary.total_duration_ms for h in self._history) / n,
            "parallel_efficiency": sum(h.summary.parallel_efficiency for h in self._history) / n,
        }

    def clear_history(self) -> None:
        self._history.clear()
        self._current_plan = None
        self._save()
