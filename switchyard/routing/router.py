"""Router agent — classify, decide, record and dispatch one query."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from switchyard.llm.factory import LLMProvider
from switchyard.routing.classifier import ClassificationContext, Classifier
from switchyard.routing.decision import determine_route_target
from switchyard.routing.monitoring import RoutingMonitor, RoutingStats
from switchyard.state import StateStore
from switchyard.types import (
    AgentContext,
    AgentResult,
    DispatchError,
    QueryClassification,
    RouteTarget,
    RoutingHistoryEntry,
    generate_id,
    now_ms,
)

if TYPE_CHECKING:
    from switchyard.research.lead import LeadResearcher

logger = logging.getLogger(__name__)

Handler = Callable[[str, AgentContext, QueryClassification], Awaitable[AgentResult]]

MAX_QUERY_CHARS = 200
MAX_REASONING_CHARS = 100

# Targets answered directly by the LLM when no handler is registered.
_DIRECT_ANSWER_PROMPTS: dict[RouteTarget, str] = {
    RouteTarget.SIMPLE_AGENT: (
        "You are a helpful assistant. Answer the user's message directly and concisely."
    ),
    RouteTarget.CODE_WORKER: (
        "You are a senior software engineer. Answer the user's coding question with "
        "working code and a short explanation."
    ),
    RouteTarget.RESEARCH_WORKER: (
        "You are a research assistant. Answer the question with well-organized facts "
        "and note any uncertainty."
    ),
    RouteTarget.GITHUB_WORKER: (
        "You are a GitHub assistant. Explain how to accomplish the requested repository "
        "operation. You cannot perform it yourself."
    ),
}


class RouterAgent:
    """Entry point that sends each query to exactly one handler.

    Handlers are injected per ``RouteTarget``. Without one, the simple agent
    and the workers answer with a single LLM call, the orchestrator target
    uses the injected ``LeadResearcher``, and the HITL target fails.
    """

    def __init__(
        self,
        provider: LLMProvider,
        handlers: dict[RouteTarget, Handler] | None = None,
        lead_researcher: LeadResearcher | None = None,
        store: StateStore | None = None,
        max_history: int = 50,
        debug: bool = False,
    ) -> None:
        self.provider = provider
        self.classifier = Classifier(provider)
        self.handlers = dict(handlers or {})
        self.lead_researcher = lead_researcher
        self.debug = debug
        self._monitor = RoutingMonitor(max_history=max_history, store=store)
        self._last_classification: QueryClassification | None = None

    @property
    def monitor(self) -> RoutingMonitor:
        return self._monitor

    def _classification_context(self, context: AgentContext) -> ClassificationContext:
        recent = context.data.get("recent_messages")
        if not isinstance(recent, list):
            recent = [
                {"role": "user", "content": entry.query} for entry in self._monitor.history(3)
            ]
        tools = context.data.get("available_tools")
        return ClassificationContext(
            platform=context.platform,
            recent_messages=recent,
            available_tools=list(tools) if isinstance(tools, list) else [],
        )

    async def route(self, query: str, context: AgentContext | None = None) -> AgentResult:
        context = context or AgentContext()
        if context.trace_id is None:
            context.trace_id = generate_id("trace")
        trace_id = context.trace_id
        started = time.monotonic()

        try:
            classification = await self.classifier.classify(
                query, self._classification_context(context)
            )
            self._last_classification = classification
            target = determine_route_target(classification)

            if self.debug:
                logger.debug(
                    "[%s] %r -> %s (%s)",
                    trace_id,
                    query[:50],
                    target.value,
                    classification.reasoning[:MAX_REASONING_CHARS],
                )
            else:
                logger.info("[%s] Routing to %s", trace_id, target.value)

            self._monitor.record(
                RoutingHistoryEntry(
                    query=query[:MAX_QUERY_CHARS],
                    classification=QueryClassification(
                        type=classification.type,
                        category=classification.category,
                        complexity=classification.complexity,
                        requires_human_approval=classification.requires_human_approval,
                        reasoning=classification.reasoning[:MAX_REASONING_CHARS],
                        confidence=classification.confidence,
                        suggested_tools=classification.suggested_tools,
                    ),
                    routed_to=target,
                    timestamp=now_ms(),
                    duration_ms=int((time.monotonic() - started) * 1000),
                )
            )

            result = await self.dispatch(target, query, context, classification)
        except Exception as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.error("[%s] Routing failed: %s", trace_id, e)
            return AgentResult.failure(e, duration_ms)

        result.data.setdefault("routed_to", target.value)
        result.data.setdefault("classification", classification.to_dict())
        result.data.setdefault("trace_id", trace_id)
        return result

    async def dispatch(
        self,
        target: RouteTarget,
        query: str,
        context: AgentContext,
        classification: QueryClassification,
    ) -> AgentResult:
        handler = self.handlers.get(target)
        if handler is not None:
            return await handler(query, context, classification)

        if target == RouteTarget.ORCHESTRATOR_AGENT:
            if self.lead_researcher is None:
                raise DispatchError("orchestrator-agent not available")
            return await self.lead_researcher.research(query, context, classification)

        if target == RouteTarget.HITL_AGENT:
            raise DispatchError("hitl-agent not available")

        return await self._answer_directly(target, query)

    async def _answer_directly(self, target: RouteTarget, query: str) -> AgentResult:
        started = time.monotonic()
        response = await self.provider.chat(
            [
                {"role": "system", "content": _DIRECT_ANSWER_PROMPTS[target]},
                {"role": "user", "content": query},
            ]
        )
        return AgentResult(
            success=True,
            content=response.content,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def get_stats(self) -> RoutingStats:
        return self._monitor.basic_stats()

    def get_routing_history(self, limit: int | None = None) -> list[RoutingHistoryEntry]:
        return self._monitor.history(limit)

    def get_last_classification(self) -> QueryClassification | None:
        return self._last_classification

    def clear_history(self) -> None:
        self._monitor.clear()
        self._last_classification = None
