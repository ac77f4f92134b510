"""Subagent execution — per-level fan-out with failure isolation.

A task is performed by a remote subagent when a namespace for its type is
registered, otherwise inline with a single LLM call. Both implement the
same ``Subagent`` interface; selection is by availability.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from switchyard.llm.factory import LLMProvider
from switchyard.research.roles import (
    build_subagent_prompt,
    format_dependency_context,
    get_tools_for_type,
    snapshot_results,
)
from switchyard.research.scheduler import group_tasks_by_dependency_level
from switchyard.types import (
    AgentContext,
    Citation,
    DelegationContext,
    OutputFormat,
    ResearchPlan,
    SubagentResult,
    SubagentTask,
    SubagentType,
    generate_id,
)

logger = logging.getLogger(__name__)

_CITATION_REF = re.compile(r"\[(\d+)\]")
_CITATION_DEF = re.compile(r"^\s*\[(\d+)\]\s*(\S.*)$", re.MULTILINE)
_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class Subagent(Protocol):
    """Anything that can perform one delegated task."""

    async def perform(
        self, delegation: DelegationContext, context: AgentContext
    ) -> SubagentResult: ...


class SubagentNamespace(Protocol):
    """Addressable subagents with lookup-or-create semantics by name."""

    async def get(self, name: str) -> Subagent: ...


def extract_citations(content: str) -> list[Citation]:
    """Citations whose number is used in the text and defined as ``[n] source``.

    Definition lines start with the marker; markers elsewhere count as
    in-text references. A number that is only defined, or only referenced,
    yields no citation.
    """
    body = _CITATION_DEF.sub("", content)
    referenced = set(_CITATION_REF.findall(body))
    citations: list[Citation] = []
    seen: set[str] = set()
    for number, source in _CITATION_DEF.findall(content):
        if number in referenced and number not in seen:
            seen.add(number)
            citations.append(Citation(id=generate_id("cite"), source=source.strip()))
    return citations


def parse_structured_output(content: str) -> Any:
    for pattern in (_FENCED_JSON, _JSON_OBJECT):
        match = pattern.search(content)
        if not match:
            continue
        text = match.group(1) if pattern is _FENCED_JSON else match.group(0)
        try:
            return json.loads(text.strip())
        except json.JSONDecodeError:
            continue
    return {"raw": content}


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class InlineSubagent:
    """Performs a task with a single LLM call."""

    def __init__(self, subagent_type: SubagentType, provider: LLMProvider) -> None:
        self.subagent_type = subagent_type
        self.provider = provider

    async def perform(
        self, delegation: DelegationContext, context: AgentContext
    ) -> SubagentResult:
        started = time.monotonic()
        system_prompt, user_prompt = build_subagent_prompt(self.subagent_type, delegation)
        response = await self.provider.chat(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ]
        )

        citations = (
            extract_citations(response.content)
            if delegation.output_format == OutputFormat.CITATIONS
            else []
        )
        data = (
            parse_structured_output(response.content)
            if delegation.output_format == OutputFormat.STRUCTURED
            else None
        )
        return SubagentResult(
            task_id="",
            success=True,
            content=response.content,
            data=data,
            citations=citations,
            tool_call_count=0,
            duration_ms=_elapsed_ms(started),
            tokens_used=response.total_tokens,
        )


class LocalSubagentNamespace:
    """In-process namespace; each name maps to one lazily created subagent."""

    def __init__(self, factory: Callable[[str], Subagent]) -> None:
        self._factory = factory
        self._instances: dict[str, Subagent] = {}
        self._lock = asyncio.Lock()

    async def get(self, name: str) -> Subagent:
        async with self._lock:
            if name not in self._instances:
                self._instances[name] = self._factory(name)
            return self._instances[name]

    def __contains__(self, name: object) -> bool:
        return name in self._instances


ProgressCallback = Callable[[SubagentTask, SubagentResult], Awaitable[None] | None]


class SubagentExecutor:
    """Runs a plan level by level; tasks within a level run concurrently."""

    def __init__(
        self,
        provider: LLMProvider,
        namespaces: dict[SubagentType, SubagentNamespace] | None = None,
        on_result: ProgressCallback | None = None,
    ) -> None:
        self.provider = provider
        self.namespaces = namespaces or {}
        self._on_result = on_result

    def build_delegation(
        self, task: SubagentTask, previous_results: dict[str, dict[str, Any]]
    ) -> DelegationContext:
        return DelegationContext(
            objective=task.objective,
            output_format=task.output_format,
            tool_list=get_tools_for_type(task.type),
            tool_guidance=list(task.tool_guidance),
            must_do=[task.success_criteria],
            must_not_do=list(task.boundaries),
            scope_limit=f"Maximum {task.max_tool_calls} tool calls",
            success_criteria=task.success_criteria,
            previous_context=format_dependency_context(previous_results),
        )

    async def resolve_subagent(self, task: SubagentTask, trace_id: str) -> Subagent:
        namespace = self.namespaces.get(task.type)
        if namespace is not None:
            return await namespace.get(f"{trace_id}_{task.id}")
        return InlineSubagent(task.type, self.provider)

    async def run_task(
        self,
        task: SubagentTask,
        previous_results: dict[str, dict[str, Any]],
        context: AgentContext,
        trace_id: str,
    ) -> SubagentResult:
        """Perform one task. Never raises; failures become failed results."""
        started = time.monotonic()
        try:
            delegation = self.build_delegation(task, previous_results)
            subagent = await self.resolve_subagent(task, trace_id)
            task_context = AgentContext(
                trace_id=f"{trace_id}_{task.id}",
                chat_id=context.chat_id,
                platform=context.platform,
                data=dict(context.data),
            )
            result = await subagent.perform(delegation, task_context)
            result.task_id = task.id
            result.duration_ms = _elapsed_ms(started)
            return result
        except Exception as e:
            logger.error("[%s] Subagent task %s failed: %s", trace_id, task.id, e)
            return SubagentResult(
                task_id=task.id,
                success=False,
                error=str(e) or type(e).__name__,
                duration_ms=_elapsed_ms(started),
            )

    async def _notify(self, task: SubagentTask, result: SubagentResult) -> None:
        if self._on_result is None:
            return
        try:
            outcome = self._on_result(task, result)
            if asyncio.iscoroutine(outcome):
                await outcome
        except Exception as e:
            logger.warning("Result callback failed for %s: %s", task.id, e)

    async def run_level(
        self,
        tasks: list[SubagentTask],
        previous_results: dict[str, dict[str, Any]],
        context: AgentContext,
        trace_id: str,
    ) -> list[SubagentResult]:
        """Run every task in a level and wait for all of them to settle."""
        outcomes = await asyncio.gather(
            *(self.run_task(task, previous_results, context, trace_id) for task in tasks),
            return_exceptions=True,
        )

        results: list[SubagentResult] = []
        for task, outcome in zip(tasks, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                result = SubagentResult(
                    task_id=task.id, success=False, error=str(outcome) or "Task failed"
                )
            else:
                result = outcome
            await self._notify(task, result)
            results.append(result)
        return results

    async def run_plan(
        self, plan: ResearchPlan, context: AgentContext, trace_id: str
    ) -> list[SubagentResult]:
        levels = group_tasks_by_dependency_level(plan.subagent_tasks)
        logger.info(
            "[%s] Running %d subagents in %d levels %s",
            trace_id,
            len(plan.subagent_tasks),
            len(levels),
            [len(level) for level in levels],
        )

        results: dict[str, SubagentResult] = {}
        ordered: list[SubagentResult] = []
        for level in levels:
            previous_results = snapshot_results(results)
            for result in await self.run_level(level, previous_results, context, trace_id):
                results[result.task_id] = result
                ordered.append(result)
        return ordered
