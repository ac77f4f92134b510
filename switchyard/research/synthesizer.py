"""Result synthesis — aggregate subagent outputs into one response."""

from __future__ import annotations

import json
import logging

from switchyard.llm.factory import LLMProvider
from switchyard.types import (
    Citation,
    ResearchPlan,
    ResearchResult,
    ResearchSummary,
    SubagentResult,
)

logger = logging.getLogger(__name__)

SYNTHESIS_SYSTEM_PROMPT = """\
You are a research synthesis specialist. Multiple subagents have worked on parts of
one query. Combine their outputs into a single, coherent answer.

Rules:
1. Preserve citation markers such as [1] exactly as they appear in the inputs
2. Resolve conflicts between subagents explicitly rather than silently picking one
3. Say clearly what could not be determined when subagents failed
4. Do not invent facts that none of the subagents reported"""


def summarize_results(results: list[SubagentResult], total_duration_ms: int) -> ResearchSummary:
    """Run statistics; ``total_duration_ms`` is wall clock since research started."""
    success_count = sum(1 for r in results if r.success)
    summed = sum(r.duration_ms for r in results)
    return ResearchSummary(
        subagent_count=len(results),
        success_count=success_count,
        failure_count=len(results) - success_count,
        total_tool_calls=sum(r.tool_call_count for r in results),
        total_duration_ms=total_duration_ms,
        parallel_efficiency=total_duration_ms / summed if summed > 0 else 1.0,
    )


def collect_citations(results: list[SubagentResult]) -> list[Citation]:
    return [citation for result in results for citation in result.citations]


def collect_errors(results: list[SubagentResult]) -> list[str]:
    return [f"{r.task_id}: {r.error or 'Unknown error'}" for r in results if not r.success]


def _format_result(result: SubagentResult) -> str:
    if not result.success:
        return f"### Task: {result.task_id}\nStatus: failed\nError: {result.error or 'Unknown error'}"
    body = result.content or ""
    if result.data is not None and not body:
        body = json.dumps(result.data, indent=2, default=str)
    return f"### Task: {result.task_id}\nStatus: succeeded\n{body}"


def build_synthesis_prompt(plan: ResearchPlan, results: list[SubagentResult]) -> str:
    findings = "\n\n".join(_format_result(r) for r in results) or "No subagent results."
    return f"""## Original Query
{plan.query}

## Strategy
{plan.strategy}

## Subagent Results
{findings}

## Synthesis Instructions
{plan.synthesis_instructions}

Write the final answer. Keep every citation marker such as [1] from the results."""


async def synthesize_results(
    plan: ResearchPlan,
    results: list[SubagentResult],
    provider: LLMProvider,
    total_duration_ms: int,
    trace_id: str = "",
) -> ResearchResult:
    """Build the final response. Provider errors propagate to the caller."""
    summary = summarize_results(results, total_duration_ms)
    logger.info(
        "[%s] Synthesizing %d results (%d ok, %d failed)",
        trace_id,
        summary.subagent_count,
        summary.success_count,
        summary.failure_count,
    )

    response = await provider.chat(
        [
            {"role": "system", "content": SYNTHESIS_SYSTEM_PROMPT},
            {"role": "user", "content": build_synthesis_prompt(plan, results)},
        ]
    )

    return ResearchResult(
        plan_id=plan.plan_id,
        response=response.content,
        summary=summary,
        subagent_results=results,
        citations=collect_citations(results),
        errors=collect_errors(results),
    )
