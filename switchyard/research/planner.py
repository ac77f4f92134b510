"""Research planner — LLM decomposition of a query into subagent tasks.

Planning never raises on malformed LLM output: the reply is parsed into a
tagged ``PlanParseOk`` / ``PlanParseErr`` and an error falls back to a
single general task covering the whole query.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from switchyard.llm.factory import LLMProvider
from switchyard.research.roles import (
    SUBAGENT_ROLES,
    get_default_boundaries,
    get_default_tool_guidance,
)
from switchyard.types import (
    EffortConfig,
    EffortEstimate,
    OutputFormat,
    ResearchPlan,
    SubagentTask,
    SubagentType,
    generate_id,
)

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY = "Run tasks and synthesize results"
DEFAULT_SYNTHESIS_INSTRUCTIONS = "Combine results into a comprehensive response"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

PLANNING_SYSTEM_PROMPT = (
    """\
You are a research planning specialist. Your role is to decompose complex queries into
parallel tasks that can be run by specialized subagents.

Available subagent types:
"""
    + "\n".join(f"- {t.value}: {role.description}" for t, role in SUBAGENT_ROLES.items())
    + """

Output format (JSON):
{
  "strategy": "Brief description of the overall approach",
  "tasks": [
    {
      "id": "unique_task_id",
      "type": "research|code|github|general",
      "objective": "Clear, specific objective for this task",
      "outputFormat": "text|structured|code|citations|actions",
      "priority": 1-10,
      "maxToolCalls": 5,
      "dependsOn": ["task_id_1"],
      "successCriteria": "How to determine if this task succeeded"
    }
  ],
  "synthesisInstructions": "How to combine the results from all tasks"
}

Guidelines:
1. Maximize parallelism - minimize dependencies between tasks
2. Each task should be independently runnable
3. Keep tasks focused and specific
4. Higher priority tasks should be more critical to the final answer"""
)


@dataclass
class PlanParseOk:
    tasks: list[SubagentTask]
    strategy: str
    synthesis_instructions: str


@dataclass
class PlanParseErr:
    reason: str


PlanParseResult = PlanParseOk | PlanParseErr


def build_planning_prompt(
    query: str, effort_estimate: EffortEstimate, effort_config: EffortConfig
) -> str:
    return f"""## Query
{query}

## Resource Constraints
- Maximum subagents: {effort_config.max_subagents}
- Maximum total tool calls: {effort_config.max_tool_calls}
- Maximum tool calls per subagent: {effort_config.max_tool_calls_per_subagent}
- Effort level: {effort_estimate.level.value}
- Expected duration: {effort_estimate.expected_duration.value}

## Instructions
Create a research plan that:
1. Decomposes this query into {min(effort_config.max_subagents, 5)} or fewer parallel tasks
2. Maximizes information gathering within the tool call budget
3. Ensures tasks can be synthesized into a comprehensive answer

Respond with a JSON object following the specified format."""


def _extract_json_object(text: str) -> dict[str, Any] | None:
    match = _JSON_OBJECT.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _normalize_type(value: Any) -> SubagentType:
    try:
        return SubagentType(value)
    except ValueError:
        return SubagentType.GENERAL


def _normalize_format(value: Any) -> OutputFormat:
    try:
        return OutputFormat(value)
    except ValueError:
        return OutputFormat.TEXT


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _pick(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _build_task(raw: dict[str, Any], effort_config: EffortConfig) -> SubagentTask:
    subagent_type = _normalize_type(raw.get("type"))
    depends_on = _pick(raw, "dependsOn", "depends_on")
    max_tool_calls = _as_int(_pick(raw, "maxToolCalls", "max_tool_calls"), 10) or 10
    return SubagentTask(
        id=str(raw.get("id") or generate_id("task")),
        type=subagent_type,
        objective=str(raw.get("objective") or "Complete the assigned task"),
        output_format=_normalize_format(_pick(raw, "outputFormat", "output_format")),
        tool_guidance=get_default_tool_guidance(subagent_type),
        boundaries=get_default_boundaries(subagent_type),
        max_tool_calls=min(max(1, max_tool_calls), effort_config.max_tool_calls_per_subagent),
        priority=max(1, min(10, _as_int(raw.get("priority"), 5) or 5)),
        depends_on=[str(d) for d in depends_on] if isinstance(depends_on, list) else [],
        success_criteria=str(
            _pick(raw, "successCriteria", "success_criteria") or "Task completed successfully"
        ),
    )


def _dedupe_task_ids(tasks: list[SubagentTask]) -> list[SubagentTask]:
    """Suffix repeated ids (``t1``, ``t1_2``, ...); dependencies keep the first."""
    seen: set[str] = set()
    for task in tasks:
        if task.id in seen:
            n = 2
            while f"{task.id}_{n}" in seen:
                n += 1
            logger.warning("Duplicate task id %r renamed to %r", task.id, f"{task.id}_{n}")
            task.id = f"{task.id}_{n}"
        seen.add(task.id)
    return tasks


def parse_plan_response(response: str, effort_config: EffortConfig) -> PlanParseResult:
    """Parse the planner reply; never raises."""
    parsed = _extract_json_object(response)
    if parsed is None:
        return PlanParseErr("No JSON object found in plan response")

    raw_tasks = parsed.get("tasks")
    if not isinstance(raw_tasks, list):
        return PlanParseErr("Plan response has no task list")

    tasks = _dedupe_task_ids(
        [_build_task(item, effort_config) for item in raw_tasks if isinstance(item, dict)]
    )
    if not tasks:
        return PlanParseErr("Plan response contains no usable tasks")

    return PlanParseOk(
        tasks=tasks[: effort_config.max_subagents],
        strategy=str(parsed.get("strategy") or DEFAULT_STRATEGY),
        synthesis_instructions=str(
            _pick(parsed, "synthesisInstructions", "synthesis_instructions")
            or DEFAULT_SYNTHESIS_INSTRUCTIONS
        ),
    )


def create_fallback_tasks(effort_config: EffortConfig) -> list[SubagentTask]:
    return [
        SubagentTask(
            id=generate_id("task"),
            type=SubagentType.GENERAL,
            objective="Complete the user's request to the best of your ability",
            output_format=OutputFormat.TEXT,
            tool_guidance=get_default_tool_guidance(SubagentType.GENERAL),
            boundaries=get_default_boundaries(SubagentType.GENERAL),
            max_tool_calls=effort_config.max_tool_calls_per_subagent,
            priority=5,
            depends_on=[],
            success_criteria="User request addressed",
        )
    ]


def extract_strategy(response: str) -> str:
    parsed = _extract_json_object(response)
    if parsed and parsed.get("strategy"):
        return str(parsed["strategy"])
    return DEFAULT_STRATEGY


def extract_synthesis_instructions(response: str) -> str:
    parsed = _extract_json_object(response)
    if parsed:
        value = _pick(parsed, "synthesisInstructions", "synthesis_instructions")
        if value:
            return str(value)
    return DEFAULT_SYNTHESIS_INSTRUCTIONS


def validate_plan_dependencies(tasks: list[SubagentTask]) -> list[str]:
    """Report dangling references, self-dependencies and cycles."""
    errors: list[str] = []
    task_ids = {task.id for task in tasks}
    by_id = {task.id: task for task in tasks}

    for task in tasks:
        for dep in task.depends_on:
            if dep == task.id:
                errors.append(f'Task "{task.id}" cannot depend on itself')
            elif dep not in task_ids:
                errors.append(f'Task "{task.id}" depends on non-existent task "{dep}"')

    visited: set[str] = set()
    on_stack: set[str] = set()

    def has_cycle(task_id: str) -> bool:
        visited.add(task_id)
        on_stack.add(task_id)
        task = by_id.get(task_id)
        if task is not None:
            for dep in task.depends_on:
                if dep not in by_id or dep == task_id:
                    continue
                if dep not in visited:
                    if has_cycle(dep):
                        return True
                elif dep in on_stack:
                    return True
        on_stack.discard(task_id)
        return False

    for task in tasks:
        if task.id not in visited and has_cycle(task.id):
            errors.append("Plan contains circular dependencies")
            break

    return errors


async def create_research_plan(
    query: str,
    effort_estimate: EffortEstimate,
    effort_config: EffortConfig,
    provider: LLMProvider,
    trace_id: str = "",
) -> ResearchPlan:
    """Ask the LLM for a plan. Provider errors propagate; parse errors do not."""
    response = await provider.chat(
        [
            {"role": "system", "content": PLANNING_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": build_planning_prompt(query, effort_estimate, effort_config),
            },
        ]
    )

    parsed = parse_plan_response(response.content, effort_config)
    if isinstance(parsed, PlanParseOk):
        tasks = parsed.tasks
        strategy = parsed.strategy
        instructions = parsed.synthesis_instructions
    else:
        logger.warning(
            "[%s] Plan parse failed (%s), using single-task fallback", trace_id, parsed.reason
        )
        tasks = create_fallback_tasks(effort_config)
        strategy = extract_strategy(response.content)
        instructions = extract_synthesis_instructions(response.content)

    return ResearchPlan(
        plan_id=generate_id("plan"),
        query=query,
        strategy=strategy,
        subagent_tasks=tasks,
        synthesis_instructions=instructions,
        effort_estimate=effort_estimate,
    )
