"""Subagent roles — prompts, tools, guidance and boundaries per task type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from switchyard.types import DelegationContext, OutputFormat, SubagentResult, SubagentType


@dataclass(frozen=True)
class SubagentRole:
    """A specialized role for one subagent type."""

    type: SubagentType
    description: str
    system_prompt: str
    tools: tuple[str, ...]
    tool_guidance: tuple[str, ...]
    boundaries: tuple[str, ...]


SUBAGENT_ROLES: dict[SubagentType, SubagentRole] = {
    SubagentType.RESEARCH: SubagentRole(
        type=SubagentType.RESEARCH,
        description="Web search, documentation lookup, fact-finding",
        system_prompt="""\
You are a **Research Subagent** specializing in information gathering.

Research methodology:
1. Start with broad searches to understand the landscape
2. Narrow down to the most authoritative sources
3. Extract key facts, figures and dates
4. Cite every claim with a numbered marker like [1]

End your answer with a source list, one per line: `[n] title or URL`.
""",
        tools=("web_search", "fetch_url", "read_documentation"),
        tool_guidance=(
            "Prefer official documentation and primary sources",
            "Run independent searches in parallel",
            "Stop searching once the objective is answered",
        ),
        boundaries=(
            "Do not speculate beyond what sources support",
            "Do not modify any files or external state",
        ),
    ),
    SubagentType.CODE: SubagentRole(
        type=SubagentType.CODE,
        description="Code analysis, generation, review",
        system_prompt="""\
You are a **Code Subagent** specializing in reading and writing code.

Your primary responsibilities:
- Analyze existing code for structure, bugs and risks
- Propose or generate focused, minimal code changes
- Explain trade-offs briefly

Always include file paths and line references when discussing existing code.
""",
        tools=("read_file", "write_file", "run_command", "git"),
        tool_guidance=(
            "Read the relevant files before proposing changes",
            "Keep changes minimal and focused on the objective",
        ),
        boundaries=(
            "Do not run destructive commands",
            "Do not push or publish changes",
        ),
    ),
    SubagentType.GITHUB: SubagentRole(
        type=SubagentType.GITHUB,
        description="GitHub operations (PRs, issues, comments)",
        system_prompt="""\
You are a **GitHub Subagent** specializing in repository collaboration.

Your primary responsibilities:
- Inspect pull requests, diffs and issues
- Summarize review status and open discussions
- Draft comments when asked

Reference PRs and issues by number.
""",
        tools=("get_pr", "create_comment", "get_issue", "list_files", "get_diff"),
        tool_guidance=(
            "Fetch the diff before commenting on a pull request",
            "Quote the relevant lines when raising a concern",
        ),
        boundaries=(
            "Do not merge, close or delete anything",
            "Do not post comments unless the objective asks for it",
        ),
    ),
    SubagentType.GENERAL: SubagentRole(
        type=SubagentType.GENERAL,
        description="General purpose tasks",
        system_prompt="""\
You are a **General Subagent**. Complete the assigned objective accurately and concisely.
""",
        tools=("web_search", "fetch_url"),
        tool_guidance=("Use tools only when the answer needs fresh information",),
        boundaries=("Stay within the assigned objective",),
    ),
}


_OUTPUT_INSTRUCTIONS: dict[OutputFormat, str] = {
    OutputFormat.TEXT: "Respond in clear prose.",
    OutputFormat.STRUCTURED: "Respond with a single JSON object inside a ```json fenced block.",
    OutputFormat.CODE: "Respond with code blocks and short explanations.",
    OutputFormat.CITATIONS: (
        "Cite sources inline as [1], [2], ... and list them at the end as `[n] source`."
    ),
    OutputFormat.ACTIONS: "Respond with a numbered list of concrete actions.",
}


def get_role(subagent_type: SubagentType) -> SubagentRole:
    return SUBAGENT_ROLES[subagent_type]


def get_tools_for_type(subagent_type: SubagentType) -> list[str]:
    return list(SUBAGENT_ROLES[subagent_type].tools)


def get_default_tool_guidance(subagent_type: SubagentType) -> list[str]:
    return list(SUBAGENT_ROLES[subagent_type].tool_guidance)


def get_default_boundaries(subagent_type: SubagentType) -> list[str]:
    return list(SUBAGENT_ROLES[subagent_type].boundaries)


def format_dependency_context(previous_results: dict[str, dict[str, Any]]) -> str:
    """Render results of earlier levels for a dependent task's prompt."""
    if not previous_results:
        return ""

    parts: list[str] = []
    for task_id, result in previous_results.items():
        lines = [f"### Task: {task_id}"]
        if result.get("success"):
            if result.get("content"):
                lines.append(str(result["content"]))
            if result.get("data") is not None:
                lines.append(f"Data: {result['data']}")
        else:
            lines.append(f"Error: {result.get('error') or 'Task failed'}")
        parts.append("\n".join(lines))
    return "\n\n".join(parts)


def snapshot_results(results: dict[str, SubagentResult]) -> dict[str, dict[str, Any]]:
    """Reduce results to what dependent tasks may see."""
    snapshot: dict[str, dict[str, Any]] = {}
    for task_id, result in results.items():
        entry: dict[str, Any] = {"success": result.success}
        if result.content is not None:
            entry["content"] = result.content
        if result.data is not None:
            entry["data"] = result.data
        snapshot[task_id] = entry
    return snapshot


def build_subagent_prompt(
    subagent_type: SubagentType, delegation: DelegationContext
) -> tuple[str, str]:
    """Return (system prompt, user prompt) for an inline subagent call."""
    role = get_role(subagent_type)
    system_parts = [
        role.system_prompt.rstrip(),
        f"Available tools: {', '.join(delegation.tool_list) or 'none'}",
        f"Scope: {delegation.scope_limit}",
    ]
    if delegation.tool_guidance:
        system_parts.append(
            "Tool guidance:\n" + "\n".join(f"- {g}" for g in delegation.tool_guidance)
        )
    if delegation.must_not_do:
        system_parts.append("Do NOT:\n" + "\n".join(f"- {b}" for b in delegation.must_not_do))

    user_parts = [f"## Objective\n{delegation.objective}"]
    if delegation.must_do:
        user_parts.append("## Requirements\n" + "\n".join(f"- {m}" for m in delegation.must_do))
    if delegation.previous_context:
        user_parts.append(f"## Context from earlier tasks\n{delegation.previous_context}")
    user_parts.append(f"## Output format\n{_OUTPUT_INSTRUCTIONS[delegation.output_format]}")

    return "\n\n".join(system_parts), "\n\n".join(user_parts)
