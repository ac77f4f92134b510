"""Route decision — maps a classification to exactly one handler."""

from __future__ import annotations

from switchyard.types import (
    Complexity,
    QueryCategory,
    QueryClassification,
    QueryType,
    RouteTarget,
)

_CATEGORY_TARGETS: dict[QueryCategory, RouteTarget] = {
    QueryCategory.CODE: RouteTarget.CODE_WORKER,
    QueryCategory.RESEARCH: RouteTarget.RESEARCH_WORKER,
    QueryCategory.GITHUB: RouteTarget.GITHUB_WORKER,
}


def determine_route_target(classification: QueryClassification) -> RouteTarget:
    """Pick the handler for a classification.

    Rules are checked in order and the first match wins. Approval checks
    come before complexity and category so that a destructive but simple
    request still reaches a human first.
    """
    if classification.type == QueryType.TOOL_CONFIRMATION:
        return RouteTarget.HITL_AGENT

    if classification.requires_human_approval:
        return RouteTarget.HITL_AGENT

    if classification.complexity == Complexity.HIGH:
        return RouteTarget.ORCHESTRATOR_AGENT

    return _CATEGORY_TARGETS.get(classification.category, RouteTarget.SIMPLE_AGENT)
