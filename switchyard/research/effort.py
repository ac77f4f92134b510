"""Effort estimation — how much parallel work a research query deserves."""

from __future__ import annotations

from switchyard.types import (
    Complexity,
    EffortConfig,
    EffortEstimate,
    EffortLevel,
    ExpectedDuration,
    QueryCategory,
)

_COMPLEXITY_POINTS: dict[Complexity, int] = {
    Complexity.LOW: 0,
    Complexity.MEDIUM: 1,
    Complexity.HIGH: 2,
}

# (min query length, points)
_LENGTH_POINTS: list[tuple[int, int]] = [(300, 2), (80, 1), (0, 0)]

# level -> (subagents, total tool calls, expected duration)
EFFORT_TIERS: dict[EffortLevel, tuple[int, int, ExpectedDuration]] = {
    EffortLevel.MINIMAL: (1, 5, ExpectedDuration.FAST),
    EffortLevel.STANDARD: (2, 15, ExpectedDuration.FAST),
    EffortLevel.THOROUGH: (4, 40, ExpectedDuration.MEDIUM),
    EffortLevel.EXHAUSTIVE: (8, 100, ExpectedDuration.LONG),
}


def _length_points(query_length: int) -> int:
    for threshold, points in _LENGTH_POINTS:
        if query_length >= threshold:
            return points
    return 0


def _level_for_score(score: int) -> EffortLevel:
    if score <= 0:
        return EffortLevel.MINIMAL
    if score == 1:
        return EffortLevel.STANDARD
    if score <= 3:
        return EffortLevel.THOROUGH
    return EffortLevel.EXHAUSTIVE


def estimate_effort_level(
    complexity: Complexity, category: QueryCategory, query_length: int
) -> EffortEstimate:
    """Combine complexity, category and query length into an effort tier.

    The score is additive, so raising complexity or lengthening the query
    never lowers the tier. Research queries get one extra point.
    """
    complexity_points = _COMPLEXITY_POINTS[complexity]
    length_points = _length_points(query_length)
    category_points = 1 if category == QueryCategory.RESEARCH else 0
    score = complexity_points + length_points + category_points

    level = _level_for_score(score)
    subagents, tool_calls, duration = EFFORT_TIERS[level]
    return EffortEstimate(
        level=level,
        recommended_subagents=subagents,
        max_tool_calls=tool_calls,
        expected_duration=duration,
        reasoning=(
            f"complexity={complexity.value} (+{complexity_points}), "
            f"length={query_length} (+{length_points}), "
            f"category={category.value} (+{category_points}) -> score {score}"
        ),
    )


def get_effort_config_from_estimate(estimate: EffortEstimate) -> EffortConfig:
    max_subagents = max(1, estimate.recommended_subagents)
    max_tool_calls = max(3, estimate.max_tool_calls)
    return EffortConfig(
        max_subagents=max_subagents,
        max_tool_calls=max_tool_calls,
        max_tool_calls_per_subagent=max(3, max_tool_calls // max_subagents),
    )
