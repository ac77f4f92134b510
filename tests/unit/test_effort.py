"""Tests for effort tiers."""

from __future__ import annotations

from switchyard.research.effort import (
    EFFORT_TIERS,
    estimate_effort_level,
    get_effort_config_from_estimate,
)
from switchyard.types import Complexity, EffortLevel, ExpectedDuration, QueryCategory

_ORDER = list(EffortLevel)


def test_short_low_query_is_minimal():
    estimate = estimate_effort_level(Complexity.LOW, QueryCategory.GENERAL, 10)
    assert estimate.level == EffortLevel.MINIMAL
    assert estimate.expected_duration == ExpectedDuration.FAST
    assert estimate.reasoning


def test_long_high_research_query_is_exhaustive():
    estimate = estimate_effort_level(Complexity.HIGH, QueryCategory.RESEARCH, 500)
    assert estimate.level == EffortLevel.EXHAUSTIVE
    assert estimate.expected_duration == ExpectedDuration.LONG


def test_tier_is_monotonic_in_complexity_and_length():
    for category in QueryCategory:
        for length in (0, 50, 80, 200, 300, 1000):
            levels = [
                _ORDER.index(estimate_effort_level(c, category, length).level)
                for c in (Complexity.LOW, Complexity.MEDIUM, Complexity.HIGH)
            ]
            assert levels == sorted(levels)
        for complexity in Complexity:
            levels = [
                _ORDER.index(estimate_effort_level(complexity, category, n).level)
                for n in (0, 79, 80, 299, 300, 5000)
            ]
            assert levels == sorted(levels)


def test_estimate_uses_tier_budget():
    estimate = estimate_effort_level(Complexity.HIGH, QueryCategory.GENERAL, 10)
    subagents, tool_calls, _ = EFFORT_TIERS[estimate.level]
    assert estimate.recommended_subagents == subagents
    assert estimate.max_tool_calls == tool_calls


def test_effort_config_per_subagent_limit():
    estimate = estimate_effort_level(Complexity.HIGH, QueryCategory.GENERAL, 10)
    config = get_effort_config_from_estimate(estimate)
    assert config.max_subagents == estimate.recommended_subagents
    assert config.max_tool_calls == estimate.max_tool_calls
    assert config.max_tool_calls_per_subagent == max(
        3, estimate.max_tool_calls // estimate.recommended_subagents
    )


def test_effort_config_per_subagent_has_floor():
    estimate = estimate_effort_level(Complexity.LOW, QueryCategory.GENERAL, 0)
    config = get_effort_config_from_estimate(estimate)
    assert config.max_tool_calls_per_subagent >= 3
