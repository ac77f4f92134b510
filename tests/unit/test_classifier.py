"""Tests for quick patterns, LLM classification parsing and hybrid classify."""

from __future__ import annotations

import json

import pytest

from switchyard.routing.classifier import (
    FALLBACK_REASONING,
    ClassificationContext,
    Classifier,
    format_classification_prompt,
    hybrid_classify,
    normalize_query,
    parse_classification_response,
    quick_classify,
)
from switchyard.types import (
    ClassificationError,
    Complexity,
    EffortLevel,
    QueryCategory,
    QueryType,
    RouteTarget,
)

# ── Quick classification ─────────────────────────────────────


def test_quick_classify_empty_returns_none():
    assert quick_classify("") is None
    assert quick_classify("   ") is None


def test_quick_classify_extra_words_do_not_match():
    assert quick_classify("hello world") is None
    assert quick_classify("yes please delete everything") is None


def test_quick_classify_confirmation_is_case_insensitive():
    result = quick_classify("YES")
    assert result is not None
    assert result.type == QueryType.TOOL_CONFIRMATION
    assert result.requires_human_approval is True


@pytest.mark.parametrize("word", ["no", "approve", "reject", "confirm", "cancel"])
def test_quick_classify_confirmation_words(word: str):
    result = quick_classify(f"  {word}  ")
    assert result is not None
    assert result.type == QueryType.TOOL_CONFIRMATION


def test_quick_classify_admin_commands_are_confirmations():
    for command in ("/clear", "reset"):
        result = quick_classify(command)
        assert result is not None
        assert result.type == QueryType.TOOL_CONFIRMATION
        assert result.category == QueryCategory.ADMIN
        assert result.requires_human_approval is True


@pytest.mark.parametrize("text", ["hello", "Hello!", "good morning", "thanks", "/help", "bye."])
def test_quick_classify_simple_phrases(text: str):
    result = quick_classify(text)
    assert result is not None
    assert result.type == QueryType.SIMPLE
    assert result.category == QueryCategory.GENERAL
    assert result.complexity == Complexity.LOW
    assert result.requires_human_approval is False


def test_normalize_query_collapses_whitespace_and_punctuation():
    assert normalize_query("  Hi   There!!  ") == "hi there"


# ── LLM response parsing ─────────────────────────────────────


def test_parse_classification_valid_json():
    raw = json.dumps(
        {
            "type": "complex",
            "category": "code",
            "complexity": "high",
            "requires_human_approval": False,
            "confidence": 0.9,
            "reasoning": "Multi-file refactor",
        }
    )
    result = parse_classification_response(f"Here you go:\n{raw}")
    assert result.type == QueryType.COMPLEX
    assert result.category == QueryCategory.CODE
    assert result.complexity == Complexity.HIGH
    assert result.confidence == 0.9
    assert result.reasoning == "Multi-file refactor"


def test_parse_classification_without_json_raises():
    with pytest.raises(ClassificationError):
        parse_classification_response("I think this is a simple question.")


def test_parse_classification_invalid_fields_use_fallback():
    result = parse_classification_response('{"type": "banana", "category": "code"}')
    assert result.type == QueryType.SIMPLE
    assert result.category == QueryCategory.GENERAL
    assert result.complexity == Complexity.LOW
    assert result.confidence == 0.0
    assert result.reasoning == FALLBACK_REASONING


def test_parse_classification_clamps_confidence():
    result = parse_classification_response('{"type": "task", "confidence": 7}')
    assert result.confidence == 1.0


def test_parse_classification_missing_confidence_defaults():
    result = parse_classification_response('{"type": "task"}')
    assert result.confidence == 0.5


def test_format_prompt_includes_context():
    context = ClassificationContext(
        platform="slack",
        recent_messages=[{"role": "user", "content": f"message {i}"} for i in range(5)],
        available_tools=["git", "web_search"],
    )
    prompt = format_classification_prompt("fix the build", context)
    assert '"fix the build"' in prompt
    assert "Platform: slack" in prompt
    assert "message 0" not in prompt
    assert "message 4" in prompt
    assert "git, web_search" in prompt


# ── Hybrid classify ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_hybrid_classify_quick_match_skips_llm(fake_provider):
    provider = fake_provider("should not be used")
    result = await hybrid_classify("hello", provider)
    assert provider.calls == []
    assert result.type == QueryType.SIMPLE
    assert result.effort_estimate is not None
    assert result.effort_estimate.level == EffortLevel.MINIMAL


@pytest.mark.asyncio
async def test_hybrid_classify_falls_back_to_llm(fake_provider):
    provider = fake_provider(
        '{"type": "complex", "category": "research", "complexity": "high", "confidence": 0.8}'
    )
    result = await hybrid_classify("hello world, compare three databases", provider)
    assert len(provider.calls) == 1
    assert result.category == QueryCategory.RESEARCH
    assert result.effort_estimate is not None


@pytest.mark.asyncio
async def test_classifier_facade(fake_provider):
    classifier = Classifier(fake_provider('{"type": "simple", "category": "github"}'))
    result = await classifier.classify("open a PR for this branch")
    assert classifier.determine_route_target(result) == RouteTarget.GITHUB_WORKER
    assert Classifier.quick_classify("thanks") is not None
