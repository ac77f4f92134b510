"""Query classifier — closed-phrase quick patterns with an LLM fallback."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from switchyard.llm.factory import LLMProvider
from switchyard.research.effort import estimate_effort_level
from switchyard.routing.decision import determine_route_target
from switchyard.types import (
    ClassificationError,
    Complexity,
    QueryCategory,
    QueryClassification,
    QueryType,
    RouteTarget,
)

logger = logging.getLogger(__name__)

# Matched against the whole normalized query, never a substring.
_CONFIRMATION_PHRASES = frozenset({"yes", "no", "approve", "reject", "confirm", "cancel"})
_ADMIN_PHRASES = frozenset({"/clear", "clear", "reset", "/reset"})
_GREETING_PHRASES = frozenset(
    {
        "hi",
        "hello",
        "hey",
        "hi there",
        "hello there",
        "hey there",
        "good morning",
        "good afternoon",
        "good evening",
    }
)
_HELP_PHRASES = frozenset({"help", "/help", "/start", "what can you do"})
_THANKS_PHRASES = frozenset({"thanks", "thank you", "thanks a lot", "thx", "ty"})
_GOODBYE_PHRASES = frozenset({"bye", "goodbye", "see you", "see ya", "good night"})

_TRAILING_PUNCTUATION = re.compile(r"[\s!.?]+$")
_INNER_WHITESPACE = re.compile(r"\s+")

CLASSIFICATION_SYSTEM_PROMPT = """\
You are a query router. Classify the user's query so it can be sent to the right handler.

Fields:
- "type": "simple" (answerable directly), "complex" (multi-step reasoning or research),
  "task" (asks for an action to be performed), "tool_confirmation" (a yes/no reply to a
  pending tool approval)
- "category": "general", "code", "research", "github", or "admin"
- "complexity": "low", "medium", or "high"
- "requires_human_approval": true for destructive or irreversible operations
  (deleting data, force-pushing, closing issues, changing permissions)
- "confidence": number between 0 and 1
- "reasoning": one short sentence

Respond with ONLY a JSON object, for example:
{"type": "complex", "category": "code", "complexity": "medium",
 "requires_human_approval": false, "confidence": 0.85,
 "reasoning": "Asks for a refactoring plan of an existing module"}"""

FALLBACK_REASONING = "Classification parsing failed, using fallback"


@dataclass
class ClassificationContext:
    """Extra signal passed to the LLM classifier."""

    platform: str | None = None
    recent_messages: list[dict[str, str]] = field(default_factory=list)
    available_tools: list[str] = field(default_factory=list)


def normalize_query(query: str) -> str:
    text = _TRAILING_PUNCTUATION.sub("", query.strip().lower())
    return _INNER_WHITESPACE.sub(" ", text)


def quick_classify(query: str) -> QueryClassification | None:
    """Classify trivial queries without an LLM call.

    Returns None when the query is empty or is not exactly one of the
    known phrases; the caller must then use the LLM classifier.
    """
    text = normalize_query(query)
    if not text:
        return None

    if text in _CONFIRMATION_PHRASES:
        return QueryClassification(
            type=QueryType.TOOL_CONFIRMATION,
            category=QueryCategory.GENERAL,
            complexity=Complexity.LOW,
            requires_human_approval=True,
            reasoning=f"Matched confirmation phrase '{text}'",
        )
    if text in _ADMIN_PHRASES:
        return QueryClassification(
            type=QueryType.TOOL_CONFIRMATION,
            category=QueryCategory.ADMIN,
            complexity=Complexity.LOW,
            requires_human_approval=True,
            reasoning=f"Matched admin command '{text}'",
        )

    for phrases, kind in (
        (_GREETING_PHRASES, "greeting"),
        (_HELP_PHRASES, "help request"),
        (_THANKS_PHRASES, "thanks"),
        (_GOODBYE_PHRASES, "goodbye"),
    ):
        if text in phrases:
            return QueryClassification(
                type=QueryType.SIMPLE,
                category=QueryCategory.GENERAL,
                complexity=Complexity.LOW,
                reasoning=f"Matched {kind} '{text}'",
            )
    return None


def format_classification_prompt(query: str, context: ClassificationContext | None = None) -> str:
    prompt = f'Classify this user query:\n\n"{query}"'

    if context is not None:
        if context.platform:
            prompt += f"\n\nPlatform: {context.platform}"
        if context.recent_messages:
            recent = context.recent_messages[-3:]
            lines = "\n".join(f"{m.get('role', 'user')}: {m.get('content', '')[:100]}..." for m in recent)
            prompt += f"\n\nRecent conversation:\n{lines}"
        if context.available_tools:
            prompt += f"\n\nAvailable tools: {', '.join(context.available_tools)}"

    prompt += "\n\nRespond with a JSON object matching the classification schema."
    return prompt


def _fallback_classification() -> QueryClassification:
    return QueryClassification(
        type=QueryType.SIMPLE,
        category=QueryCategory.GENERAL,
        complexity=Complexity.LOW,
        requires_human_approval=False,
        reasoning=FALLBACK_REASONING,
        confidence=0.0,
    )


def _coerce_classification(raw: dict[str, Any]) -> QueryClassification:
    approval = raw.get("requires_human_approval", raw.get("requiresHumanApproval", False))
    confidence = float(raw.get("confidence", 0.5))
    return QueryClassification(
        type=QueryType(raw["type"]),
        category=QueryCategory(raw.get("category", "general")),
        complexity=Complexity(raw.get("complexity", "medium")),
        requires_human_approval=approval is True,
        reasoning=str(raw.get("reasoning", "")),
        confidence=min(1.0, max(0.0, confidence)),
        suggested_tools=tuple(raw.get("suggested_tools", ()) or ()),
    )


def parse_classification_response(response: str) -> QueryClassification:
    """Parse the classifier LLM reply.

    Raises ClassificationError if the reply contains no JSON object.
    A JSON object with invalid fields yields the safe fallback.
    """
    match = re.search(r"\{[\s\S]*\}", response)
    if not match:
        raise ClassificationError("No JSON found in classification response")

    try:
        raw = json.loads(match.group(0))
        if not isinstance(raw, dict):
            raise TypeError("classification JSON is not an object")
        return _coerce_classification(raw)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        logger.error("Failed to parse classification JSON: %s (%r)", e, response[:300])
        return _fallback_classification()


async def classify_query(
    query: str,
    provider: LLMProvider,
    context: ClassificationContext | None = None,
    system_prompt: str | None = None,
) -> QueryClassification:
    """Classify a query with the LLM."""
    response = await provider.chat(
        [
            {"role": "system", "content": system_prompt or CLASSIFICATION_SYSTEM_PROMPT},
            {"role": "user", "content": format_classification_prompt(query, context)},
        ]
    )
    return parse_classification_response(response.content)


def add_effort_estimation(
    classification: QueryClassification, query_length: int
) -> QueryClassification:
    estimate = estimate_effort_level(
        classification.complexity, classification.category, query_length
    )
    return classification.with_effort(estimate)


async def hybrid_classify(
    query: str,
    provider: LLMProvider,
    context: ClassificationContext | None = None,
    system_prompt: str | None = None,
) -> QueryClassification:
    """Quick patterns first, then the LLM. Always attaches an effort estimate."""
    quick = quick_classify(query)
    if quick is not None:
        logger.debug("Quick classification for %r: %s", query[:50], quick.reasoning)
        return add_effort_estimation(quick, len(query))

    classification = await classify_query(query, provider, context, system_prompt)
    return add_effort_estimation(classification, len(query))


class Classifier:
    """Bundles the classification entry points around one provider."""

    def __init__(self, provider: LLMProvider, system_prompt: str | None = None) -> None:
        self.provider = provider
        self.system_prompt = system_prompt

    async def classify(
        self, query: str, context: ClassificationContext | None = None
    ) -> QueryClassification:
        return await hybrid_classify(query, self.provider, context, self.system_prompt)

    @staticmethod
    def quick_classify(query: str) -> QueryClassification | None:
        return quick_classify(query)

    @staticmethod
    def determine_route_target(classification: QueryClassification) -> RouteTarget:
        return determine_route_target(classification)
