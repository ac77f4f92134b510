"""Shared types for routing and multi-agent research."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field, replace
from enum import StrEnum
from typing import Any


class SwitchyardError(Exception):
    """Base error for switchyard."""


class ClassificationError(SwitchyardError):
    """The classifier LLM returned no JSON object at all."""


class DispatchError(SwitchyardError):
    """A route target has neither a handler nor a fallback."""


class QueryType(StrEnum):
    SIMPLE = "simple"
    COMPLEX = "complex"
    TASK = "task"
    TOOL_CONFIRMATION = "tool_confirmation"


class QueryCategory(StrEnum):
    GENERAL = "general"
    CODE = "code"
    RESEARCH = "research"
    GITHUB = "github"
    ADMIN = "admin"


class Complexity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RouteTarget(StrEnum):
    """Handlers a query can be dispatched to."""

    SIMPLE_AGENT = "simple-agent"
    CODE_WORKER = "code-worker"
    RESEARCH_WORKER = "research-worker"
    GITHUB_WORKER = "github-worker"
    ORCHESTRATOR_AGENT = "orchestrator-agent"
    HITL_AGENT = "hitl-agent"


class EffortLevel(StrEnum):
    MINIMAL = "minimal"
    STANDARD = "standard"
    THOROUGH = "thorough"
    EXHAUSTIVE = "exhaustive"


class ExpectedDuration(StrEnum):
    FAST = "fast"
    MEDIUM = "medium"
    LONG = "long"


class SubagentType(StrEnum):
    RESEARCH = "research"
    CODE = "code"
    GITHUB = "github"
    GENERAL = "general"


class OutputFormat(StrEnum):
    TEXT = "text"
    STRUCTURED = "structured"
    CODE = "code"
    CITATIONS = "citations"
    ACTIONS = "actions"


def generate_id(prefix: str) -> str:
    """Return a short unique id such as ``plan_1a2b3c4d5e6f``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class EffortEstimate:
    """Coarse research budget derived from complexity and query size."""

    level: EffortLevel
    recommended_subagents: int
    max_tool_calls: int
    expected_duration: ExpectedDuration
    reasoning: str = ""


@dataclass(frozen=True)
class EffortConfig:
    """Concrete planning bounds for one effort tier."""

    max_subagents: int
    max_tool_calls: int
    max_tool_calls_per_subagent: int


@dataclass(frozen=True)
class QueryClassification:
    """Classifier output. Frozen: a new one is produced per query."""

    type: QueryType
    category: QueryCategory
    complexity: Complexity
    requires_human_approval: bool = False
    reasoning: str = ""
    confidence: float = 1.0
    suggested_tools: tuple[str, ...] = ()
    effort_estimate: EffortEstimate | None = None

    def with_effort(self, estimate: EffortEstimate) -> QueryClassification:
        return replace(self, effort_estimate=estimate)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "category": self.category.value,
            "complexity": self.complexity.value,
            "requires_human_approval": self.requires_human_approval,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "suggested_tools": list(self.suggested_tools),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueryClassification:
        return cls(
            type=QueryType(data["type"]),
            category=QueryCategory(data["category"]),
            complexity=Complexity(data["complexity"]),
            requires_human_approval=bool(data.get("requires_human_approval", False)),
            reasoning=data.get("reasoning", ""),
            confidence=float(data.get("confidence", 1.0)),
            suggested_tools=tuple(data.get("suggested_tools", ())),
        )


@dataclass
class SubagentTask:
    """A single task in a research plan."""

    id: str
    type: SubagentType
    objective: str
    output_format: OutputFormat = OutputFormat.TEXT
    tool_guidance: list[str] = field(default_factory=list)
    boundaries: list[str] = field(default_factory=list)
    max_tool_calls: int = 10
    priority: int = 5
    depends_on: list[str] = field(default_factory=list)
    success_criteria: str = "Task completed successfully"


@dataclass
class ResearchPlan:
    plan_id: str
    query: str
    strategy: str
    subagent_tasks: list[SubagentTask]
    synthesis_instructions: str
    effort_estimate: EffortEstimate
    created_at: int = field(default_factory=now_ms)


@dataclass
class Citation:
    id: str
    source: str
    content: str = ""
    confidence: float = 0.8
    timestamp: int = field(default_factory=now_ms)


@dataclass
class SubagentResult:
    """Outcome of one task execution attempt."""

    task_id: str
    success: bool
    content: str | None = None
    data: Any = None
    error: str | None = None
    citations: list[Citation] = field(default_factory=list)
    tool_call_count: int = 0
    duration_ms: int = 0
    tokens_used: int | None = None


@dataclass
class DelegationContext:
    """Everything a subagent needs to perform one task."""

    objective: str
    output_format: OutputFormat
    tool_list: list[str]
    tool_guidance: list[str]
    must_do: list[str]
    must_not_do: list[str]
    scope_limit: str
    success_criteria: str = ""
    previous_context: str = ""


@dataclass
class ResearchSummary:
    subagent_count: int
    success_count: int
    failure_count: int
    total_tool_calls: int
    total_duration_ms: int
    parallel_efficiency: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ResearchResult:
    plan_id: str
    response: str
    summary: ResearchSummary
    subagent_results: list[SubagentResult]
    citations: list[Citation]
    errors: list[str]


@dataclass
class AgentContext:
    """Caller-supplied context for a request."""

    trace_id: str | None = None
    chat_id: str | None = None
    platform: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentResult:
    success: bool
    content: str = ""
    duration_ms: int = 0
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def failure(cls, error: BaseException | str, duration_ms: int) -> AgentResult:
        return cls(success=False, duration_ms=duration_ms, error=str(error))


@dataclass
class RoutingHistoryEntry:
    query: str
    classification: QueryClassification
    routed_to: RouteTarget
    timestamp: int
    duration_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "classification": self.classification.to_dict(),
            "routed_to": self.routed_to.value,
            "timestamp": self.timestamp,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoutingHistoryEntry:
        return cls(
            query=data["query"],
            classification=QueryClassification.from_dict(data["classification"]),
            routed_to=RouteTarget(data["routed_to"]),
            timestamp=int(data["timestamp"]),
            duration_ms=int(data["duration_ms"]),
        )


@dataclass
class ResearchHistoryEntry:
    plan_id: str
    query: str
    summary: ResearchSummary
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "query": self.query,
            "summary": self.summary.to_dict(),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResearchHistoryEntry:
        return cls(
            plan_id=data["plan_id"],
            query=data["query"],
            summary=ResearchSummary(**data["summary"]),
            timestamp=int(data["timestamp"]),
        )
