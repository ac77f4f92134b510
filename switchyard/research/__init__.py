"""Multi-agent research: plan, schedule, execute, synthesize."""

from __future__ import annotations

from switchyard.research.executor import (
    InlineSubagent,
    LocalSubagentNamespace,
    SubagentExecutor,
)
from switchyard.research.lead import LeadResearcher
from switchyard.research.observability import PerformanceMonitor, ResearchTrace

__all__ = [
    "InlineSubagent",
    "LeadResearcher",
    "LocalSubagentNamespace",
    "PerformanceMonitor",
    "ResearchTrace",
    "SubagentExecutor",
]
