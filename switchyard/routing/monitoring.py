"""Routing history monitoring — statistics, accuracy metrics and exports."""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from switchyard.state import StateStore
from switchyard.types import RoutingHistoryEntry

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "timestamp",
    "query",
    "type",
    "category",
    "complexity",
    "confidence",
    "routedTo",
    "durationMs",
]


@dataclass
class TimeRange:
    earliest: int = 0
    latest: int = 0


@dataclass
class RoutingStats:
    total_routed: int
    by_target: dict[str, int]
    avg_duration_ms: float


@dataclass
class EnhancedRoutingStats:
    total_routed: int = 0
    by_target: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)
    by_complexity: dict[str, int] = field(default_factory=dict)
    avg_duration_ms: float = 0.0
    median_duration_ms: float = 0.0
    p95_duration_ms: float = 0.0
    success_rate: float = 0.0
    time_range: TimeRange = field(default_factory=TimeRange)


@dataclass
class ConfidenceDistribution:
    high: int = 0
    medium: int = 0
    low: int = 0


@dataclass
class AccuracyMetrics:
    total_classifications: int = 0
    avg_confidence: float = 0.0
    confidence_distribution: ConfidenceDistribution = field(
        default_factory=ConfidenceDistribution
    )


def calculate_enhanced_stats(history: list[RoutingHistoryEntry]) -> EnhancedRoutingStats:
    """Counts, mean/median/p95 durations and time range of a routing history."""
    if not history:
        return EnhancedRoutingStats()

    durations = sorted(entry.duration_ms for entry in history)
    n = len(durations)
    timestamps = [entry.timestamp for entry in history]

    return EnhancedRoutingStats(
        total_routed=n,
        by_target=dict(Counter(entry.routed_to.value for entry in history)),
        by_type=dict(Counter(entry.classification.type.value for entry in history)),
        by_category=dict(Counter(entry.classification.category.value for entry in history)),
        by_complexity=dict(Counter(entry.classification.complexity.value for entry in history)),
        avg_duration_ms=sum(durations) / n,
        median_duration_ms=durations[n // 2],
        p95_duration_ms=durations[(95 * n) // 100],
        # only successful routings are recorded
        success_rate=100.0,
        time_range=TimeRange(earliest=min(timestamps), latest=max(timestamps)),
    )


def calculate_accuracy_metrics(history: list[RoutingHistoryEntry]) -> AccuracyMetrics:
    """Bucket classification confidence into high (>=0.8), medium, low (<0.5)."""
    if not history:
        return AccuracyMetrics()

    distribution = ConfidenceDistribution()
    total = 0.0
    for entry in history:
        confidence = entry.classification.confidence
        total += confidence
        if confidence >= 0.8:
            distribution.high += 1
        elif confidence >= 0.5:
            distribution.medium += 1
        else:
            distribution.low += 1

    return AccuracyMetrics(
        total_classifications=len(history),
        avg_confidence=total / len(history),
        confidence_distribution=distribution,
    )


def _iso(timestamp_ms: int) -> str:
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def export_routing_history_json(history: list[RoutingHistoryEntry]) -> str:
    entries: list[dict[str, Any]] = [
        {
            "timestamp": _iso(entry.timestamp),
            "query": entry.query,
            "classification": {
                "type": entry.classification.type.value,
                "category": entry.classification.category.value,
                "complexity": entry.classification.complexity.value,
                "confidence": entry.classification.confidence,
            },
            "routedTo": entry.routed_to.value,
            "durationMs": entry.duration_ms,
        }
        for entry in history
    ]
    payload = {
        "count": len(entries),
        "exportedAt": _iso(int(datetime.now(tz=UTC).timestamp() * 1000)),
        "entries": entries,
    }
    return json.dumps(payload, indent=2)


def export_routing_history_csv(history: list[RoutingHistoryEntry]) -> str:
    """CSV with the query column always quoted and embedded quotes doubled."""
    lines = [",".join(CSV_HEADER)]
    for entry in history:
        query = '"' + entry.query.replace('"', '""') + '"'
        row = [
            _iso(entry.timestamp),
            query,
            entry.classification.type.value,
            entry.classification.category.value,
            entry.classification.complexity.value,
            f"{entry.classification.confidence:.2f}",
            entry.routed_to.value,
            str(entry.duration_ms),
        ]
        lines.append(",".join(row))
    return "\n".join(lines)


def format_routing_stats(stats: RoutingStats) -> str:
    lines = [
        "📊 Routing Statistics",
        "",
        f"Total Requests: {stats.total_routed}",
        f"Average Duration: {stats.avg_duration_ms:.2f}ms",
        "",
        "By Target:",
    ]
    for target, count in sorted(stats.by_target.items(), key=lambda kv: kv[1], reverse=True):
        pct = count / stats.total_routed * 100 if stats.total_routed else 0.0
        lines.append(f"  {target}: {count} ({pct:.1f}%)")
    return "\n".join(lines)


def _format_counts(title: str, counts: dict[str, int], total: int) -> list[str]:
    lines = [title]
    for key, count in sorted(counts.items(), key=lambda kv: kv[1], reverse=True):
        pct = count / total * 100 if total else 0.0
        lines.append(f"  {key}: {count} ({pct:.1f}%)")
    return lines


def format_enhanced_stats(stats: EnhancedRoutingStats) -> str:
    lines = [
        "📊 Enhanced Routing Statistics",
        "",
        f"Total Requests: {stats.total_routed}",
        f"Success Rate: {stats.success_rate:.1f}%",
        f"Average Duration: {stats.avg_duration_ms:.2f}ms",
        f"Median Duration: {stats.median_duration_ms:.2f}ms",
        f"P95 Duration: {stats.p95_duration_ms:.2f}ms",
        "",
    ]
    lines += _format_counts("By Target:", stats.by_target, stats.total_routed)
    lines.append("")
    lines += _format_counts("By Type:", stats.by_type, stats.total_routed)
    lines.append("")
    lines += _format_counts("By Category:", stats.by_category, stats.total_routed)
    lines.append("")
    lines += _format_counts("By Complexity:", stats.by_complexity, stats.total_routed)

    if stats.time_range.earliest and stats.time_range.latest:
        lines += [
            "",
            "Time Range:",
            f"  First Request: {_iso(stats.time_range.earliest)}",
            f"  Latest Request: {_iso(stats.time_range.latest)}",
        ]
    return "\n".join(lines)


def format_accuracy_metrics(metrics: AccuracyMetrics) -> str:
    dist = metrics.confidence_distribution
    return "\n".join(
        [
            "🎯 Classification Accuracy Metrics",
            "",
            f"Total Classifications: {metrics.total_classifications}",
            f"Average Confidence: {metrics.avg_confidence * 100:.1f}%",
            "",
            "Confidence Distribution:",
            f"  High (≥80%): {dist.high}",
            f"  Medium (50-80%): {dist.medium}",
            f"  Low (<50%): {dist.low}",
        ]
    )


class RoutingMonitor:
    """Append-only routing history capped at ``max_history`` entries.

    When a state store is given, the history is loaded from it on
    construction and written back after every change.
    """

    def __init__(self, max_history: int = 50, store: StateStore | None = None) -> None:
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.max_history = max_history
        self._store = store
        self._history: list[RoutingHistoryEntry] = []
        if store is not None:
            self._load()

    def _load(self) -> None:
        if self._store is None:
            return
        state = self._store.get() or {}
        for raw in state.get("routing_history") or []:
            try:
                self._history.append(RoutingHistoryEntry.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed routing history entry: %s", e)
        self._history = self._history[-self.max_history :]

    def _save(self) -> None:
        if self._store is None:
            return
        state = self._store.get() or {}
        state["routing_history"] = [entry.to_dict() for entry in self._history]
        self._store.set(state)

    def record(self, entry: RoutingHistoryEntry) -> None:
        self._history.append(entry)
        if len(self._history) > self.max_history:
            del self._history[: len(self._history) - self.max_history]
        self._save()

    def history(self, limit: int | None = None) -> list[RoutingHistoryEntry]:
        if limit and limit > 0:
            return list(self._history[-limit:])
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()
        self._save()

    def __len__(self) -> int:
        return len(self._history)

    def basic_stats(self) -> RoutingStats:
        by_target = Counter(entry.routed_to.value for entry in self._history)
        avg = (
            sum(entry.duration_ms for entry in self._history) / len(self._history)
            if self._history
            else 0.0
        )
        return RoutingStats(
            total_routed=len(self._history), by_target=dict(by_target), avg_duration_ms=avg
        )

    def enhanced_stats(self) -> EnhancedRoutingStats:
        return calculate_enhanced_stats(self._history)

    def accuracy_metrics(self) -> AccuracyMetrics:
        return calculate_accuracy_metrics(self._history)

    def export_json(self) -> str:
        return export_routing_history_json(self._history)

    def export_csv(self) -> str:
        return export_routing_history_csv(self._history)
