"""Tests for routing history statistics, accuracy metrics and exports."""

from __future__ import annotations

import json

import pytest

from switchyard.routing.monitoring import (
    CSV_HEADER,
    RoutingMonitor,
    calculate_accuracy_metrics,
    calculate_enhanced_stats,
    export_routing_history_csv,
    export_routing_history_json,
    format_accuracy_metrics,
    format_enhanced_stats,
    format_routing_stats,
)
from switchyard.state import InMemoryStateStore
from switchyard.types import (
    Complexity,
    QueryCategory,
    QueryClassification,
    QueryType,
    RouteTarget,
    RoutingHistoryEntry,
)

T0 = 1_700_000_000_000


def _entry(
    duration_ms: int = 10,
    query: str = "q",
    target: RouteTarget = RouteTarget.SIMPLE_AGENT,
    confidence: float = 0.9,
    timestamp: int = T0,
    category: QueryCategory = QueryCategory.GENERAL,
) -> RoutingHistoryEntry:
    return RoutingHistoryEntry(
        query=query,
        classification=QueryClassification(
            type=QueryType.SIMPLE,
            category=category,
            complexity=Complexity.LOW,
            confidence=confidence,
        ),
        routed_to=target,
        timestamp=timestamp,
        duration_ms=duration_ms,
    )


# ── Enhanced stats ───────────────────────────────────────────


def test_p95_of_hundred_entries():
    history = [_entry(duration_ms=i * 10) for i in range(100)]
    stats = calculate_enhanced_stats(history)
    assert stats.p95_duration_ms == 950
    assert stats.median_duration_ms == 500
    assert stats.avg_duration_ms == pytest.approx(495)
    assert stats.total_routed == 100


def test_enhanced_stats_empty():
    stats = calculate_enhanced_stats([])
    assert stats.total_routed == 0
    assert stats.by_target == {}
    assert stats.by_type == {}
    assert stats.avg_duration_ms == 0
    assert stats.median_duration_ms == 0
    assert stats.p95_duration_ms == 0
    assert stats.success_rate == 0
    assert stats.time_range.earliest == 0
    assert stats.time_range.latest == 0


def test_enhanced_stats_counts_and_time_range():
    history = [
        _entry(target=RouteTarget.CODE_WORKER, category=QueryCategory.CODE, timestamp=T0 + 5),
        _entry(target=RouteTarget.CODE_WORKER, category=QueryCategory.CODE, timestamp=T0),
        _entry(timestamp=T0 + 9),
    ]
    stats = calculate_enhanced_stats(history)
    assert stats.by_target == {"code-worker": 2, "simple-agent": 1}
    assert stats.by_category == {"code": 2, "general": 1}
    assert stats.by_complexity == {"low": 3}
    assert stats.success_rate == 100.0
    assert stats.time_range.earliest == T0
    assert stats.time_range.latest == T0 + 9


# ── Accuracy metrics ─────────────────────────────────────────


def test_accuracy_buckets():
    history = [_entry(confidence=c) for c in (0.95, 0.8, 0.79, 0.5, 0.49, 0.0)]
    metrics = calculate_accuracy_metrics(history)
    dist = metrics.confidence_distribution
    assert (dist.high, dist.medium, dist.low) == (2, 2, 2)
    assert metrics.total_classifications == 6
    assert metrics.avg_confidence == pytest.approx(sum((0.95, 0.8, 0.79, 0.5, 0.49, 0.0)) / 6)


def test_accuracy_empty():
    metrics = calculate_accuracy_metrics([])
    assert metrics.total_classifications == 0
    assert metrics.avg_confidence == 0


# ── Exports ──────────────────────────────────────────────────


def test_csv_escapes_quotes():
    csv = export_routing_history_csv([_entry(query='Query with "quotes" in it')])
    header, row = csv.split("\n")
    assert header == ",".join(CSV_HEADER)
    assert '"Query with ""quotes"" in it"' in row
    assert ",0.90," in row
    assert row.startswith("2023-11-14T22:13:20.000Z,")


def test_csv_header_only_when_empty():
    assert export_routing_history_csv([]) == (
        "timestamp,query,type,category,complexity,confidence,routedTo,durationMs"
    )


def test_json_export_shape():
    payload = json.loads(export_routing_history_json([_entry(query="hi", duration_ms=7)]))
    assert payload["count"] == 1
    assert payload["exportedAt"].endswith("Z")
    entry = payload["entries"][0]
    assert entry["timestamp"] == "2023-11-14T22:13:20.000Z"
    assert entry["query"] == "hi"
    assert entry["classification"] == {
        "type": "simple",
        "category": "general",
        "complexity": "low",
        "confidence": 0.9,
    }
    assert entry["routedTo"] == "simple-agent"
    assert entry["durationMs"] == 7


# ── Formatters ───────────────────────────────────────────────


def test_format_routing_stats():
    monitor = RoutingMonitor()
    monitor.record(_entry(target=RouteTarget.CODE_WORKER, duration_ms=10))
    monitor.record(_entry(target=RouteTarget.CODE_WORKER, duration_ms=20))
    monitor.record(_entry(duration_ms=30))
    text = format_routing_stats(monitor.basic_stats())
    assert "📊 Routing Statistics" in text
    assert "Total Requests: 3" in text
    assert "Average Duration: 20.00ms" in text
    assert text.index("code-worker: 2 (66.7%)") < text.index("simple-agent: 1 (33.3%)")


def test_format_enhanced_stats_time_range_only_when_present():
    assert "Time Range" not in format_enhanced_stats(calculate_enhanced_stats([]))
    text = format_enhanced_stats(calculate_enhanced_stats([_entry()]))
    assert "Time Range:" in text
    assert "First Request: 2023-11-14T22:13:20.000Z" in text


def test_format_accuracy_metrics():
    text = format_accuracy_metrics(calculate_accuracy_metrics([_entry(confidence=0.3)]))
    assert "🎯 Classification Accuracy Metrics" in text
    assert "Low (<50%): 1" in text
    assert "Average Confidence: 30.0%" in text


# ── RoutingMonitor ───────────────────────────────────────────


def test_monitor_caps_history_dropping_oldest():
    monitor = RoutingMonitor(max_history=3)
    for i in range(5):
        monitor.record(_entry(query=f"q{i}"))
    assert [e.query for e in monitor.history()] == ["q2", "q3", "q4"]
    assert [e.query for e in monitor.history(limit=2)] == ["q3", "q4"]


def test_monitor_persists_through_store():
    store = InMemoryStateStore()
    monitor = RoutingMonitor(store=store)
    monitor.record(_entry(query="saved", target=RouteTarget.GITHUB_WORKER))

    reloaded = RoutingMonitor(store=store)
    assert len(reloaded) == 1
    entry = reloaded.history()[0]
    assert entry.query == "saved"
    assert entry.routed_to == RouteTarget.GITHUB_WORKER

    reloaded.clear()
    assert len(RoutingMonitor(store=store)) == 0


def test_monitor_skips_malformed_stored_entries():
    good = _entry(query="kept").to_dict()
    store = InMemoryStateStore(
        {"routing_history": [{**good, "classification": None}, {"query": "partial"}, "junk", good]}
    )
    monitor = RoutingMonitor(store=store)
    assert [entry.query for entry in monitor.history()] == ["kept"]


def test_monitor_tolerates_null_history():
    assert len(RoutingMonitor(store=InMemoryStateStore({"routing_history": None}))) == 0


def test_monitor_rejects_zero_cap():
    with pytest.raises(ValueError):
        RoutingMonitor(max_history=0)
