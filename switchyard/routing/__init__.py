"""Query classification, route decisions and routing history."""

from __future__ import annotations

from switchyard.routing.classifier import Classifier, hybrid_classify, quick_classify
from switchyard.routing.decision import determine_route_target
from switchyard.routing.monitoring import RoutingMonitor
from switchyard.routing.router import RouterAgent

__all__ = [
    "Classifier",
    "RouterAgent",
    "RoutingMonitor",
    "determine_route_target",
    "hybrid_classify",
    "quick_classify",
]
