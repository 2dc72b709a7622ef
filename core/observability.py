# ============================================================================
# OBSERVABILITY
# ============================================================================
# STATUS: Core - In-process metrics fed from the event broker
# PURPOSE: Counters and step timings for dashboards and the metrics endpoint
# CREATED: 27 SEP 2026
# ============================================================================
"""
Observability

EngineMetrics subscribes to the engine's event stream and keeps counters,
gauges and step duration summaries in memory. It never talks to the store,
so a slow or broken metrics consumer cannot affect processing.

Usage:
    metrics = EngineMetrics()
    metrics.register(broker)
    ...
    snapshot = metrics.snapshot()
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from core.models import OperationStateChanged, OrchestrationStateChanged, StepProcessed
from messaging import EventBroker

logger = logging.getLogger(__name__)


@dataclass
class MetricPoint:
    """A single metric data point."""
    name: str
    value: float
    timestamp: float = field(default_factory=time.time)
    tags: Dict[str, str] = field(default_factory=dict)
    unit: str = ""


@dataclass
class _Summary:
    count: int = 0
    total: float = 0.0
    maximum: float = 0.0

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.maximum = max(self.maximum, value)

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg": self.total / self.count if self.count else 0.0,
            "max": self.maximum,
        }


def _key(name: str, tags: Optional[Dict[str, str]]) -> Tuple[str, Tuple]:
    return name, tuple(sorted((tags or {}).items()))


class MetricsCollector:
    """
    Collects counters, gauges and histogram summaries.

    Only the most recent points are retained for inspection.
    """

    def __init__(self, max_points: int = 1000):
        self._points: List[MetricPoint] = []
        self._max_points = max_points
        self._counters: Dict[Tuple, float] = {}
        self._gauges: Dict[Tuple, float] = {}
        self._summaries: Dict[Tuple, _Summary] = {}

    def _record(self, point: MetricPoint) -> None:
        self._points.append(point)
        if len(self._points) > self._max_points:
            del self._points[: len(self._points) - self._max_points]

    def counter(self, name: str, value: float = 1.0, tags: Optional[Dict[str, str]] = None) -> None:
        key = _key(name, tags)
        self._counters[key] = self._counters.get(key, 0) + value
        self._record(MetricPoint(name=name, value=value, tags=tags or {}))

    def gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        self._gauges[_key(name, tags)] = value
        self._record(MetricPoint(name=name, value=value, tags=tags or {}))

    def histogram(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
        unit: str = "ms",
    ) -> None:
        self._summaries.setdefault(_key(name, tags), _Summary()).observe(value)
        self._record(MetricPoint(name=name, value=value, tags=tags or {}, unit=unit))

    def get_counter(self, name: str, tags: Optional[Dict[str, str]] = None) -> float:
        return self._counters.get(_key(name, tags), 0)

    def get_metrics(self) -> List[MetricPoint]:
        """Get the retained metric points."""
        return self._points.copy()

    def snapshot(self) -> Dict[str, Any]:
        def render(store, convert=lambda v: v):
            return [
                {"name": name, "tags": dict(tags), "value": convert(value)}
                for (name, tags), value in sorted(store.items())
            ]

        return {
            "counters": render(self._counters),
            "gauges": render(self._gauges),
            "histograms": render(self._summaries, lambda s: s.to_dict()),
        }

    def clear(self) -> None:
        self._points.clear()
        self._counters.clear()
        self._gauges.clear()
        self._summaries.clear()


class EngineMetrics(MetricsCollector):
    """Metrics derived from engine events."""

    def register(self, broker: EventBroker) -> None:
        broker.subscribe(StepProcessed, self.on_step_processed)
        broker.subscribe(OperationStateChanged, self.on_operation_state_changed)
        broker.subscribe(OrchestrationStateChanged, self.on_orchestration_state_changed)

    def on_step_processed(self, event: StepProcessed) -> None:
        tags = {"type": event.operation_type.value, "step": event.step_name}
        self.histogram("step_duration", event.duration_ms, tags=tags)
        if event.error_message:
            self.counter("step_errors_total", tags=tags)
        elif event.delay_seconds > 0:
            self.counter("step_retries_total", tags=tags)

    def on_operation_state_changed(self, event: OperationStateChanged) -> None:
        self.counter(
            "operations_total",
            tags={"type": event.operation.type.value, "state": event.state.value},
        )

    def on_orchestration_state_changed(self, event: OrchestrationStateChanged) -> None:
        self.counter(
            "orchestrations_total",
            tags={"type": event.orchestration_type.value, "state": event.state.value},
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "MetricPoint",
    "MetricsCollector",
    "EngineMetrics",
]
