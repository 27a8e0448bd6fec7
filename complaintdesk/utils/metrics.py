"""Counters and timings for refresh cycles and status changes."""
from collections import defaultdict
from typing import Any, Dict, List
import time


class MetricsCollector:
    """Collects time-stamped datapoints per metric name."""

    def __init__(self, component: str, max_datapoints: int = 500):
        self.component = component
        self.metrics: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.counters: Dict[str, int] = defaultdict(int)
        self.gauges: Dict[str, float] = {}
        self.max_datapoints = max_datapoints

    def increment(self, metric_name: str, value: int = 1, tags: Dict[str, str] = None):
        self.counters[metric_name] += value
        self._add_datapoint(metric_name, value, "counter", tags)

    def gauge(self, metric_name: str, value: float, tags: Dict[str, str] = None):
        self.gauges[metric_name] = value
        self._add_datapoint(metric_name, value, "gauge", tags)

    def timing(self, metric_name: str, duration_ms: float, tags: Dict[str, str] = None):
        self._add_datapoint(metric_name, duration_ms, "timing", tags)

    def _add_datapoint(self, metric_name: str, value: float, metric_type: str, tags: Dict[str, str] = None):
        series = self.metrics[metric_name]
        series.append({
            "timestamp": time.time(),
            "value": value,
            "type": metric_type,
            "tags": tags or {}
        })
        if len(series) > self.max_datapoints:
            del series[:-self.max_datapoints]

    def count(self, metric_name: str) -> int:
        return self.counters.get(metric_name, 0)

    def summary(self) -> Dict[str, Any]:
        """Counters, last gauge values and the mean of each timing series."""
        timings = {}
        for name, series in self.metrics.items():
            values = [dp["value"] for dp in series if dp["type"] == "timing"]
            if values:
                timings[name] = round(sum(values) / len(values), 2)
        return {
            "component": self.component,
            "counters": dict(self.counters),
            "gauges": dict(self.gauges),
            "timings_ms": timings,
        }
