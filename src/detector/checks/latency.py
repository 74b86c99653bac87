"""
Latency check.

Baseline: every positive per-service P95 latency in the history.
Current: mean of the positive per-service P95 latencies of the current snapshot.
"""

import numpy as np

from src.aggregator.models import Snapshot

from ..models import MetricName, Severity
from .base import MetricCheck, z_at_least

Z_THRESHOLD = 2.0
ABSOLUTE_THRESHOLD_MS = 1000.0


class LatencyCheck(MetricCheck):
    metric = MetricName.LATENCY

    def baseline_samples(self, history: list[Snapshot]) -> list[float]:
        return [
            service_metrics.p95_latency
            for snapshot in history
            for service_metrics in snapshot.metrics
            if service_metrics.p95_latency > 0
        ]

    def current_value(self, current: Snapshot) -> float:
        latencies = [m.p95_latency for m in current.metrics if m.p95_latency > 0]
        if not latencies:
            return 0.0
        return float(np.mean(latencies))

    def is_anomalous(self, value: float, z: float) -> bool:
        return abs(z) > Z_THRESHOLD or value > ABSOLUTE_THRESHOLD_MS

    def classify(self, value: float, z: float) -> Severity:
        if value > 2000 or z_at_least(z, 3):
            return Severity.CRITICAL
        if value > 1500 or z_at_least(z, 2.5):
            return Severity.HIGH
        return Severity.MEDIUM

    def describe(self, value: float, mean: float, std: float, z: float) -> str:
        return (
            f"Latency anomaly detected: {value:.2f}ms "
            f"(expected: {mean:.2f}ms ± {std:.2f}ms)"
        )
