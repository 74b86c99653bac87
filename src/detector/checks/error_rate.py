"""
Error rate check.

Baseline: every per-service error rate in the history.
Current: total errors over total requests across all services.
"""

from src.aggregator.models import Snapshot

from ..models import MetricName, Severity
from .base import MetricCheck, z_at_least

Z_THRESHOLD = 2.0
ABSOLUTE_THRESHOLD_PERCENT = 5.0


class ErrorRateCheck(MetricCheck):
    metric = MetricName.ERROR_RATE

    def baseline_samples(self, history: list[Snapshot]) -> list[float]:
        return [
            service_metrics.error_rate
            for snapshot in history
            for service_metrics in snapshot.metrics
            if service_metrics.total_requests > 0
        ]

    def current_value(self, current: Snapshot) -> float:
        return current.aggregate_error_rate

    def is_anomalous(self, value: float, z: float) -> bool:
        return abs(z) > Z_THRESHOLD or value > ABSOLUTE_THRESHOLD_PERCENT

    def classify(self, value: float, z: float) -> Severity:
        if value > 20 or z_at_least(z, 3):
            return Severity.CRITICAL
        if value > 10 or z_at_least(z, 2.5):
            return Severity.HIGH
        return Severity.MEDIUM

    def describe(self, value: float, mean: float, std: float, z: float) -> str:
        return (
            f"Error rate anomaly detected: {value:.2f}% "
            f"(expected: {mean:.2f}% ± {std:.2f}%)"
        )
