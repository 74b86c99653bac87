"""
Request volume check.

Relative only: there is no absolute floor, and both spikes and drops are reported.
"""

from src.aggregator.models import Snapshot

from ..models import MetricName, Severity
from .base import MetricCheck, z_at_least

Z_THRESHOLD = 2.5


class RequestVolumeCheck(MetricCheck):
    metric = MetricName.REQUEST_VOLUME

    def baseline_samples(self, history: list[Snapshot]) -> list[float]:
        return [
            float(snapshot.request_volume.total)
            for snapshot in history
            if snapshot.request_volume.total
        ]

    def current_value(self, current: Snapshot) -> float:
        return float(current.request_volume.total or 0)

    def is_anomalous(self, value: float, z: float) -> bool:
        return abs(z) > Z_THRESHOLD

    def classify(self, value: float, z: float) -> Severity:
        if z_at_least(z, 3.5):
            return Severity.CRITICAL
        if z_at_least(z, 3):
            return Severity.HIGH
        return Severity.MEDIUM

    def describe(self, value: float, mean: float, std: float, z: float) -> str:
        direction = "spike" if z > 0 else "drop"
        return (
            f"Request volume {direction} detected: {value:.0f} requests "
            f"(expected: {mean:.0f} ± {std:.0f})"
        )
