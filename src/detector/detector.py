"""
Statistical anomaly detector.

Compares the current snapshot against historical snapshots and returns at
most one anomaly per cycle: checks run in priority order (error rate,
latency, request volume) and the first one that fires wins.
"""

import structlog

from src.aggregator.models import Snapshot

from .checks import MIN_HISTORY, MetricCheck, default_checks
from .models import Anomaly

logger = structlog.get_logger(__name__)


class AnomalyDetector:
    """Z-score detector over a short-lived snapshot baseline"""

    def __init__(self, checks: list[MetricCheck] | None = None):
        self.checks = checks if checks is not None else default_checks()

    def detect(self, history: list[Snapshot], current: Snapshot) -> Anomaly | None:
        if len(history) < MIN_HISTORY:
            logger.info(
                "Insufficient baseline, skipping detection",
                history=len(history),
                required=MIN_HISTORY,
            )
            return None

        for check in self.checks:
            anomaly = check.evaluate(history, current)
            if anomaly is not None:
                logger.info(
                    "Anomaly detected",
                    metric=anomaly.metric.value,
                    severity=anomaly.severity.value,
                    current=round(anomaly.current_value, 2),
                    z_score=round(anomaly.z_score, 3),
                )
                return anomaly

        return None
