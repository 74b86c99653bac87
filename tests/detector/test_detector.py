"""
Tests for the anomaly detector.
"""

from unittest.mock import MagicMock

from src.detector.checks import LatencyCheck, RequestVolumeCheck
from src.detector.detector import AnomalyDetector
from src.detector.models import MetricName, Severity


class TestAnomalyDetector:
    def test_insufficient_history(self, make_snapshot):
        history = [make_snapshot(services=[("api", 100, 2, 100.0)]) for _ in range(2)]
        current = make_snapshot(services=[("api", 100, 90, 9000.0)])

        assert AnomalyDetector().detect(history, current) is None

    def test_no_anomaly(self, make_snapshot):
        history = [make_snapshot(services=[("api", 100, 1, 100.0)]) for _ in range(3)]
        current = make_snapshot(services=[("api", 100, 1, 100.0)])

        assert AnomalyDetector().detect(history, current) is None

    def test_error_rate_has_priority(self, make_snapshot):
        """All three metrics breach: only the error rate anomaly is returned."""
        history = [
            make_snapshot(services=[("api", 100, 1, 100.0)], volume=v) for v in (90, 110, 90, 110)
        ]
        current = make_snapshot(services=[("api", 100, 30, 5000.0)], volume=10000)
        assert LatencyCheck().evaluate(history, current) is not None
        assert RequestVolumeCheck().evaluate(history, current) is not None

        anomaly = AnomalyDetector().detect(history, current)

        assert anomaly.metric is MetricName.ERROR_RATE
        assert anomaly.severity is Severity.CRITICAL

    def test_latency_before_volume(self, make_snapshot):
        history = [make_snapshot(services=[("api", 100, 0, 100.0)]) for _ in range(3)]
        current = make_snapshot(services=[("api", 100000, 0, 5000.0)])

        anomaly = AnomalyDetector().detect(history, current)

        assert anomaly.metric is MetricName.LATENCY

    def test_stops_at_first_anomaly(self, make_snapshot):
        first = MagicMock()
        second = MagicMock()
        history = [make_snapshot() for _ in range(3)]
        detector = AnomalyDetector(checks=[first, second])
        first.evaluate.return_value = MagicMock(
            metric=MetricName.ERROR_RATE, severity=Severity.HIGH, current_value=1.0, z_score=2.5
        )

        assert detector.detect(history, make_snapshot()) is first.evaluate.return_value
        second.evaluate.assert_not_called()
