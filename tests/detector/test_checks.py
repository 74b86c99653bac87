"""
Tests for the metric checks.
"""

import numpy as np
import pytest

from src.detector.checks import (
    CHECK_REGISTRY,
    ErrorRateCheck,
    LatencyCheck,
    RequestVolumeCheck,
    default_checks,
    z_at_least,
    z_score,
)
from src.detector.models import MetricName, Severity


class TestZScore:
    def test_zero_std(self):
        assert z_score(10.0, 2.0, 0.0) == 0.0

    def test_sign(self):
        assert z_score(13.0, 10.0, 1.5) == 2.0
        assert z_score(7.0, 10.0, 1.5) == -2.0


class TestRegistry:
    def test_priority_order(self):
        assert [check.metric for check in default_checks()] == [
            MetricName.ERROR_RATE,
            MetricName.LATENCY,
            MetricName.REQUEST_VOLUME,
        ]

    def test_registry_keys_match_metric_names(self):
        assert {name for name in CHECK_REGISTRY} == {m.value for m in MetricName}


class TestErrorRateCheck:
    def test_worked_example_constant_baseline(self, make_snapshot):
        """2% everywhere in the baseline, 8% now: fires on the absolute floor."""
        history = [make_snapshot(services=[("api", 100, 2, 100.0)]) for _ in range(3)]
        current = make_snapshot(services=[("api", 100, 8, 100.0)])

        anomaly = ErrorRateCheck().evaluate(history, current)

        assert anomaly is not None
        assert anomaly.severity is Severity.MEDIUM
        assert anomaly.z_score == 0.0
        assert "8.00%" in anomaly.message
        assert anomaly.message == "Error rate anomaly detected: 8.00% (expected: 2.00% ± 0.00%)"

    def test_absolute_floor_is_strict(self):
        check = ErrorRateCheck()
        assert check.is_anomalous(5.0, 0.0) is False
        assert check.is_anomalous(5.01, 0.0) is True

    def test_z_trigger_is_strict(self):
        check = ErrorRateCheck()
        assert check.is_anomalous(1.0, 2.0) is False
        assert check.is_anomalous(1.0, -2.01) is True

    @pytest.mark.parametrize(
        "value, z, expected",
        [
            (6.0, 0.0, Severity.MEDIUM),
            (10.5, 0.0, Severity.HIGH),
            (3.0, 2.5, Severity.HIGH),
            (20.5, 0.0, Severity.CRITICAL),
            (3.0, 3.0, Severity.CRITICAL),
            (0.0, -3.0, Severity.CRITICAL),
        ],
    )
    def test_severity_ladder(self, value, z, expected):
        assert ErrorRateCheck().classify(value, z) is expected

    def test_baseline_uses_per_service_rates(self, make_snapshot):
        history = [make_snapshot(services=[("api", 100, 1, 0.0), ("idle", 0, 0, 0.0)])]

        assert ErrorRateCheck().baseline_samples(history) == pytest.approx([1.0])

    def test_not_anomalous(self, make_snapshot):
        history = [make_snapshot(services=[("api", 100, 2, 100.0)]) for _ in range(3)]
        current = make_snapshot(services=[("api", 100, 3, 100.0)])

        assert ErrorRateCheck().evaluate(history, current) is None

    def test_needs_three_history_snapshots(self, make_snapshot):
        history = [make_snapshot(services=[("api", 100, 2, 100.0)]) for _ in range(2)]
        current = make_snapshot(services=[("api", 100, 50, 100.0)])

        assert ErrorRateCheck().evaluate(history, current) is None


class TestLatencyCheck:
    def _history(self, make_snapshot):
        # Baseline P95s 100/300: mean 200, std 100
        return [
            make_snapshot(services=[("api", 0, 0, 100.0), ("worker", 0, 0, 300.0)])
            for _ in range(3)
        ]

    def test_three_sigma_is_critical(self, make_snapshot):
        current = make_snapshot(services=[("api", 0, 0, 500.0), ("worker", 0, 0, 500.0)])

        anomaly = LatencyCheck().evaluate(self._history(make_snapshot), current)

        assert anomaly.severity is Severity.CRITICAL
        assert anomaly.z_score == pytest.approx(3.0)
        assert anomaly.expected_range.min == 0.0
        assert anomaly.expected_range.max == pytest.approx(400.0)
        assert anomaly.message == "Latency anomaly detected: 500.00ms (expected: 200.00ms ± 100.00ms)"

    def test_three_sigma_on_uneven_baseline_is_critical(self, make_snapshot):
        """mean + 3 std lands on the critical step even when z comes out as 2.999..."""
        samples = [101.1, 137.3, 190.7]
        value = float(np.mean(samples) + 3 * np.std(samples))
        history = [make_snapshot(services=[("api", 0, 0, p95)]) for p95 in samples]
        current = make_snapshot(services=[("api", 0, 0, value)])

        anomaly = LatencyCheck().evaluate(history, current)

        assert anomaly.severity is Severity.CRITICAL
        assert anomaly.z_score == pytest.approx(3.0)

    def test_current_is_mean_of_positive_p95(self, make_snapshot):
        current = make_snapshot(services=[("api", 0, 0, 400.0), ("cron", 0, 0, 0.0)])

        assert LatencyCheck().current_value(current) == 400.0

    def test_absolute_floor(self, make_snapshot):
        history = [make_snapshot(services=[("api", 0, 0, 1100.0)]) for _ in range(3)]
        current = make_snapshot(services=[("api", 0, 0, 1100.0)])

        anomaly = LatencyCheck().evaluate(history, current)

        assert anomaly.severity is Severity.MEDIUM

    @pytest.mark.parametrize(
        "value, expected",
        [(1001.0, Severity.MEDIUM), (1501.0, Severity.HIGH), (2001.0, Severity.CRITICAL)],
    )
    def test_absolute_severity(self, value, expected):
        assert LatencyCheck().classify(value, 0.0) is expected


class TestRequestVolumeCheck:
    def _history(self, make_snapshot):
        # mean 1000, std 100
        return [make_snapshot(volume=v) for v in (900, 1100, 900, 1100)]

    def test_z_symmetry(self, make_snapshot):
        check = RequestVolumeCheck()
        spike = check.evaluate(self._history(make_snapshot), make_snapshot(volume=1350))
        drop = check.evaluate(self._history(make_snapshot), make_snapshot(volume=650))

        assert spike.severity is Severity.CRITICAL
        assert drop.severity is Severity.CRITICAL
        assert spike.z_score == pytest.approx(-drop.z_score)
        assert spike.message.startswith("Request volume spike detected: 1350 requests")
        assert drop.message.startswith("Request volume drop detected: 650 requests")

    @pytest.mark.parametrize(
        "volume, expected",
        [(1260, Severity.MEDIUM), (1300, Severity.HIGH), (1350, Severity.CRITICAL)],
    )
    def test_severity_ladder(self, make_snapshot, volume, expected):
        anomaly = RequestVolumeCheck().evaluate(
            self._history(make_snapshot), make_snapshot(volume=volume)
        )

        assert anomaly.severity is expected

    def test_no_absolute_floor(self, make_snapshot):
        history = [make_snapshot(volume=1_000_000) for _ in range(3)]

        assert RequestVolumeCheck().evaluate(history, make_snapshot(volume=1_000_000)) is None

    def test_relative_trigger(self, make_snapshot):
        assert RequestVolumeCheck().evaluate(
            self._history(make_snapshot), make_snapshot(volume=1250)
        ) is None


class TestSeverityBoundaries:
    @pytest.mark.parametrize(
        "check, samples, k, expected",
        [
            (ErrorRateCheck(), [1.1, 1.3, 1.9], 3, Severity.CRITICAL),
            (ErrorRateCheck(), [1.1, 1.3, 1.9], 2.5, Severity.HIGH),
            (LatencyCheck(), [101.1, 137.3, 190.7], 2.5, Severity.HIGH),
            (RequestVolumeCheck(), [903.0, 1118.0, 977.0], 3.5, Severity.CRITICAL),
            (RequestVolumeCheck(), [903.0, 1118.0, 977.0], 3, Severity.HIGH),
        ],
    )
    def test_mean_plus_k_std_reaches_step_k(self, check, samples, k, expected):
        mean, std = float(np.mean(samples)), float(np.std(samples))
        value = mean + k * std

        assert check.classify(value, z_score(value, mean, std)) is expected

    def test_z_at_least_tolerance(self):
        assert z_at_least(2.9999999999999996, 3)
        assert z_at_least(-3.0, 3)
        assert not z_at_least(2.99, 3)
