"""
Tests for snapshot models.
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from src.aggregator.models import (
    AnomalousSpike,
    LogsSummary,
    OperationTraces,
    RequestVolume,
    ServiceLogCounts,
    ServiceMetrics,
    SlowEndpoint,
    Snapshot,
    utc_timestamp,
)


class TestUtcTimestamp:
    def test_millisecond_precision_with_z_suffix(self):
        now = datetime(2025, 10, 2, 12, 0, 5, 123456, tzinfo=UTC)
        assert utc_timestamp(now) == "2025-10-02T12:00:05.123Z"

    def test_converts_to_utc(self):
        now = datetime(2025, 10, 2, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert utc_timestamp(now) == "2025-10-02T12:00:00.000Z"

    def test_timestamps_sort_chronologically(self):
        start = datetime(2025, 10, 2, 9, 59, 59, tzinfo=UTC)
        stamps = [utc_timestamp(start + timedelta(seconds=s)) for s in (0, 1, 61, 3600)]
        assert sorted(stamps) == stamps


class TestServiceMetrics:
    def test_error_rate(self):
        metrics = ServiceMetrics(service="api", total_requests=200, total_errors=10)
        assert metrics.error_rate == pytest.approx(5.0)

    def test_error_rate_without_requests(self):
        assert ServiceMetrics(service="api", total_requests=0, total_errors=3).error_rate == 0.0


class TestSnapshot:
    def test_aggregate_error_rate(self):
        snapshot = Snapshot(
            timestamp="2025-10-02T12:00:00.000Z",
            window_minutes=5,
            metrics=[
                ServiceMetrics(service="api", total_requests=300, total_errors=6),
                ServiceMetrics(service="worker", total_requests=100, total_errors=2),
            ],
        )
        assert snapshot.aggregate_error_rate == pytest.approx(2.0)

    def test_aggregate_error_rate_empty(self):
        assert Snapshot(timestamp="t", window_minutes=5).aggregate_error_rate == 0.0

    def test_dict_round_trip(self):
        snapshot = Snapshot(
            timestamp="2025-10-02T12:00:00.000Z",
            window_minutes=5,
            logs=LogsSummary(
                total_count=12,
                error_count=2,
                by_service={"api": ServiceLogCounts(total=12, errors=2)},
                by_level={"info": 10, "error": 2},
            ),
            metrics=[ServiceMetrics(service="api", total_requests=100, p95_latency=250.0)],
            traces=[OperationTraces(service="api", operation="GET /users", trace_count=4)],
            slow_endpoints=[
                SlowEndpoint(service="api", operation="GET /search", p95_duration=900.0, count=3)
            ],
            error_counts={"api": 2},
            request_volume=RequestVolume(total=100, by_service={"api": 100}),
            anomalous_spikes=[
                AnomalousSpike(
                    type="high_cpu",
                    service="api",
                    value=91.0,
                    threshold=80.0,
                    timestamp="2025-10-02T12:00:00.000Z",
                )
            ],
        )

        assert Snapshot.from_dict(snapshot.to_dict()) == snapshot

    def test_from_dict_tolerates_missing_sections(self):
        snapshot = Snapshot.from_dict({"timestamp": "2025-10-02T12:00:00.000Z"})

        assert snapshot.metrics == []
        assert snapshot.request_volume.total == 0
        assert snapshot.logs.total_count == 0
