"""
Pytest configuration and shared fixtures.
"""

import fnmatch
from datetime import UTC, datetime, timedelta

import pytest

from src.aggregator.models import RequestVolume, ServiceMetrics, Snapshot, utc_timestamp
from src.core.config import PipelineConfig


class FakeClock:
    """Manually advanced clock, in seconds"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """In-memory stand-in for the redis client methods the stores use"""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.data: dict[str, tuple[str, float]] = {}
        self.closed = False

    def _expire(self):
        now = self.clock()
        for key in [k for k, (_, expires_at) in self.data.items() if expires_at <= now]:
            del self.data[key]

    def ping(self):
        return True

    def setex(self, key, ttl, value):
        self.data[key] = (value, self.clock() + ttl)
        return True

    def get(self, key):
        self._expire()
        entry = self.data.get(key)
        return entry[0] if entry else None

    def keys(self, pattern="*"):
        self._expire()
        return [k for k in self.data if fnmatch.fnmatchcase(k, pattern)]

    def scan_iter(self, match="*", count=None):
        return iter(self.keys(match))

    def close(self):
        self.closed = True


# Config fixtures
@pytest.fixture
def pipeline_config():
    """Pipeline configuration pointing at local test infrastructure."""
    return PipelineConfig(
        postgres_host="localhost",
        postgres_port=5432,
        postgres_database="test_db",
        postgres_user="test_user",
        postgres_password="test_password",
        redis_host="localhost",
        redis_port=6379,
        snapshot_ttl_seconds=3600,
        analysis_ttl_seconds=7200,
        anomaly_cooldown_minutes=30,
    )


# Snapshot fixtures
@pytest.fixture
def make_snapshot():
    """Factory building snapshots from (service, requests, errors, p95) tuples."""

    def _make(
        timestamp: str | None = None,
        services: list[tuple[str, int, int, float]] | None = None,
        volume: int | None = None,
    ) -> Snapshot:
        metrics = [
            ServiceMetrics(
                service=name,
                total_requests=requests,
                total_errors=errors,
                p95_latency=p95,
            )
            for name, requests, errors, p95 in (services or [])
        ]
        total = volume if volume is not None else sum(m.total_requests for m in metrics)
        return Snapshot(
            timestamp=timestamp or utc_timestamp(),
            window_minutes=5,
            metrics=metrics,
            request_volume=RequestVolume(
                total=total, by_service={m.service: m.total_requests for m in metrics}
            ),
        )

    return _make


@pytest.fixture
def timestamps():
    """Factory of consecutive ISO timestamps one minute apart."""

    def _make(count: int, start: datetime | None = None) -> list[str]:
        start = start or datetime(2025, 10, 2, 12, 0, tzinfo=UTC)
        return [utc_timestamp(start + timedelta(minutes=i)) for i in range(count)]

    return _make


# Redis fixtures
@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_redis(fake_clock):
    return FakeRedis(fake_clock)
