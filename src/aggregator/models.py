"""
Data models for windowed telemetry summaries (snapshots).
"""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

# Fixed thresholds for dashboard spike flags
ERROR_RATE_SPIKE_PERCENT = 5.0
LATENCY_SPIKE_MS = 1000.0
CPU_SPIKE_PERCENT = 80.0
MEMORY_SPIKE_PERCENT = 85.0


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-10-02T12:00:00.000Z"""
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ServiceLogCounts:
    total: int = 0
    errors: int = 0


@dataclass
class LogsSummary:
    """Log line counts for the window"""

    total_count: int = 0
    error_count: int = 0
    by_service: dict[str, ServiceLogCounts] = field(default_factory=dict)
    by_level: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "LogsSummary":
        return cls(
            total_count=data.get("total_count", 0),
            error_count=data.get("error_count", 0),
            by_service={
                service: ServiceLogCounts(**counts)
                for service, counts in data.get("by_service", {}).items()
            },
            by_level=dict(data.get("by_level", {})),
        )


@dataclass
class ServiceMetrics:
    """Request metrics of one service over the window"""

    service: str
    total_requests: int = 0
    total_errors: int = 0
    avg_response_time: float = 0.0
    p95_latency: float = 0.0
    p99_latency: float = 0.0
    avg_cpu: float = 0.0
    avg_memory: float = 0.0
    max_connections: int = 0
    total_throughput: int = 0

    @property
    def error_rate(self) -> float:
        """Error rate in percent, 0 when the service served no requests"""
        if self.total_requests <= 0:
            return 0.0
        return self.total_errors / self.total_requests * 100


@dataclass
class OperationTraces:
    """Trace statistics of one (service, operation) pair"""

    service: str
    operation: str
    trace_count: int = 0
    avg_duration: float = 0.0
    p95_duration: float = 0.0
    p99_duration: float = 0.0
    error_count: int = 0  # status_code >= 400
    server_error_count: int = 0  # status_code >= 500


@dataclass
class SlowEndpoint:
    service: str
    operation: str
    p95_duration: float
    count: int


@dataclass
class RequestVolume:
    total: int = 0
    by_service: dict[str, int] = field(default_factory=dict)


@dataclass
class AnomalousSpike:
    """Threshold-only flag meant for dashboards"""

    type: str
    service: str
    value: float
    threshold: float
    timestamp: str


@dataclass
class Snapshot:
    """One windowed aggregation of raw telemetry, identified by its timestamp"""

    timestamp: str
    window_minutes: int
    logs: LogsSummary = field(default_factory=LogsSummary)
    metrics: list[ServiceMetrics] = field(default_factory=list)
    traces: list[OperationTraces] = field(default_factory=list)
    slow_endpoints: list[SlowEndpoint] = field(default_factory=list)
    error_counts: dict[str, int] = field(default_factory=dict)
    request_volume: RequestVolume = field(default_factory=RequestVolume)
    anomalous_spikes: list[AnomalousSpike] = field(default_factory=list)

    @property
    def aggregate_error_rate(self) -> float:
        """Total errors over total requests across all services, in percent"""
        total_requests = sum(m.total_requests for m in self.metrics)
        if total_requests <= 0:
            return 0.0
        return sum(m.total_errors for m in self.metrics) / total_requests * 100

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Snapshot":
        """Create from dictionary"""
        volume = data.get("request_volume") or {}
        return cls(
            timestamp=data["timestamp"],
            window_minutes=data.get("window_minutes", 0),
            logs=LogsSummary.from_dict(data.get("logs") or {}),
            metrics=[ServiceMetrics(**m) for m in data.get("metrics", [])],
            traces=[OperationTraces(**t) for t in data.get("traces", [])],
            slow_endpoints=[SlowEndpoint(**s) for s in data.get("slow_endpoints", [])],
            error_counts=dict(data.get("error_counts", {})),
            request_volume=RequestVolume(
                total=volume.get("total", 0), by_service=dict(volume.get("by_service", {}))
            ),
            anomalous_spikes=[AnomalousSpike(**s) for s in data.get("anomalous_spikes", [])],
        )
