"""
Data models for anomaly detection and root-cause analysis.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum


class MetricName(str, Enum):
    """Metrics evaluated by the statistical detector, in priority order"""

    ERROR_RATE = "error_rate"
    LATENCY = "latency"
    REQUEST_VOLUME = "request_volume"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ExpectedRange:
    min: float
    max: float


@dataclass
class Anomaly:
    """A detection result. Consumed by the cooldown governor, never stored on its own"""

    metric: MetricName
    current_value: float
    expected_range: ExpectedRange
    z_score: float
    severity: Severity
    message: str


@dataclass
class AnalysisRecord:
    """Root-cause analysis of a dispatched anomaly"""

    provider: str
    analysis: str
    severity: str
    metric: str
    message: str
    timestamp: str

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisRecord":
        """Create from dictionary"""
        return cls(**{name: data[name] for name in cls.__dataclass_fields__})

    def to_db_dict(self) -> dict:
        """Convert to dict for database insertion"""
        return self.to_dict()


@dataclass
class AnomalyNotification:
    """Payload published to the notification channel"""

    severity: str
    metric: str
    message: str
    analysis: str
    timestamp: str
    provider: str
    type: str = field(default="anomaly_detected")

    @classmethod
    def from_record(cls, record: AnalysisRecord, timestamp: str) -> "AnomalyNotification":
        return cls(
            severity=record.severity,
            metric=record.metric,
            message=record.message,
            analysis=record.analysis,
            timestamp=timestamp,
            provider=record.provider,
        )

    def to_dict(self) -> dict:
        return asdict(self)
