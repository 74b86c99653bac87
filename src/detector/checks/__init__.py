"""
Metric checks registry and factory.
"""

from .base import MIN_HISTORY, Z_EPSILON, MetricCheck, z_at_least, z_score
from .error_rate import ErrorRateCheck
from .latency import LatencyCheck
from .request_volume import RequestVolumeCheck

# Registry of available checks, in evaluation priority order
CHECK_REGISTRY = {
    "error_rate": ErrorRateCheck,
    "latency": LatencyCheck,
    "request_volume": RequestVolumeCheck,
}


def default_checks() -> list[MetricCheck]:
    """All registered checks, most actionable first"""
    return [check_class() for check_class in CHECK_REGISTRY.values()]


__all__ = [
    "CHECK_REGISTRY",
    "MIN_HISTORY",
    "ErrorRateCheck",
    "LatencyCheck",
    "MetricCheck",
    "RequestVolumeCheck",
    "Z_EPSILON",
    "default_checks",
    "z_at_least",
    "z_score",
]
