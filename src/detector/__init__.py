"""
Anomaly Detector

Compares the newest snapshot against recent ones, gates repeated anomalies
through a cooldown, and dispatches root-cause analysis to text-generation
providers. Analyses are cached in Redis, stored in PostgreSQL and published
to Kafka.
"""

from .cooldown import CooldownGovernor
from .cycle import CycleReport, CycleState, DetectionCycle
from .detector import AnomalyDetector
from .dispatcher import DispatchReport, RootCauseDispatcher
from .models import AnalysisRecord, Anomaly, MetricName, Severity

__all__ = [
    "AnalysisRecord",
    "Anomaly",
    "AnomalyDetector",
    "CooldownGovernor",
    "CycleReport",
    "CycleState",
    "DetectionCycle",
    "DispatchReport",
    "MetricName",
    "RootCauseDispatcher",
    "Severity",
]
