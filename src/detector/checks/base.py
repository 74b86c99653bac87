"""
Base abstract interface for statistical metric checks.

All checks must inherit from MetricCheck and implement:
- baseline_samples(): historical values the current value is compared against
- current_value(): the value observed in the current snapshot
- is_anomalous() / classify() / describe(): trigger rule, severity ladder, message
"""

from abc import ABC, abstractmethod

import numpy as np

from src.aggregator.models import Snapshot

from ..models import Anomaly, ExpectedRange, MetricName, Severity

MIN_HISTORY = 3

# Absorbs float error in z, so a value of exactly mean + k*std lands on step k
Z_EPSILON = 1e-9


def z_score(value: float, mean: float, std: float) -> float:
    """Number of standard deviations between value and mean, 0 when std is 0"""
    if std == 0:
        return 0.0
    return (value - mean) / std


def z_at_least(z: float, threshold: float) -> bool:
    """True when |z| reaches the threshold, within Z_EPSILON"""
    return abs(z) >= threshold - Z_EPSILON


class MetricCheck(ABC):
    """Abstract base class for all metric checks

    evaluate() computes the population mean and standard deviation of the
    baseline samples, the z-score of the current value, and returns an
    Anomaly when the check's trigger rule fires.
    """

    metric: MetricName

    @abstractmethod
    def baseline_samples(self, history: list[Snapshot]) -> list[float]:
        """Extract the historical samples for this metric"""
        pass

    @abstractmethod
    def current_value(self, current: Snapshot) -> float:
        """Extract the current value for this metric"""
        pass

    @abstractmethod
    def is_anomalous(self, value: float, z: float) -> bool:
        pass

    @abstractmethod
    def classify(self, value: float, z: float) -> Severity:
        pass

    @abstractmethod
    def describe(self, value: float, mean: float, std: float, z: float) -> str:
        pass

    def evaluate(self, history: list[Snapshot], current: Snapshot) -> Anomaly | None:
        if len(history) < MIN_HISTORY:
            return None

        samples = self.baseline_samples(history)
        if not samples:
            return None

        mean = float(np.mean(samples))
        std = float(np.std(samples))  # population (ddof=0)

        value = self.current_value(current)
        z = z_score(value, mean, std)

        if not self.is_anomalous(value, z):
            return None

        return Anomaly(
            metric=self.metric,
            current_value=value,
            expected_range=ExpectedRange(min=max(0.0, mean - 2 * std), max=mean + 2 * std),
            z_score=z,
            severity=self.classify(value, z),
            message=self.describe(value, mean, std, z),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(metric={self.metric.value})"
