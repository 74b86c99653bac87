"""
Explicit step results for the pipeline.

Each step of a cycle returns a StepResult instead of raising, and the
orchestrating cycle decides whether to continue, degrade or abort based on
the ErrorKind.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    """Failure taxonomy of the pipeline"""

    TRANSIENT_INFRA = "transient_infra"
    CYCLE_FAILURE = "cycle_failure"
    PROVIDER_FAILURE = "provider_failure"
    PERSISTENCE_DEGRADATION = "persistence_degradation"
    NOTIFICATION_FAILURE = "notification_failure"


@dataclass
class StepResult(Generic[T]):
    """Value of a successful step, or the kind and message of its failure"""

    value: T | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, value: T | None = None) -> "StepResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, error: str) -> "StepResult[T]":
        return cls(error_kind=kind, error=error)
