"""
Core utilities shared across the application.
"""

from .cache import RedisConnection
from .config import PipelineConfig
from .database import PostgresConnection
from .logger import setup_logging
from .outcome import ErrorKind, StepResult
from .startup import connect_with_retry

__all__ = [
    "ErrorKind",
    "PipelineConfig",
    "PostgresConnection",
    "RedisConnection",
    "StepResult",
    "connect_with_retry",
    "setup_logging",
]
