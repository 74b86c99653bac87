"""
Service runtime: scheduling, health endpoint and the command-line entry point.
"""

from .health import create_app
from .scheduler import PipelineScheduler

__all__ = ["PipelineScheduler", "create_app"]
