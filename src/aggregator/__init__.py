"""
Windowed Aggregator

Periodically rolls raw telemetry (logs, request metrics, traces) from
PostgreSQL into one summary snapshot and stores it in Redis with a TTL.
"""

from .aggregator import WindowedAggregator
from .database import AggregatorDatabase
from .models import Snapshot
from .store import SnapshotStore

__all__ = ["AggregatorDatabase", "Snapshot", "SnapshotStore", "WindowedAggregator"]
