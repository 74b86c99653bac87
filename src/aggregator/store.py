"""
Redis store for windowed snapshots.

Keys:
- aggregated:<ISO timestamp>   one entry per snapshot, expires after the TTL
- aggregated:latest            the most recent snapshot
- service:<name>:metrics, slow:endpoints, errors:counts, volume:requests
                               quick-access views of the latest snapshot
"""

import json
from dataclasses import asdict
from datetime import datetime

import structlog

from src.core.cache import RedisConnection
from src.core.config import PipelineConfig

from .models import Snapshot

logger = structlog.get_logger(__name__)

KEY_PREFIX = "aggregated:"
LATEST_KEY = "aggregated:latest"


def _parse_timestamp(timestamp: str) -> datetime:
    return datetime.fromisoformat(timestamp.replace("Z", "+00:00"))


class SnapshotStore(RedisConnection):
    """Persists and retrieves snapshots with expiration"""

    def __init__(self, config: PipelineConfig):
        super().__init__(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            password=config.redis_password,
            url=config.redis_url,
        )
        self.ttl = config.snapshot_ttl_seconds

    def put(self, snapshot: Snapshot, ttl: int | None = None) -> bool:
        """Save a snapshot under its timestamp key and as the latest snapshot

        Writing the same timestamp twice overwrites the previous entry.
        """
        ttl = self.ttl if ttl is None else ttl
        key = self._make_key(snapshot.timestamp)
        payload = json.dumps(snapshot.to_dict())
        try:
            self.redis.setex(key, ttl, payload)
            self.redis.setex(LATEST_KEY, ttl, payload)

            for service_metrics in snapshot.metrics:
                self.redis.setex(
                    f"service:{service_metrics.service}:metrics",
                    ttl,
                    json.dumps(asdict(service_metrics)),
                )
            if snapshot.slow_endpoints:
                self.redis.setex(
                    "slow:endpoints",
                    ttl,
                    json.dumps([asdict(e) for e in snapshot.slow_endpoints]),
                )
            self.redis.setex("errors:counts", ttl, json.dumps(snapshot.error_counts))
            self.redis.setex("volume:requests", ttl, json.dumps(asdict(snapshot.request_volume)))

            logger.debug("Snapshot saved to Redis", key=key, ttl=ttl)
            return True
        except Exception as e:
            logger.error("Failed to save snapshot to Redis", key=key, error=str(e))
            return False

    def get_latest(self) -> Snapshot | None:
        """Load the most recent snapshot"""
        return self._load(LATEST_KEY)

    def get_recent(self, count: int) -> list[Snapshot]:
        """Load up to `count` recent snapshots in chronological order

        Expired snapshots are absent from the result. If keys cannot be
        enumerated, only the latest snapshot is returned.
        """
        if count <= 0:
            return []

        try:
            keys = self._list_snapshot_keys()
        except Exception as e:
            logger.warning("Snapshot key enumeration failed, using latest only", error=str(e))
            latest = self.get_latest()
            return [latest] if latest else []

        timestamp_keys = sorted((k for k in keys if k != LATEST_KEY), reverse=True)[:count]

        snapshots = []
        latest = self.get_latest()
        if latest:
            snapshots.append(latest)
        for key in timestamp_keys:
            snapshot = self._load(key)
            if snapshot:
                snapshots.append(snapshot)

        unique: dict[str, Snapshot] = {}
        for snapshot in snapshots:
            unique.setdefault(snapshot.timestamp, snapshot)

        recent = sorted(unique.values(), key=lambda s: _parse_timestamp(s.timestamp))[-count:]

        if recent:
            logger.debug(
                "Loaded recent snapshots",
                count=len(recent),
                oldest=recent[0].timestamp,
                newest=recent[-1].timestamp,
            )
        return recent

    def _list_snapshot_keys(self) -> list[str]:
        """Enumerate snapshot keys with SCAN, falling back to KEYS"""
        pattern = f"{KEY_PREFIX}*"
        try:
            return list(self.redis.scan_iter(match=pattern, count=100))
        except Exception as e:
            logger.warning("SCAN failed, trying KEYS", error=str(e))
            return list(self.redis.keys(pattern))

    def _load(self, key: str) -> Snapshot | None:
        try:
            data = self.redis.get(key)
            if data is None:
                return None
            return Snapshot.from_dict(json.loads(data))
        except Exception as e:
            logger.warning("Skipping unreadable snapshot", key=key, error=str(e))
            return None

    def _make_key(self, timestamp: str) -> str:
        """Generate Redis key"""
        return f"{KEY_PREFIX}{timestamp}"
