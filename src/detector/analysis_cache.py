"""
Redis fast store for root-cause analyses.
"""

import json

import structlog

from src.core.cache import RedisConnection
from src.core.config import PipelineConfig

from .models import AnalysisRecord

logger = structlog.get_logger(__name__)

KEY_PREFIX = "ai:analysis:"
LATEST_KEY = "ai:analysis:latest"


class AnalysisCache(RedisConnection):
    """Short-TTL cache of analysis records for dashboards"""

    def __init__(self, config: PipelineConfig):
        super().__init__(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            password=config.redis_password,
            url=config.redis_url,
        )
        self.ttl = config.analysis_ttl_seconds

    def save_analysis(self, record: AnalysisRecord) -> bool:
        """Save a record under its timestamp key and as the latest analysis"""
        key = self._make_key(record.timestamp)
        payload = json.dumps(record.to_dict())
        try:
            self.redis.setex(key, self.ttl, payload)
            self.redis.setex(LATEST_KEY, self.ttl, payload)
            logger.debug("Analysis saved to Redis", key=key)
            return True
        except Exception as e:
            logger.error("Failed to save analysis to Redis", key=key, error=str(e))
            return False

    def load_analysis(self, timestamp: str) -> AnalysisRecord | None:
        return self._load(self._make_key(timestamp))

    def load_latest(self) -> AnalysisRecord | None:
        return self._load(LATEST_KEY)

    def _load(self, key: str) -> AnalysisRecord | None:
        try:
            data = self.redis.get(key)
            if data is None:
                return None
            return AnalysisRecord.from_dict(json.loads(data))
        except Exception as e:
            logger.error("Failed to load analysis from Redis", key=key, error=str(e))
            return None

    def _make_key(self, timestamp: str) -> str:
        """Generate Redis key"""
        return f"{KEY_PREFIX}{timestamp}"
