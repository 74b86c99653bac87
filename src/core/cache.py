"""
Generic Redis connection management.
Base class for the snapshot store and the analysis fast store.
"""

import redis
import structlog

from .database import mask_dsn

logger = structlog.get_logger(__name__)


class RedisConnection:
    """Base class for Redis connection management"""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        url: str | None = None,
    ):
        self.host = host or "localhost"
        self.port = port
        self.db = db
        self.password = password
        self.url = url or None
        self.redis = None
        self._connect()

    def _connect(self):
        """Create the client and test the connection"""
        try:
            if self.url:
                # rediss:// URLs (e.g. Upstash) enable TLS on their own
                self.redis = redis.Redis.from_url(self.url, decode_responses=True)
            else:
                self.redis = redis.Redis(
                    host=self.host,
                    port=self.port,
                    db=self.db,
                    password=self.password,
                    decode_responses=True,
                )
            self.redis.ping()
            logger.info(
                "Redis connection established",
                target=mask_dsn(self.url) if self.url else f"{self.host}:{self.port}",
            )
        except Exception as e:
            logger.error("Failed to initialize Redis", error=str(e))
            raise

    def check_health(self) -> bool:
        """Check if Redis answers PING"""
        try:
            return bool(self.redis.ping())
        except Exception as e:
            logger.error("Redis health check failed", error=str(e))
            return False

    def close(self):
        """Close Redis connection"""
        if self.redis is not None:
            self.redis.close()
            logger.info("Redis connection closed")
