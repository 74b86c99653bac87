"""
PostgreSQL windowed queries over raw telemetry.

Handles:
- Log counts grouped by service and level
- Request metrics grouped by service (exact percentiles)
- Trace statistics grouped by service and operation, plus slow endpoints
"""

from datetime import UTC, datetime, timedelta

import pandas as pd
import structlog

from src.core.config import PipelineConfig
from src.core.database import PostgresConnection

logger = structlog.get_logger(__name__)


class AggregatorDatabase(PostgresConnection):
    """Read-only queries used by the windowed aggregator"""

    def __init__(self, config: PipelineConfig):
        super().__init__(
            host=config.postgres_host,
            port=config.postgres_port,
            database=config.postgres_database,
            user=config.postgres_user,
            password=config.postgres_password,
            dsn=config.database_url,
        )
        self.config = config

    @staticmethod
    def cutoff(minutes: int, now: datetime | None = None) -> datetime:
        """Start of the trailing window"""
        now = now or datetime.now(UTC)
        return now - timedelta(minutes=minutes)

    def get_logs_data(self, minutes: int) -> pd.DataFrame:
        """Log counts for the last N minutes

        Returns:
            DataFrame with columns ['service', 'level', 'count']
        """
        query = """
            SELECT
                service,
                level,
                COUNT(*) AS count
            FROM logs
            WHERE timestamp >= %(cutoff)s
            GROUP BY service, level
            ORDER BY service, level
        """
        df = self.fetch_dataframe(query, {"cutoff": self.cutoff(minutes)})
        logger.debug("Queried logs data", minutes=minutes, rows=len(df))
        return df

    def get_metrics_data(self, minutes: int) -> pd.DataFrame:
        """Per-service request metrics for the last N minutes

        Percentiles are computed over every raw sample in the window.
        """
        query = """
            SELECT
                service,
                COUNT(*) AS sample_count,
                SUM(request_count) AS total_requests,
                SUM(error_count) AS total_errors,
                AVG(avg_response_time_ms) AS avg_response_time,
                PERCENTILE_CONT(0.95) WITHIN GROUP (ORDER BY p95_response_time_ms) AS p95_latency,
                PERCENTILE_CONT(0.99) WITHIN GROUP (ORDER BY p99_response_time_ms) AS p99_latency,
                AVG(cpu_usage_percent) AS avg_cpu,
                AVG(memory_usage_percent) AS avg_memory,
                MAX(active_connections) AS max_connections,
                SUM(throughput_bytes_per_sec) AS total_throughput
            FROM metrics
            WHERE timestamp >= %(cutoff)s
            GROUP BY service
            ORDER BY service
        """
        df = self.fetch_dataframe(query, {"cutoff": self.cutoff(minutes)})
        logger.debug("Queried metrics data", minutes=minutes, rows=len(df))
        return df

    def get_traces_data(self, minutes: int) -> pd.DataFrame:
        """Per-operation trace statistics for the last N minutes"""
        query = """
            SELECT
                service,
                operation,
                COUNT(*) AS trace_count,
                AVG(duration) AS avg_duration,
                PERCENTILE_CONT(0.95) WITHIN GROUP (ORDER BY duration) AS p95_duration,
                PERCENTILE_CONT(0.99) WITHIN GROUP (ORDER BY duration) AS p99_duration,
                COUNT(CASE WHEN status_code >= 400 THEN 1 END) AS error_count,
                COUNT(CASE WHEN status_code >= 500 THEN 1 END) AS server_error_count
            FROM traces
            WHERE start_time >= %(cutoff)s
            GROUP BY service, operation
            ORDER BY service, operation
        """
        df = self.fetch_dataframe(query, {"cutoff": self.cutoff(minutes)})
        logger.debug("Queried traces data", minutes=minutes, rows=len(df))
        return df

    def get_slow_endpoints(self, minutes: int) -> pd.DataFrame:
        """Operations whose P95 duration exceeds the slow-endpoint threshold, slowest first"""
        query = """
            SELECT
                service,
                operation,
                PERCENTILE_CONT(0.95) WITHIN GROUP (ORDER BY duration) AS p95_duration,
                COUNT(*) AS count
            FROM traces
            WHERE start_time >= %(cutoff)s
            GROUP BY service, operation
            HAVING PERCENTILE_CONT(0.95) WITHIN GROUP (ORDER BY duration) > %(threshold)s
            ORDER BY p95_duration DESC
            LIMIT %(limit)s
        """
        df = self.fetch_dataframe(
            query,
            {
                "cutoff": self.cutoff(minutes),
                "threshold": self.config.slow_endpoint_threshold_ms,
                "limit": self.config.slow_endpoint_limit,
            },
        )
        logger.debug("Queried slow endpoints", minutes=minutes, rows=len(df))
        return df
