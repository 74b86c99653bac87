"""
PostgreSQL operations for the anomaly detector.

Handles:
- Querying recent raw logs and traces as root-cause context
- Permanent storage of root-cause analyses (ai_analysis table)
"""

from datetime import UTC, datetime, timedelta

import pandas as pd
import structlog

from src.core.config import PipelineConfig
from src.core.database import PostgresConnection

from .models import AnalysisRecord

logger = structlog.get_logger(__name__)


class DetectorDatabase(PostgresConnection):
    """Database operations for root-cause analysis"""

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

    def get_recent_logs(self, minutes: int, limit: int = 100) -> pd.DataFrame:
        """Most recent log lines of the last N minutes, newest first

        Returns:
            DataFrame with columns ['id', 'timestamp', 'level', 'message', 'service', 'metadata']
        """
        query = """
            SELECT id, timestamp, level, message, service, metadata
            FROM logs
            WHERE timestamp >= %(cutoff)s
            ORDER BY timestamp DESC
            LIMIT %(limit)s
        """
        cutoff = datetime.now(UTC) - timedelta(minutes=minutes)
        df = self.fetch_dataframe(query, {"cutoff": cutoff, "limit": limit})
        logger.debug("Queried recent logs", minutes=minutes, rows=len(df))
        return df

    def get_recent_traces(self, minutes: int, limit: int = 50) -> pd.DataFrame:
        """Most recent traces of the last N minutes, newest first"""
        query = """
            SELECT trace_id, service, operation, start_time, duration, status_code, spans
            FROM traces
            WHERE start_time >= %(cutoff)s
            ORDER BY start_time DESC
            LIMIT %(limit)s
        """
        cutoff = datetime.now(UTC) - timedelta(minutes=minutes)
        df = self.fetch_dataframe(query, {"cutoff": cutoff, "limit": limit})
        logger.debug("Queried recent traces", minutes=minutes, rows=len(df))
        return df

    def ensure_analysis_table_exists(self):
        """Create ai_analysis table if it doesn't exist"""
        query = """
            CREATE TABLE IF NOT EXISTS ai_analysis (
                id SERIAL PRIMARY KEY,
                provider VARCHAR(50) NOT NULL,
                analysis TEXT NOT NULL,
                severity VARCHAR(20),
                metric VARCHAR(50),
                message TEXT,
                timestamp TIMESTAMP NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_ai_analysis_timestamp
            ON ai_analysis(timestamp);
        """

        try:
            with self.get_cursor() as cursor:
                cursor.execute(query)
                logger.info("Ensured ai_analysis table exists")
        except Exception as e:
            logger.error("Failed to create ai_analysis table", error=str(e))

    def insert_analysis(self, record: AnalysisRecord) -> int:
        """Insert a root-cause analysis

        Returns:
            The id of the inserted row

        Raises:
            RuntimeError: If the insert did not return an id; database errors propagate
        """
        query = """
            INSERT INTO ai_analysis (provider, analysis, severity, metric, message, timestamp)
            VALUES (%(provider)s, %(analysis)s, %(severity)s, %(metric)s, %(message)s, %(timestamp)s)
            RETURNING id
        """

        with self.get_cursor() as cursor:
            cursor.execute(query, record.to_db_dict())
            row = cursor.fetchone()

        if not row or row[0] is None:
            raise RuntimeError("INSERT did not return an id")

        logger.debug(
            "Analysis inserted",
            id=row[0],
            provider=record.provider,
            metric=record.metric,
            severity=record.severity,
        )
        return row[0]
