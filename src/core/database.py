"""
Generic PostgreSQL connection management.
Shared by the aggregator (raw telemetry reads) and the detector (context reads, analysis writes).
"""

from contextlib import contextmanager
from typing import Any

import pandas as pd
import psycopg2
import structlog

logger = structlog.get_logger(__name__)


class PostgresConnection:
    """Base class for PostgreSQL connection management"""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "telemetry",
        user: str = "telemetry",
        password: str = "telemetry",
        dsn: str | None = None,
    ):
        self.host = host or "localhost"
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.dsn = dsn or None
        self.connection = None
        self._connect()

    def _connect(self):
        """Establish connection to PostgreSQL, from a DSN when one is configured"""
        try:
            if self.dsn:
                self.connection = psycopg2.connect(self.dsn, connect_timeout=10)
            else:
                self.connection = psycopg2.connect(
                    host=self.host,
                    port=self.port,
                    database=self.database,
                    user=self.user,
                    password=self.password,
                    connect_timeout=10,
                )
            logger.info(
                "PostgreSQL connection established",
                host=self.host if not self.dsn else mask_dsn(self.dsn),
                database=self.database,
            )
        except Exception as e:
            logger.error("Failed to connect to PostgreSQL", error=str(e))
            raise

    def _ensure_connection(self):
        """Reconnect if the previous connection was closed by the server"""
        if self.connection is None or getattr(self.connection, "closed", 0):
            logger.warning("PostgreSQL connection lost, reconnecting")
            self._connect()

    @contextmanager
    def get_cursor(self):
        """Context manager for database cursor with automatic commit/rollback"""
        self._ensure_connection()
        cursor = self.connection.cursor()
        try:
            yield cursor
            self.connection.commit()
        except Exception as e:
            self.connection.rollback()
            logger.error("Database operation failed", error=str(e))
            raise
        finally:
            cursor.close()

    def fetch_dataframe(self, query: str, params: dict[str, Any] | None = None) -> pd.DataFrame:
        """Run a read query and return its rows as a DataFrame

        Errors are propagated so callers can abort their cycle.
        """
        with self.get_cursor() as cursor:
            cursor.execute(query, params or {})
            columns = [desc[0] for desc in cursor.description]
            rows = cursor.fetchall()
        return pd.DataFrame(rows, columns=columns)

    def check_health(self) -> bool:
        """Check if database connection is healthy"""
        try:
            with self.get_cursor() as cursor:
                cursor.execute("SELECT 1")
                return cursor.fetchone()[0] == 1
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False

    def close(self):
        """Close database connection"""
        if self.connection:
            self.connection.close()
            logger.info("PostgreSQL connection closed")


def mask_dsn(dsn: str) -> str:
    """Hide the password part of a connection URL before logging it"""
    if "@" not in dsn or "://" not in dsn:
        return dsn
    scheme, rest = dsn.split("://", 1)
    credentials, location = rest.rsplit("@", 1)
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:****@{location}"
