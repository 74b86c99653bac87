"""
Startup connection retries.

Both stores must be reachable before the schedules start. Connection attempts
are retried with a fixed delay a bounded number of times.
"""

import time
from collections.abc import Callable
from typing import TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def connect_with_retry(
    factory: Callable[[], T],
    name: str,
    max_retries: int = 5,
    delay_seconds: float = 3.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T | None:
    """Call factory until it returns a healthy connection

    Args:
        factory: Builds the connection; raising means "not reachable yet"
        name: Component name used in logs
        max_retries: Total number of attempts
        delay_seconds: Fixed delay between attempts
        sleep: Injected for tests

    Returns:
        The connection, or None once every attempt failed
    """
    for attempt in range(1, max_retries + 1):
        try:
            connection = factory()
            check_health = getattr(connection, "check_health", None)
            if check_health is None or check_health():
                logger.info("Connection ready", component=name, attempt=attempt)
                return connection
            logger.warning("Connection unhealthy", component=name, attempt=attempt)
            close = getattr(connection, "close", None)
            if close is not None:
                close()
        except Exception as e:
            logger.warning(
                "Connection attempt failed",
                component=name,
                attempt=attempt,
                max_retries=max_retries,
                error=str(e),
            )

        if attempt < max_retries:
            logger.info(
                "Retrying connection",
                component=name,
                attempt=attempt,
                max_retries=max_retries,
                delay_seconds=delay_seconds,
            )
            sleep(delay_seconds)

    logger.error("Failed to connect after multiple retries", component=name, max_retries=max_retries)
    return None
