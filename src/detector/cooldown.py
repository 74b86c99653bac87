"""
Cooldown governor.

Suppresses repeated root-cause analysis of the same (metric, severity) class
within the cooldown window. State is process-local and lost on restart.
"""

import threading
import time
from collections.abc import Callable
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


def _key(metric: str | Enum, severity: str | Enum) -> tuple[str, str]:
    return (getattr(metric, "value", metric), getattr(severity, "value", severity))


class CooldownGovernor:
    """Tracks when each (metric, severity) class was last dispatched"""

    def __init__(self, cooldown_minutes: float, clock: Callable[[], float] = time.monotonic):
        self.cooldown_seconds = cooldown_minutes * 60
        self.clock = clock
        self._entries: dict[tuple[str, str], float] = {}
        self._lock = threading.Lock()

    def should_suppress(self, metric: str | Enum, severity: str | Enum) -> bool:
        """True if the same class was dispatched less than one window ago"""
        with self._lock:
            last = self._entries.get(_key(metric, severity))
            if last is None:
                return False
            return self.clock() - last < self.cooldown_seconds

    def mark_dispatched(self, metric: str | Enum, severity: str | Enum) -> None:
        """Record a dispatch and purge entries older than the window"""
        with self._lock:
            now = self.clock()
            self._entries[_key(metric, severity)] = now
            expired = [k for k, ts in self._entries.items() if now - ts > self.cooldown_seconds]
            for k in expired:
                del self._entries[k]

        logger.debug(
            "Cooldown set",
            metric=_key(metric, severity)[0],
            severity=_key(metric, severity)[1],
            cooldown_seconds=self.cooldown_seconds,
            purged=len(expired),
        )

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
