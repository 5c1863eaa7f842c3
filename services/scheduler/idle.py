"""
Tracks whether the system is idle (no workflow running) and since when.
"""

import threading
from datetime import datetime, timedelta
from typing import Optional

from core.logging_config import get_logger
from .clock import Clock, system_clock

logger = get_logger(__name__)


class IdleTracker:
    """
    Edge-triggered idle state.

    Repeated ``set_idle(True)`` calls keep the original idle start; a single
    ``set_idle(False)`` resets the idle duration seen by every idle trigger.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or system_clock
        self._idle_since: Optional[datetime] = None
        self._lock = threading.Lock()

    @property
    def idle_since(self) -> Optional[datetime]:
        return self._idle_since

    def set_idle(self, idle: bool) -> None:
        with self._lock:
            if idle and self._idle_since is None:
                self._idle_since = self.clock.now()
                logger.info("💤 System is now idle")
            elif not idle and self._idle_since is not None:
                self._idle_since = None
                logger.info("⚙️  System is now busy")

    def is_idle(self) -> bool:
        return self._idle_since is not None

    def idle_duration(self, now: Optional[datetime] = None) -> timedelta:
        """How long the system has been idle; zero when busy."""
        idle_since = self._idle_since
        if idle_since is None:
            return timedelta(0)
        now = now or self.clock.now()
        return max(now - idle_since, timedelta(0))

    def idle_minutes(self, now: Optional[datetime] = None) -> float:
        return self.idle_duration(now).total_seconds() / 60.0
