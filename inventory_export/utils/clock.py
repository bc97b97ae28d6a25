"""
Injectable wall clock.
"""

import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ManualClock:
    """
    Clock that only moves when told to.

    Drives schedulers and retry queues deterministically in tests and
    dry runs.
    """

    def __init__(self, initial_time: datetime | None = None):
        self._time = initial_time or utcnow()
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._time

    def set_time(self, new_time: datetime) -> None:
        with self._lock:
            self._time = new_time

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        """
        Move the clock forward.

        Args:
            seconds: Seconds to advance
            **kwargs: Passed to timedelta (minutes, hours, days)

        Returns:
            The new time
        """
        with self._lock:
            self._time = self._time + timedelta(seconds=seconds, **kwargs)
            return self._time
