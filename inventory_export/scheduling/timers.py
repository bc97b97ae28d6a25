"""
Timer pool and shared minute ticker driving scheduled work.

One timer per armed schedule plus a single ticker for cron evaluation and
retry processing. Callback failures are logged, never propagated to the
timer thread.
"""

import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from inventory_export.observability.logger import get_logger
from inventory_export.utils.clock import Clock, utcnow

logger = get_logger(__name__)


def _run_safely(key: str, callback: Callable[[], Any]) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Timer callback failed", extra={"timer_key": key})


class TimerPool:
    """
    Keyed one-shot timers backed by threading.Timer.

    Scheduling a key that is already armed replaces the earlier timer.
    """

    def __init__(self):
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], Any]) -> None:
        def fire():
            with self._lock:
                if self._timers.get(key) is timer:
                    del self._timers[key]
            _run_safely(key, callback)

        timer = threading.Timer(max(delay_seconds, 0.0), fire)
        timer.daemon = True
        timer.name = f"timer-{key}"

        with self._lock:
            previous = self._timers.pop(key, None)
            self._timers[key] = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def cancel(self, key: str) -> bool:
        with self._lock:
            timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def is_armed(self, key: str) -> bool:
        with self._lock:
            return key in self._timers

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._timers)


class ManualTimerPool:
    """
    Timer pool that only fires when ``fire_due`` is called.

    Due times are taken from the injected clock, so tests advance a
    ManualClock and then fire whatever became due.
    """

    def __init__(self, clock: Clock = utcnow):
        self._clock = clock
        self._timers: dict[str, tuple[datetime, Callable[[], Any]]] = {}
        self._lock = threading.Lock()

    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], Any]) -> None:
        due = self._clock() + timedelta(seconds=max(delay_seconds, 0.0))
        with self._lock:
            self._timers[key] = (due, callback)

    def cancel(self, key: str) -> bool:
        with self._lock:
            return self._timers.pop(key, None) is not None

    def cancel_all(self) -> None:
        with self._lock:
            self._timers.clear()

    def is_armed(self, key: str) -> bool:
        with self._lock:
            return key in self._timers

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._timers)

    def due_at(self, key: str) -> datetime | None:
        with self._lock:
            entry = self._timers.get(key)
            return entry[0] if entry else None

    def fire_due(self) -> list[str]:
        """
        Run every callback whose due time has passed, earliest first.

        Returns:
            Keys of the fired timers
        """
        now = self._clock()
        with self._lock:
            due = sorted(
                ((when, key, callback) for key, (when, callback) in self._timers.items() if when <= now),
                key=lambda entry: entry[0],
            )
            for _, key, _ in due:
                del self._timers[key]

        for _, key, callback in due:
            _run_safely(key, callback)
        return [key for _, key, _ in due]


class MinuteTicker:
    """
    Single background thread calling subscribers at every minute boundary.
    """

    def __init__(self, interval_seconds: float = 60.0, clock: Clock = utcnow):
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._subscribers: list[tuple[str, Callable[[datetime], Any]]] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def subscribe(self, name: str, callback: Callable[[datetime], Any]) -> None:
        self._subscribers.append((name, callback))

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="minute-ticker", daemon=True)
        self._thread.start()
        logger.info("Minute ticker started", extra={"interval_seconds": self.interval_seconds})

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Minute ticker stopped")

    def tick(self, now: datetime | None = None) -> None:
        """Run every subscriber once."""
        now = now or self._clock()
        for name, callback in list(self._subscribers):
            _run_safely(name, lambda: callback(now))

    def _seconds_until_next_tick(self) -> float:
        now = self._clock()
        elapsed = now.second + now.microsecond / 1_000_000
        return max(self.interval_seconds - elapsed % self.interval_seconds, 0.0)

    def _run(self) -> None:
        while not self._stop.wait(self._seconds_until_next_tick()):
            self.tick()
