"""
Unit tests for the timer pools, the minute ticker and the manual clock.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from inventory_export.scheduling import ManualTimerPool, MinuteTicker, TimerPool
from inventory_export.utils.clock import ManualClock


@pytest.mark.unit
class TestManualClock:
    """Tests for ManualClock"""

    def test_advance_and_set(self, clock):
        start = clock()

        assert clock.advance(90) == start + timedelta(seconds=90)
        assert clock.advance(minutes=1) == start + timedelta(seconds=150)

        clock.set_time(datetime(2025, 1, 1, tzinfo=timezone.utc))
        assert clock() == datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.mark.unit
class TestManualTimerPool:
    """Tests for ManualTimerPool"""

    def test_fires_only_when_due(self, clock, timer_pool):
        fired = []
        timer_pool.schedule("a", 60, lambda: fired.append("a"))

        assert timer_pool.fire_due() == []
        assert timer_pool.due_at("a") == clock() + timedelta(seconds=60)

        clock.advance(60)
        assert timer_pool.fire_due() == ["a"]
        assert fired == ["a"]
        assert not timer_pool.is_armed("a")

    def test_fires_earliest_first(self, clock, timer_pool):
        fired = []
        timer_pool.schedule("late", 120, lambda: fired.append("late"))
        timer_pool.schedule("early", 30, lambda: fired.append("early"))

        clock.advance(hours=1)
        timer_pool.fire_due()

        assert fired == ["early", "late"]

    def test_reschedule_replaces_timer(self, clock, timer_pool):
        fired = []
        timer_pool.schedule("a", 10, lambda: fired.append(1))
        timer_pool.schedule("a", 100, lambda: fired.append(2))

        clock.advance(50)
        assert timer_pool.fire_due() == []
        clock.advance(50)
        timer_pool.fire_due()

        assert fired == [2]

    def test_cancel(self, clock, timer_pool):
        timer_pool.schedule("a", 10, lambda: None)
        timer_pool.schedule("b", 10, lambda: None)

        assert timer_pool.cancel("a") is True
        assert timer_pool.cancel("a") is False
        assert timer_pool.keys() == ["b"]

        timer_pool.cancel_all()
        assert timer_pool.keys() == []

    def test_callback_error_does_not_stop_other_timers(self, clock, timer_pool):
        fired = []

        def broken():
            raise RuntimeError("boom")

        timer_pool.schedule("broken", 0, broken)
        timer_pool.schedule("ok", 1, lambda: fired.append("ok"))
        clock.advance(1)

        assert timer_pool.fire_due() == ["broken", "ok"]
        assert fired == ["ok"]


@pytest.mark.unit
class TestTimerPool:
    """Tests for the threading-backed TimerPool"""

    def test_fires_after_delay(self):
        pool = TimerPool()
        done = threading.Event()

        pool.schedule("a", 0.01, done.set)

        assert done.wait(2.0)
        assert not pool.is_armed("a")

    def test_cancelled_timer_never_fires(self):
        pool = TimerPool()
        done = threading.Event()

        pool.schedule("a", 0.5, done.set)
        assert pool.is_armed("a")
        assert pool.cancel("a") is True

        assert not done.wait(0.8)

    def test_cancel_all(self):
        pool = TimerPool()
        pool.schedule("a", 30, lambda: None)
        pool.schedule("b", 30, lambda: None)

        assert pool.keys() == ["a", "b"]
        pool.cancel_all()
        assert pool.keys() == []


@pytest.mark.unit
class TestMinuteTicker:
    """Tests for MinuteTicker"""

    def test_tick_calls_every_subscriber_with_now(self, clock, ticker):
        seen = []
        ticker.subscribe("first", lambda now: seen.append(("first", now)))
        ticker.subscribe("second", lambda now: seen.append(("second", now)))

        ticker.tick()

        assert seen == [("first", clock()), ("second", clock())]

    def test_failing_subscriber_is_isolated(self, ticker):
        seen = []

        def broken(now):
            raise RuntimeError("boom")

        ticker.subscribe("broken", broken)
        ticker.subscribe("ok", seen.append)

        moment = datetime(2024, 1, 15, 10, 1, tzinfo=timezone.utc)
        ticker.tick(moment)

        assert seen == [moment]

    def test_seconds_until_next_tick(self):
        ticker = MinuteTicker(clock=ManualClock(datetime(2024, 1, 15, 10, 0, 45, tzinfo=timezone.utc)))
        assert ticker._seconds_until_next_tick() == pytest.approx(15.0)

    def test_start_and_stop(self):
        ticked = threading.Event()
        ticker = MinuteTicker(interval_seconds=0.05)
        ticker.subscribe("probe", lambda now: ticked.set())

        ticker.start()
        try:
            assert ticker.running
            assert ticked.wait(2.0)
        finally:
            ticker.stop()

        assert not ticker.running
