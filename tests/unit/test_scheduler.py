"""
Unit tests for ExportScheduler

Timers and the minute ticker are driven manually through the ManualClock,
ManualTimerPool and MinuteTicker fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from inventory_export.core.models import (
    ExportConfig,
    NotificationConfig,
    Recurrence,
    RetryOptions,
    ScheduleConfig,
)
from inventory_export.export import Exporter, RetryQueue
from inventory_export.scheduling import ExportScheduler, ManualTimerPool
from inventory_export.sources.data_source import CallableDataSource
from inventory_export.validation import ExportValidator

UTC = timezone.utc


class BrokenSerializer:
    tabular = True

    def serialize(self, rows, columns, options, metadata=None):
        raise IOError("disk full")


def daily_config(**overrides) -> ScheduleConfig:
    values = {
        "name": "Nightly hardware",
        "data_type": "hardware",
        "export_format": "csv",
        "recurrence": Recurrence(type="daily", time="09:00"),
        "notification_config": NotificationConfig(enabled=True),
    }
    values.update(overrides)
    return ScheduleConfig(**values)


@pytest.fixture
def retry_queue(clock) -> RetryQueue:
    return RetryQueue(options=RetryOptions(max_retries=1, base_delay=60), clock=clock)


@pytest.fixture
def exporter(clock, retry_queue) -> Exporter:
    exporter = Exporter(clock=clock)
    retry_queue.bind(exporter.attempt)
    exporter.attach_retry_queue(retry_queue)
    return exporter


@pytest.fixture
def scheduler(schedule_store, data_source, exporter, notifier, retry_queue, clock, timer_pool, ticker) -> ExportScheduler:
    return ExportScheduler(
        store=schedule_store,
        data_source=data_source,
        exporter=exporter,
        notifier=notifier,
        validator=ExportValidator(),
        retry_queue=retry_queue,
        clock=clock,
        timer_pool=timer_pool,
        ticker=ticker,
    )


@pytest.mark.unit
class TestScheduleManagement:
    """Tests for create/update/delete/pause/resume"""

    def test_create_arms_timer(self, scheduler, schedule_store, timer_pool):
        result = scheduler.create_schedule(daily_config())

        assert result.success is True
        assert result.message == "Export schedule created successfully"
        assert result.schedule_id.startswith("schedule_")
        assert result.next_run == datetime(2024, 1, 16, 9, 0, tzinfo=UTC)

        stored = schedule_store.load(result.schedule_id)
        assert stored.is_active is True
        assert stored.run_count == 0
        assert timer_pool.due_at(result.schedule_id) == result.next_run

    def test_create_from_dict(self, scheduler):
        result = scheduler.create_schedule({
            "name": "Weekly software",
            "data_type": "software",
            "export_format": "json",
            "recurrence": {"type": "weekly", "time": "08:00", "day_of_week": 5},
        })

        assert result.success is True
        assert result.next_run == datetime(2024, 1, 19, 8, 0, tzinfo=UTC)

    def test_invalid_create_persists_nothing(self, scheduler, schedule_store, timer_pool):
        result = scheduler.create_schedule(daily_config(recurrence=Recurrence(type="daily")))

        assert result.success is False
        assert result.message == "Schedule validation failed: Time is required for recurring schedule"
        assert result.errors == ["Time is required for recurring schedule"]
        assert schedule_store.load_all() == []
        assert timer_pool.keys() == []

    def test_unparseable_create_is_reported(self, scheduler, schedule_store):
        result = scheduler.create_schedule({"name": "x", "recurrence": {"type": "hourly"}})

        assert result.success is False
        assert result.message.startswith("Schedule validation failed: recurrence.type")
        assert schedule_store.load_all() == []

    def test_unsupported_format_rejected(self, scheduler):
        result = scheduler.create_schedule(daily_config(export_format="docx"))

        assert result.success is False
        assert "Unsupported export format: docx" in result.errors

    def test_default_timezone_applied(self, schedule_store, data_source, exporter, clock, timer_pool, ticker):
        scheduler = ExportScheduler(
            schedule_store, data_source, exporter,
            clock=clock, timer_pool=timer_pool, ticker=ticker, default_timezone="America/New_York",
        )

        result = scheduler.create_schedule(daily_config())

        assert result.schedule.recurrence.timezone == "America/New_York"
        assert result.next_run == datetime(2024, 1, 15, 14, 0, tzinfo=UTC)

    def test_update_recomputes_next_run(self, scheduler, timer_pool):
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id

        result = scheduler.update_schedule(schedule_id, {"recurrence": {"type": "daily", "time": "12:00"}})

        assert result.success is True
        assert result.message == "Export schedule updated successfully"
        assert result.next_run == datetime(2024, 1, 15, 12, 0, tzinfo=UTC)
        assert timer_pool.due_at(schedule_id) == result.next_run

    def test_partial_update_keeps_other_fields(self, scheduler):
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id

        result = scheduler.update_schedule(schedule_id, ScheduleConfig(name="Renamed"))

        schedule = scheduler.get_schedule(schedule_id)
        assert result.success is True
        assert schedule.name == "Renamed"
        assert schedule.recurrence.time == "09:00"
        assert schedule.export_format == "csv"

    def test_invalid_update_changes_nothing(self, scheduler):
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id

        result = scheduler.update_schedule(schedule_id, {"export_format": "docx"})

        assert result.success is False
        assert scheduler.get_schedule(schedule_id).export_format == "csv"

    def test_update_unknown_schedule(self, scheduler):
        result = scheduler.update_schedule("schedule_missing", {"name": "x"})
        assert result.success is False
        assert result.message == "Schedule not found"

    def test_delete(self, scheduler, timer_pool):
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id

        result = scheduler.delete_schedule(schedule_id)

        assert result.success is True
        assert result.message == "Export schedule deleted successfully"
        assert scheduler.get_schedule(schedule_id) is None
        assert not timer_pool.is_armed(schedule_id)
        assert scheduler.delete_schedule(schedule_id).message == "Schedule not found"

    def test_pause_prevents_firing(self, scheduler, clock, timer_pool):
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id

        result = scheduler.pause_schedule(schedule_id)
        clock.advance(days=2)

        assert result.message == "Schedule paused successfully"
        assert timer_pool.fire_due() == []
        schedule = scheduler.get_schedule(schedule_id)
        assert schedule.is_active is False
        assert schedule.next_run is None
        assert schedule.run_count == 0

    def test_resume_recomputes_from_now(self, scheduler, clock, timer_pool):
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id
        scheduler.pause_schedule(schedule_id)
        clock.advance(days=3)

        result = scheduler.resume_schedule(schedule_id)

        assert result.message == "Schedule resumed successfully"
        assert result.next_run == datetime(2024, 1, 19, 9, 0, tzinfo=UTC)
        assert result.next_run >= clock()
        assert timer_pool.is_armed(schedule_id)


@pytest.mark.unit
class TestScheduledExecution:
    """Tests for timer, cron and manual firings"""

    def test_timer_fires_and_rearms(self, scheduler, clock, timer_pool):
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id

        clock.set_time(datetime(2024, 1, 16, 9, 0, tzinfo=UTC))
        assert timer_pool.fire_due() == [schedule_id]

        schedule = scheduler.get_schedule(schedule_id)
        assert schedule.run_count == 1
        assert schedule.success_count == 1
        assert schedule.last_run == clock()
        assert schedule.last_result.success is True
        assert schedule.last_result.record_count == 3
        assert schedule.last_result.artifact_name == "Nightly_hardware_2024-01-16.csv"
        assert schedule.next_run == datetime(2024, 1, 17, 9, 0, tzinfo=UTC)
        assert timer_pool.due_at(schedule_id) == schedule.next_run

    def test_success_is_notified(self, scheduler, clock, timer_pool):
        scheduler.create_schedule(daily_config())
        clock.advance(days=1)
        timer_pool.fire_due()

        notifications = scheduler.get_notifications()
        assert [n.title for n in notifications] == ["Export Completed Successfully"]
        assert notifications[0].data["record_count"] == 3

        assert scheduler.mark_notification_read(notifications[0].id) is True
        assert scheduler.get_notifications(unread_only=True) == []
        assert scheduler.clear_notifications() == 1

    def test_disabled_notifications_are_not_recorded(self, scheduler, clock, timer_pool):
        scheduler.create_schedule(daily_config(notification_config=NotificationConfig(enabled=False)))
        clock.advance(days=1)
        timer_pool.fire_due()

        assert scheduler.get_notifications() == []

    def test_once_schedule_deactivates_after_firing(self, scheduler, clock, timer_pool):
        execute_at = clock() + timedelta(hours=1)
        schedule_id = scheduler.create_schedule(
            daily_config(recurrence=Recurrence(type="once", execute_at=execute_at))
        ).schedule_id

        clock.set_time(execute_at)
        timer_pool.fire_due()

        schedule = scheduler.get_schedule(schedule_id)
        assert schedule.run_count == 1
        assert schedule.is_active is False
        assert schedule.next_run is None
        assert not timer_pool.is_armed(schedule_id)

    def test_early_wakeup_rearms_without_running(self, scheduler, clock, timer_pool):
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id
        scheduled_for = scheduler.get_schedule(schedule_id).next_run

        scheduler._on_timer(schedule_id, scheduled_for)

        assert scheduler.get_schedule(schedule_id).run_count == 0
        assert timer_pool.due_at(schedule_id) == scheduled_for

    def test_execute_now_keeps_next_run(self, scheduler):
        created = scheduler.create_schedule(daily_config())

        result = scheduler.execute_now(created.schedule_id)

        assert result.success is True
        assert result.message == "Schedule executed successfully"
        assert result.next_run == created.next_run
        assert result.schedule.run_count == 1

    def test_execute_now_unknown_schedule(self, scheduler):
        result = scheduler.execute_now("schedule_missing")
        assert result.success is False
        assert result.message == "Schedule not found"

    def test_execute_now_while_running_is_rejected(self, scheduler):
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id
        lock = scheduler._lock_for(schedule_id)

        with lock:
            result = scheduler.execute_now(schedule_id)

        assert result.success is False
        assert result.message == "Schedule is already executing"

    def test_fetch_failure_is_recorded_and_notified(self, scheduler, notifier):
        schedule_id = scheduler.create_schedule(daily_config(data_type="ghosts")).schedule_id

        result = scheduler.execute_now(schedule_id)

        schedule = result.schedule
        assert schedule.failure_count == 1
        assert schedule.success_count == 0
        assert schedule.last_result.success is False
        assert schedule.last_result.message == "Export execution failed"
        assert schedule.last_result.error == "Unsupported data type: ghosts"
        assert result.message == "Export execution failed"
        assert [n.title for n in notifier.get_notifications()] == ["Scheduled Export Failed"]

    def test_validation_failure_is_not_retried(self, scheduler, data_source, retry_queue, notifier):
        data_source.set_records("hardware", [{"asset_id": "bad", "category": "laptop", "status": "active"}])
        config = daily_config(export_config=ExportConfig(validate_before_export=True))
        schedule_id = scheduler.create_schedule(config).schedule_id

        result = scheduler.execute_now(schedule_id)

        assert result.schedule.failure_count == 1
        assert result.schedule.last_result.error.startswith("Validation failed: ")
        assert len(retry_queue) == 0
        assert notifier.get_notifications()[0].title == "Export Failed"

    def test_filters_reach_data_source(self, scheduler):
        config = daily_config(export_config=ExportConfig(filters={"status": "active"}))
        schedule_id = scheduler.create_schedule(config).schedule_id

        result = scheduler.execute_now(schedule_id)

        assert result.schedule.last_result.record_count == 1

    def test_artifact_written_to_output_dir(self, schedule_store, data_source, exporter, clock, timer_pool, ticker, tmp_path):
        scheduler = ExportScheduler(
            schedule_store, data_source, exporter,
            clock=clock, timer_pool=timer_pool, ticker=ticker, output_dir=str(tmp_path),
        )
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id

        scheduler.execute_now(schedule_id)

        assert (tmp_path / "Nightly_hardware_2024-01-15.csv").is_file()

    def test_cron_tick_fires_once_per_minute(self, scheduler, clock, timer_pool):
        schedule_id = scheduler.create_schedule(
            daily_config(recurrence=Recurrence(type="cron", cron_expression="0 11 * * *"))
        ).schedule_id
        assert not timer_pool.is_armed(schedule_id)

        assert scheduler.tick(clock.advance(minutes=59)) == []

        clock.set_time(datetime(2024, 1, 15, 11, 0, 5, tzinfo=UTC))
        assert scheduler.tick(clock()) == [schedule_id]
        assert scheduler.tick(clock.advance(30)) == []

        schedule = scheduler.get_schedule(schedule_id)
        assert schedule.run_count == 1
        assert schedule.next_run == datetime(2024, 1, 16, 11, 0, tzinfo=UTC)

    def test_schedule_paused_during_tick_does_not_run(
        self, schedule_store, exporter, clock, timer_pool, ticker, hardware_records
    ):
        fetched = []

        def fetch(data_type, filters):
            fetched.append(data_type)
            for other in scheduler.get_all_schedules():
                if other.is_active and other.data_type != data_type:
                    scheduler.pause_schedule(other.id)
            return hardware_records

        scheduler = ExportScheduler(
            schedule_store, CallableDataSource(fetch), exporter,
            clock=clock, timer_pool=timer_pool, ticker=ticker,
        )
        every_minute = Recurrence(type="cron", cron_expression="* * * * *")
        for data_type in ("hardware", "software"):
            scheduler.create_schedule(daily_config(name=data_type, data_type=data_type, recurrence=every_minute))

        fired = scheduler.tick(clock())

        assert len(fired) == 1
        assert len(fetched) == 1
        paused = next(s for s in scheduler.get_all_schedules() if s.id not in fired)
        assert paused.is_active is False
        assert paused.run_count == 0
        assert paused.next_run is None
        assert scheduler.get_schedule(fired[0]).run_count == 1

    def test_ticker_drives_cron(self, scheduler, clock, ticker):
        schedule_id = scheduler.create_schedule(
            daily_config(recurrence=Recurrence(type="cron", cron_expression="* * * * *"))
        ).schedule_id

        ticker.tick()

        assert scheduler.get_schedule(schedule_id).run_count == 1


@pytest.mark.unit
class TestRetriesAndLifecycle:
    """Tests for retry integration, restart and statistics"""

    def test_retry_exhaustion_is_notified(self, scheduler, exporter, retry_queue, clock, notifier):
        exporter.register_serializer("csv", BrokenSerializer())
        schedule_id = scheduler.create_schedule(daily_config()).schedule_id

        result = scheduler.execute_now(schedule_id)
        assert result.schedule.failure_count == 1
        assert result.schedule.last_result.error.startswith("Failed to serialize csv export")
        assert retry_queue.status()["pending"] == 1

        clock.advance(60)
        scheduler.tick()

        assert retry_queue.status()["failed"] == 1
        titles = [n.title for n in notifier.get_notifications()]
        assert titles == ["Export Retry Exhausted", "Export Failed"]
        exhausted = notifier.get_notifications()[0]
        assert exhausted.schedule_id == schedule_id
        assert exhausted.data["retry_count"] == 1

    def test_retry_exhaustion_respects_disabled_notifications(self, scheduler, exporter, retry_queue, clock, notifier):
        exporter.register_serializer("csv", BrokenSerializer())
        config = daily_config(notification_config=NotificationConfig(enabled=False))
        scheduler.execute_now(scheduler.create_schedule(config).schedule_id)

        clock.advance(60)
        scheduler.tick()

        assert retry_queue.status()["failed"] == 1
        assert notifier.get_notifications() == []

    def test_start_recomputes_missed_runs(self, schedule_store, data_source, exporter, clock, ticker):
        first = ExportScheduler(schedule_store, data_source, exporter, clock=clock,
                                timer_pool=ManualTimerPool(clock), ticker=ticker)
        schedule_id = first.create_schedule(daily_config()).schedule_id
        paused_id = first.create_schedule(daily_config(name="Paused")).schedule_id
        first.pause_schedule(paused_id)

        clock.advance(days=3)
        timer_pool = ManualTimerPool(clock)
        restarted = ExportScheduler(schedule_store, data_source, exporter, clock=clock,
                                    timer_pool=timer_pool, ticker=ticker)

        assert restarted.start(run_ticker=False) == 1
        schedule = restarted.get_schedule(schedule_id)
        assert schedule.next_run == datetime(2024, 1, 19, 9, 0, tzinfo=UTC)
        assert schedule.run_count == 0
        assert timer_pool.keys() == [schedule_id]

        restarted.shutdown()
        assert timer_pool.keys() == []

    def test_statistics(self, scheduler):
        ok = scheduler.create_schedule(daily_config()).schedule_id
        broken = scheduler.create_schedule(daily_config(name="Ghosts", data_type="ghosts")).schedule_id
        scheduler.pause_schedule(broken)

        scheduler.execute_now(ok)
        scheduler.execute_now(ok)
        scheduler.execute_now(broken)

        assert scheduler.get_statistics() == {
            "total_schedules": 2,
            "active_schedules": 1,
            "total_runs": 3,
            "successful_runs": 2,
            "failed_runs": 1,
            "success_rate": 66.67,
        }

    def test_statistics_without_runs(self, scheduler):
        assert scheduler.get_statistics()["success_rate"] == 0.0
