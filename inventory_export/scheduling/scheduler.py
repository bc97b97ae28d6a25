"""
Recurring export scheduler.

Schedules are persisted through a ScheduleStore and armed on a timer pool:
one timer per active once/daily/weekly/monthly schedule, plus a shared
minute ticker that evaluates cron schedules and drives the retry queue.
A schedule's state is only ever mutated under its own lock.
"""

import threading
import time
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from inventory_export.core.errors import ConfigurationError, ExhaustedRetryError
from inventory_export.core.models import (
    EXPORT_FORMATS,
    ExportConfig,
    ExportRequest,
    ExportResult,
    RetryItem,
    ScheduleConfig,
    ScheduledExport,
    ScheduleResult,
    ScheduleRunResult,
)
from inventory_export.export.exporter import Exporter
from inventory_export.observability.logger import get_logger, log_operation
from inventory_export.observability.metrics import (
    active_schedules,
    increment_counter,
    scheduled_runs_total,
    set_gauge,
)
from inventory_export.utils.clock import Clock, utcnow
from inventory_export.utils.ids import generate_id
from inventory_export.utils.validation import safe_filename_prefix

from .recurrence import compute_next_run, cron_matches, to_local
from .schedule_validation import validate_schedule_config
from .timers import MinuteTicker, TimerPool

logger = get_logger(__name__)

NOT_FOUND = "Schedule not found"
ALREADY_RUNNING = "Schedule is already executing"


class ExportScheduler:
    """
    Creates, arms and executes scheduled exports.

    Collaborators are injected: the schedule store, the data source, the
    exporter (with its retry queue), an optional validator and the notifier.
    """

    def __init__(
        self,
        store,
        data_source,
        exporter: Exporter,
        notifier=None,
        validator=None,
        retry_queue=None,
        clock: Clock = utcnow,
        timer_pool=None,
        ticker: MinuteTicker | None = None,
        default_timezone: str | None = None,
        output_dir: str | None = None,
    ):
        self.store = store
        self.data_source = data_source
        self.exporter = exporter
        self.notifier = notifier
        self.validator = validator
        self.retry_queue = retry_queue
        self._clock = clock
        self.timer_pool = timer_pool or TimerPool()
        self.ticker = ticker or MinuteTicker(clock=clock)
        self.ticker.subscribe("cron", self.tick)
        self.default_timezone = default_timezone
        self.output_dir = output_dir

        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._cron_fired: dict[str, datetime] = {}

        if self.retry_queue is not None and self.retry_queue.on_exhausted is None:
            self.retry_queue.on_exhausted = self.handle_retry_exhausted

    # ------------------------------------------------------------------
    # Schedule management
    # ------------------------------------------------------------------

    def create_schedule(self, config: ScheduleConfig | dict[str, Any]) -> ScheduleResult:
        """
        Validate and persist a new schedule, then arm it.

        Nothing is persisted when validation fails.
        """
        try:
            config = self._coerce_config(config)
        except ConfigurationError as e:
            return self._failure("", f"Schedule validation failed: {', '.join(e.errors)}", e.errors)

        now = self._clock()
        errors = validate_schedule_config(config, now, EXPORT_FORMATS)
        if errors:
            logger.warning("Rejected schedule", extra={"errors": errors, "schedule_name": config.name})
            return self._failure("", f"Schedule validation failed: {', '.join(errors)}", errors)

        schedule = ScheduledExport(
            id=generate_id("schedule"),
            **self._config_fields(config),
            created_at=now,
            updated_at=now,
        )
        self._apply_default_timezone(schedule)
        schedule.next_run = compute_next_run(schedule.recurrence, now)

        self.store.save(schedule)
        self._arm(schedule)
        self._publish_active_count()

        logger.info(
            "Schedule created",
            extra={
                "schedule_id": schedule.id,
                "schedule_name": schedule.name,
                "recurrence": schedule.recurrence.type,
                "next_run": schedule.next_run.isoformat() if schedule.next_run else None,
            },
        )
        return ScheduleResult(
            success=True,
            schedule_id=schedule.id,
            message="Export schedule created successfully",
            next_run=schedule.next_run,
            schedule=schedule,
        )

    def update_schedule(self, schedule_id: str, updates: ScheduleConfig | dict[str, Any]) -> ScheduleResult:
        """
        Apply changes to an existing schedule.

        The merged configuration is validated as a whole before anything is
        persisted; next_run is recomputed for active schedules.
        """
        with self._lock_for(schedule_id):
            schedule = self.store.load(schedule_id)
            if schedule is None:
                return self._failure(schedule_id, NOT_FOUND, [NOT_FOUND])

            if isinstance(updates, ScheduleConfig):
                changes = {name: getattr(updates, name) for name in updates.model_fields_set}
            else:
                changes = dict(updates)

            merged = {**self._config_fields(schedule), **changes}
            try:
                config = self._coerce_config(merged)
            except ConfigurationError as e:
                return self._failure(schedule_id, f"Schedule validation failed: {', '.join(e.errors)}", e.errors)

            now = self._clock()
            errors = validate_schedule_config(config, now, EXPORT_FORMATS)
            if errors:
                return self._failure(schedule_id, f"Schedule validation failed: {', '.join(errors)}", errors)

            for name, value in self._config_fields(config).items():
                setattr(schedule, name, value)
            self._apply_default_timezone(schedule)
            schedule.updated_at = now
            schedule.next_run = compute_next_run(schedule.recurrence, now) if schedule.is_active else None

            self.store.save(schedule)
            self._arm(schedule)

        logger.info("Schedule updated", extra={"schedule_id": schedule_id, "fields": sorted(changes)})
        return ScheduleResult(
            success=True,
            schedule_id=schedule_id,
            message="Export schedule updated successfully",
            next_run=schedule.next_run,
            schedule=schedule,
        )

    def delete_schedule(self, schedule_id: str) -> ScheduleResult:
        with self._lock_for(schedule_id):
            self.timer_pool.cancel(schedule_id)
            deleted = self.store.delete(schedule_id)
            self._cron_fired.pop(schedule_id, None)

        if not deleted:
            return self._failure(schedule_id, NOT_FOUND, [NOT_FOUND])

        with self._locks_guard:
            self._locks.pop(schedule_id, None)
        self._publish_active_count()
        logger.info("Schedule deleted", extra={"schedule_id": schedule_id})
        return ScheduleResult(success=True, schedule_id=schedule_id, message="Export schedule deleted successfully")

    def pause_schedule(self, schedule_id: str) -> ScheduleResult:
        """Cancel the schedule's timer and deactivate it, keeping its history."""
        with self._lock_for(schedule_id):
            schedule = self.store.load(schedule_id)
            if schedule is None:
                return self._failure(schedule_id, NOT_FOUND, [NOT_FOUND])

            self.timer_pool.cancel(schedule_id)
            schedule.is_active = False
            schedule.next_run = None
            schedule.updated_at = self._clock()
            self.store.save(schedule)

        self._publish_active_count()
        logger.info("Schedule paused", extra={"schedule_id": schedule_id})
        return ScheduleResult(
            success=True,
            schedule_id=schedule_id,
            message="Schedule paused successfully",
            schedule=schedule,
        )

    def resume_schedule(self, schedule_id: str) -> ScheduleResult:
        """Reactivate a schedule, recomputing next_run from now."""
        with self._lock_for(schedule_id):
            schedule = self.store.load(schedule_id)
            if schedule is None:
                return self._failure(schedule_id, NOT_FOUND, [NOT_FOUND])

            now = self._clock()
            schedule.is_active = True
            schedule.next_run = compute_next_run(schedule.recurrence, now)
            schedule.updated_at = now
            self.store.save(schedule)
            self._arm(schedule)

        self._publish_active_count()
        logger.info(
            "Schedule resumed",
            extra={"schedule_id": schedule_id, "next_run": schedule.next_run.isoformat() if schedule.next_run else None},
        )
        return ScheduleResult(
            success=True,
            schedule_id=schedule_id,
            message="Schedule resumed successfully",
            next_run=schedule.next_run,
            schedule=schedule,
        )

    def execute_now(self, schedule_id: str) -> ScheduleResult:
        """
        Run a schedule immediately, independent of its timer.

        next_run is left untouched.
        """
        if self.store.load(schedule_id) is None:
            return self._failure(schedule_id, NOT_FOUND, [NOT_FOUND])

        schedule = self._execute(schedule_id, trigger="manual")
        if schedule is None:
            return self._failure(schedule_id, ALREADY_RUNNING, [ALREADY_RUNNING])

        run = schedule.last_result
        return ScheduleResult(
            success=True,
            schedule_id=schedule_id,
            message="Schedule executed successfully" if run and run.success else (run.message if run else ""),
            next_run=schedule.next_run,
            schedule=schedule,
        )

    def get_schedule(self, schedule_id: str) -> ScheduledExport | None:
        return self.store.load(schedule_id)

    def get_all_schedules(self) -> list[ScheduledExport]:
        return self.store.load_all()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, run_ticker: bool = True) -> int:
        """
        Reload persisted schedules and re-arm the active ones.

        Runs missed while the process was down are skipped: next_run is
        recomputed from now when it lies in the past.

        Returns:
            Number of schedules armed
        """
        now = self._clock()
        armed = 0
        for schedule in self.store.load_all():
            if not schedule.is_active:
                continue
            with self._lock_for(schedule.id):
                if schedule.next_run is None or schedule.next_run <= now:
                    schedule.next_run = compute_next_run(schedule.recurrence, now)
                    self.store.save(schedule)
                self._arm(schedule)
            armed += 1

        if run_ticker:
            self.ticker.start()
        self._publish_active_count()
        logger.info("Scheduler started", extra={"armed_schedules": armed})
        return armed

    def shutdown(self) -> None:
        """Cancel every timer and stop the ticker. In-flight runs finish."""
        self.ticker.stop()
        self.timer_pool.cancel_all()
        logger.info("Scheduler stopped")

    def tick(self, now: datetime | None = None) -> list[str]:
        """
        Minute tick: fire matching cron schedules, then process due retries.

        Returns:
            Ids of the cron schedules fired
        """
        now = now or self._clock()
        minute = now.replace(second=0, microsecond=0)
        fired = []

        for schedule in self.store.load_all():
            recurrence = schedule.recurrence
            if not schedule.is_active or recurrence is None or recurrence.type != "cron":
                continue
            if self._cron_fired.get(schedule.id) == minute:
                continue
            try:
                if not cron_matches(recurrence.cron_expression or "", to_local(now, recurrence.timezone)):
                    continue
            except ValueError as e:
                logger.error(f"Invalid cron schedule: {e}", extra={"schedule_id": schedule.id})
                continue

            self._cron_fired[schedule.id] = minute
            if self._execute(schedule.id, trigger="cron", fired_for=now) is not None:
                fired.append(schedule.id)

        if self.retry_queue is not None:
            try:
                self.retry_queue.process_queue()
            except Exception:
                logger.exception("Retry queue processing failed")
        return fired

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _arm(self, schedule: ScheduledExport) -> None:
        """Arm (or disarm) the single timer driving a timer-based schedule."""
        self.timer_pool.cancel(schedule.id)
        recurrence = schedule.recurrence
        if (
            not schedule.is_active
            or schedule.next_run is None
            or recurrence is None
            or recurrence.type == "cron"
        ):
            return

        scheduled_for = schedule.next_run
        delay = (scheduled_for - self._clock()).total_seconds()
        self.timer_pool.schedule(
            schedule.id,
            delay,
            lambda: self._on_timer(schedule.id, scheduled_for),
        )

    def _on_timer(self, schedule_id: str, scheduled_for: datetime) -> None:
        schedule = self.store.load(schedule_id)
        if schedule is None or not schedule.is_active:
            return

        if self._clock() < scheduled_for:
            # Woke up early (clock adjustment); wait for the remainder
            self._arm(schedule)
            return

        executed = self._execute(schedule_id, trigger="timer", fired_for=scheduled_for)
        if executed is not None:
            self._arm(executed)

    def _execute(
        self,
        schedule_id: str,
        trigger: str,
        fired_for: datetime | None = None,
    ) -> ScheduledExport | None:
        """
        Execution path of a firing.

        Returns the updated schedule, or None if it no longer exists, is
        already executing, or was paused before a timer or cron firing ran.
        """
        lock = self._lock_for(schedule_id)
        if not lock.acquire(blocking=False):
            logger.warning("Skipping run, schedule already executing", extra={"schedule_id": schedule_id, "trigger": trigger})
            return None

        try:
            schedule = self.store.load(schedule_id)
            if schedule is None:
                return None
            if trigger != "manual" and not schedule.is_active:
                logger.info("Skipping run, schedule is paused", extra={"schedule_id": schedule_id, "trigger": trigger})
                return None

            now = self._clock()
            schedule.last_run = now
            schedule.run_count += 1
            if trigger != "manual":
                reference = max(now, fired_for) if fired_for else now
                schedule.next_run = compute_next_run(schedule.recurrence, reference)
                if schedule.next_run is None and schedule.recurrence.type == "once":
                    schedule.is_active = False

            start = time.monotonic()
            failure: Exception | None = None
            with log_operation(
                "Scheduled export",
                logger=logger,
                schedule_id=schedule.id,
                trigger=trigger,
                data_type=schedule.data_type,
            ):
                try:
                    result = self._run_export(schedule)
                    run_result = ScheduleRunResult(
                        success=result.success,
                        executed_at=now,
                        artifact_name=result.artifact_name,
                        size=result.size,
                        record_count=result.record_count,
                        execution_time=round(time.monotonic() - start, 3),
                        error=result.error,
                        message=result.message,
                    )
                except Exception as e:
                    failure = e
                    logger.error(
                        f"Scheduled export failed: {e}",
                        extra={"schedule_id": schedule.id, "error_type": type(e).__name__},
                        exc_info=True,
                    )
                    run_result = ScheduleRunResult(
                        success=False,
                        executed_at=now,
                        execution_time=round(time.monotonic() - start, 3),
                        error=str(e) or type(e).__name__,
                        message="Export execution failed",
                    )

            if run_result.success:
                schedule.success_count += 1
            else:
                schedule.failure_count += 1
            schedule.last_result = run_result

            try:
                self.store.save(schedule)
            except Exception:
                logger.exception("Failed to persist schedule after run", extra={"schedule_id": schedule.id})

            increment_counter(
                scheduled_runs_total,
                1,
                trigger=trigger,
                status="success" if run_result.success else "failure",
            )
            self._notify(schedule, run_result, failure)
            if not schedule.is_active:
                self._publish_active_count()
            return schedule
        finally:
            lock.release()

    def _run_export(self, schedule: ScheduledExport) -> ExportResult:
        export_config = schedule.export_config
        records = self.data_source.fetch(schedule.data_type, dict(export_config.filters))

        if export_config.validate_before_export and self.validator is not None:
            validation = self.validator.validate(
                records,
                schedule.data_type,
                ExportConfig(format=schedule.export_format, options=export_config.options),
            )
            if not validation.is_valid:
                shown = "; ".join(validation.errors[:5])
                more = len(validation.errors) - 5
                suffix = f" (and {more} more)" if more > 0 else ""
                return ExportResult(
                    success=False,
                    record_count=0,
                    error=f"Validation failed: {shown}{suffix}",
                    generated_at=self._clock(),
                )

        options = export_config.options
        updates: dict[str, Any] = {}
        if not options.filename and options.filename_prefix == "export":
            updates["filename_prefix"] = safe_filename_prefix(schedule.name)
        if not options.output_dir and self.output_dir:
            updates["output_dir"] = self.output_dir
        if updates:
            options = options.model_copy(update=updates)

        request = ExportRequest(
            records=records,
            columns=export_config.columns,
            format=schedule.export_format,
            options=options,
            schedule_id=schedule.id,
            schedule_name=schedule.name,
            notification_config=schedule.notification_config,
        )
        return self.exporter.export_request(request)

    def _notify(self, schedule: ScheduledExport, run_result: ScheduleRunResult, failure: Exception | None) -> None:
        config = schedule.notification_config
        if self.notifier is None or config is None or not config.enabled:
            return
        try:
            if failure is not None:
                self.notifier.notify_error(schedule, failure)
            else:
                self.notifier.notify_result(schedule, run_result)
        except Exception:
            logger.exception("Notifier failed", extra={"schedule_id": schedule.id})

    def handle_retry_exhausted(self, item: RetryItem, error: ExhaustedRetryError) -> None:
        """Surface a permanently failed retry through the notifier."""
        config = item.request.notification_config
        if self.notifier is None or config is None or not config.enabled:
            logger.warning(
                "Retry exhausted, notifications disabled",
                extra={"retry_id": item.id, "schedule_id": item.request.schedule_id},
            )
            return
        self.notifier.notify_exhausted(item, error)

    # ------------------------------------------------------------------
    # Statistics and notification log
    # ------------------------------------------------------------------

    def get_statistics(self) -> dict[str, Any]:
        schedules = self.store.load_all()
        total_runs = sum(s.run_count for s in schedules)
        successes = sum(s.success_count for s in schedules)
        failures = sum(s.failure_count for s in schedules)
        return {
            "total_schedules": len(schedules),
            "active_schedules": sum(1 for s in schedules if s.is_active),
            "total_runs": total_runs,
            "successful_runs": successes,
            "failed_runs": failures,
            "success_rate": round(successes / total_runs * 100, 2) if total_runs else 0.0,
        }

    def get_notifications(self, unread_only: bool = False):
        return self.notifier.get_notifications(unread_only) if self.notifier else []

    def mark_notification_read(self, notification_id: str) -> bool:
        return self.notifier.mark_notification_read(notification_id) if self.notifier else False

    def clear_notifications(self) -> int:
        return self.notifier.clear_notifications() if self.notifier else 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_for(self, schedule_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(schedule_id, threading.Lock())

    @staticmethod
    def _coerce_config(config: ScheduleConfig | dict[str, Any]) -> ScheduleConfig:
        if isinstance(config, ScheduleConfig):
            return config
        try:
            return ScheduleConfig.model_validate(config)
        except PydanticValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigurationError("Invalid schedule configuration", errors) from e

    @staticmethod
    def _config_fields(config: ScheduleConfig) -> dict[str, Any]:
        return {name: getattr(config, name) for name in ScheduleConfig.model_fields}

    def _apply_default_timezone(self, schedule: ScheduledExport) -> None:
        if self.default_timezone and schedule.recurrence and not schedule.recurrence.timezone:
            schedule.recurrence = schedule.recurrence.model_copy(update={"timezone": self.default_timezone})

    def _publish_active_count(self) -> None:
        try:
            set_gauge(active_schedules, sum(1 for s in self.store.load_all() if s.is_active))
        except Exception:
            logger.exception("Failed to publish active schedule count")

    @staticmethod
    def _failure(schedule_id: str, message: str, errors: list[str]) -> ScheduleResult:
        return ScheduleResult(success=False, schedule_id=schedule_id, message=message, errors=errors)
