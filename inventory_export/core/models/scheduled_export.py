"""
Scheduled export models: recurrence descriptor, schedule configuration and
the persistent ScheduledExport entity.
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from .export import ExportConfig
from .notification import NotificationConfig

ScheduleType = Literal["once", "daily", "weekly", "monthly", "cron"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Recurrence(BaseModel):
    """
    Repetition policy of a schedule.

    Attributes:
        type: "once", "daily", "weekly", "monthly" or "cron"
        execute_at: Instant of a one-off run
        time: "HH:MM" (24h) for daily/weekly/monthly
        day_of_week: 0-6 with 0 = Sunday (weekly)
        day_of_month: 1-31 (monthly, clamped to the month's last day)
        cron_expression: Five fields, minute hour day-of-month month day-of-week
        timezone: IANA zone the wall-clock fields are interpreted in
    """

    type: ScheduleType
    execute_at: datetime | None = None
    time: str | None = None
    day_of_week: int | None = None
    day_of_month: int | None = None
    cron_expression: str | None = None
    timezone: str | None = None


class ScheduleConfig(BaseModel):
    """
    Input of create/update schedule requests.

    Fields are deliberately lax so that schedule validation can report an
    itemized error list instead of a single parsing failure.
    """

    name: str = ""
    description: str | None = None
    data_type: str | None = None
    export_format: str | None = None
    recurrence: Recurrence | None = None
    export_config: ExportConfig = Field(default_factory=ExportConfig)
    notification_config: NotificationConfig | None = None


class ScheduleRunResult(BaseModel):
    """Summary of the most recent execution of a schedule."""

    success: bool
    executed_at: datetime
    artifact_name: str | None = None
    size: int | None = None
    record_count: int | None = None
    execution_time: float | None = None
    error: str | None = None
    message: str | None = None


class ScheduledExport(ScheduleConfig):
    """
    Persistent scheduled export.

    Mutated on every firing (counters, timestamps, next_run) and removed on
    explicit delete.
    """

    id: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    last_run: datetime | None = None
    next_run: datetime | None = None
    run_count: int = Field(0, ge=0)
    success_count: int = Field(0, ge=0)
    failure_count: int = Field(0, ge=0)
    last_result: ScheduleRunResult | None = None


class ScheduleResult(BaseModel):
    """Outcome of a schedule management operation."""

    success: bool
    schedule_id: str = ""
    message: str = ""
    next_run: datetime | None = None
    errors: list[str] = Field(default_factory=list)
    schedule: ScheduledExport | None = None
