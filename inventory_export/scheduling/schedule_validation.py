"""
Validation of schedule create/update requests.

Returns an itemized error list; an empty list means the configuration may
be persisted.
"""

from collections.abc import Iterable
from datetime import datetime

from inventory_export.core.models import ScheduleConfig

from .recurrence import align_to, parse_cron, parse_time, resolve_timezone

RECURRING_TYPES = ("daily", "weekly", "monthly")


def validate_schedule_config(
    config: ScheduleConfig,
    now: datetime,
    supported_formats: Iterable[str] | None = None,
) -> list[str]:
    """
    Check a schedule configuration.

    Args:
        config: The requested schedule configuration
        now: Reference instant for "in the future" checks
        supported_formats: Formats the exporter can produce (unchecked if None)

    Returns:
        Error messages, in a stable order
    """
    errors: list[str] = []

    if not config.name or not config.name.strip():
        errors.append("Schedule name is required")

    if not config.data_type:
        errors.append("Data type is required")

    if not config.export_format:
        errors.append("Export format is required")
    elif supported_formats is not None and config.export_format not in set(supported_formats):
        errors.append(f"Unsupported export format: {config.export_format}")

    recurrence = config.recurrence
    if recurrence is None:
        errors.append("Schedule configuration is required")
        return errors

    tz = None
    if recurrence.timezone:
        try:
            tz = resolve_timezone(recurrence.timezone)
        except ValueError as e:
            errors.append(str(e))

    if recurrence.type == "once":
        if recurrence.execute_at is None:
            errors.append("Execute date is required for one-time schedule")
        elif align_to(recurrence.execute_at, now, tz) <= now:
            errors.append("Execute date must be in the future")

    elif recurrence.type in RECURRING_TYPES:
        if not recurrence.time:
            errors.append("Time is required for recurring schedule")
        else:
            try:
                parse_time(recurrence.time)
            except ValueError:
                errors.append("Time must be in HH:MM format")

        if recurrence.type == "weekly":
            if recurrence.day_of_week is None:
                errors.append("Day of week is required for weekly schedule")
            elif not 0 <= recurrence.day_of_week <= 6:
                errors.append("Day of week must be between 0 (Sunday) and 6 (Saturday)")

        if recurrence.type == "monthly":
            if recurrence.day_of_month is None:
                errors.append("Day of month is required for monthly schedule")
            elif not 1 <= recurrence.day_of_month <= 31:
                errors.append("Day of month must be between 1 and 31")

    elif recurrence.type == "cron":
        if not recurrence.cron_expression:
            errors.append("Cron expression is required for cron schedule")
        else:
            try:
                parse_cron(recurrence.cron_expression)
            except ValueError as e:
                errors.append(f"Invalid cron expression: {e}")

    return errors
