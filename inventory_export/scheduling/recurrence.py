"""
Next-run computation for schedule recurrences.

``compute_next_run`` is a pure function of (recurrence, now): calling it
twice with the same ``now`` gives the same answer and a later ``now`` never
gives an earlier one.

Wall-clock fields (time, day of week/month, cron fields) are read in the
recurrence's IANA timezone when ``now`` is timezone-aware; a naive ``now``
is taken as already being local wall time.
"""

import calendar
import re
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict

from inventory_export.core.models import Recurrence

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Longest gap between two matches of a fixed-field expression (Feb 29 on a Sunday
# can take 28 years); searches stop after roughly five years.
MAX_CRON_SEARCH_DAYS = 366 * 5

CRON_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day_of_month", 1, 31),
    ("month", 1, 12),
    ("day_of_week", 0, 7),
)


class CronExpression(BaseModel):
    """
    Parsed five-field cron expression.

    Each field is None for ``*`` or an exact value. Day of week uses
    0 = Sunday (7 is accepted as Sunday too). All fields must match.
    """

    model_config = ConfigDict(frozen=True)

    minute: int | None = None
    hour: int | None = None
    day_of_month: int | None = None
    month: int | None = None
    day_of_week: int | None = None

    def matches_day(self, day: date) -> bool:
        return (
            (self.month is None or day.month == self.month)
            and (self.day_of_month is None or day.day == self.day_of_month)
            and (self.day_of_week is None or day.isoweekday() % 7 == self.day_of_week % 7)
        )

    def matches(self, moment: datetime) -> bool:
        return (
            self.matches_day(moment.date())
            and (self.hour is None or moment.hour == self.hour)
            and (self.minute is None or moment.minute == self.minute)
        )


def parse_time(value: str) -> tuple[int, int]:
    """
    Parse a 24h "HH:MM" string.

    Raises:
        ValueError: If the value is not a valid time of day
    """
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM (24h)")
    return int(match.group(1)), int(match.group(2))


def parse_cron(expression: str) -> CronExpression:
    """
    Parse "minute hour day-of-month month day-of-week".

    Raises:
        ValueError: If the expression does not have five valid fields
    """
    parts = (expression or "").split()
    if len(parts) != 5:
        raise ValueError(f"Cron expression must have 5 fields, got {len(parts)}")

    values = {}
    for part, (field_name, low, high) in zip(parts, CRON_FIELDS):
        if part == "*":
            values[field_name] = None
            continue
        if not part.isdigit():
            raise ValueError(f"Invalid cron {field_name} '{part}': expected '*' or a number")
        number = int(part)
        if not low <= number <= high:
            raise ValueError(f"Cron {field_name} {number} out of range {low}-{high}")
        values[field_name] = number
    return CronExpression(**values)


def cron_matches(expression: str | CronExpression, moment: datetime) -> bool:
    """True if the minute containing ``moment`` matches the expression."""
    cron = parse_cron(expression) if isinstance(expression, str) else expression
    return cron.matches(moment)


def resolve_timezone(name: str | None) -> tzinfo | None:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone '{name}'") from e


def to_local(now: datetime, tz_name: str | None) -> datetime:
    """Express ``now`` in the recurrence timezone (naive values pass through)."""
    tz = resolve_timezone(tz_name)
    if tz is None or now.tzinfo is None:
        return now
    return now.astimezone(tz)


def _at(day: date, hour: int, minute: int, tz: tzinfo | None) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=tz)


def _clamped_day(year: int, month: int, day_of_month: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day_of_month, last_day))


def align_to(moment: datetime, now: datetime, tz: tzinfo | None) -> datetime:
    """Make ``moment`` comparable with ``now`` (naive vs aware)."""
    if (moment.tzinfo is None) == (now.tzinfo is None):
        return moment
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz or now.tzinfo)
    return moment.astimezone(tz).replace(tzinfo=None) if tz else moment.replace(tzinfo=None)


def compute_next_run(recurrence: Recurrence, now: datetime) -> datetime | None:
    """
    Next firing instant strictly after ``now``, or None when there is none.

    Args:
        recurrence: The schedule's recurrence descriptor
        now: Reference instant

    Returns:
        The next run (in the same naive/aware form as ``now``) or None

    Raises:
        ValueError: If the recurrence is missing a field its type needs
    """
    local_now = to_local(now, recurrence.timezone)
    tz = local_now.tzinfo

    if recurrence.type == "once":
        if recurrence.execute_at is None:
            return None
        execute_at = align_to(recurrence.execute_at, now, resolve_timezone(recurrence.timezone))
        return execute_at if execute_at > now else None

    if recurrence.type == "cron":
        candidate = _next_cron_run(parse_cron(recurrence.cron_expression or ""), local_now)
    else:
        hour, minute = parse_time(recurrence.time or "")
        if recurrence.type == "daily":
            candidate = _next_daily_run(local_now, hour, minute, tz)
        elif recurrence.type == "weekly":
            if recurrence.day_of_week is None:
                raise ValueError("Weekly recurrence requires day_of_week")
            candidate = _next_weekly_run(local_now, recurrence.day_of_week, hour, minute, tz)
        elif recurrence.type == "monthly":
            if recurrence.day_of_month is None:
                raise ValueError("Monthly recurrence requires day_of_month")
            candidate = _next_monthly_run(local_now, recurrence.day_of_month, hour, minute, tz)
        else:
            raise ValueError(f"Unsupported recurrence type: {recurrence.type}")

    if candidate is None:
        return None
    if now.tzinfo is not None:
        candidate = candidate.astimezone(now.tzinfo)
    return candidate


def _next_daily_run(now: datetime, hour: int, minute: int, tz) -> datetime:
    candidate = _at(now.date(), hour, minute, tz)
    if candidate <= now:
        candidate = _at(now.date() + timedelta(days=1), hour, minute, tz)
    return candidate


def _next_weekly_run(now: datetime, day_of_week: int, hour: int, minute: int, tz) -> datetime:
    days_ahead = (day_of_week - now.isoweekday() % 7) % 7
    candidate = _at(now.date() + timedelta(days=days_ahead), hour, minute, tz)
    if candidate <= now:
        candidate = _at(now.date() + timedelta(days=days_ahead + 7), hour, minute, tz)
    return candidate


def _next_monthly_run(now: datetime, day_of_month: int, hour: int, minute: int, tz) -> datetime:
    candidate = _at(_clamped_day(now.year, now.month, day_of_month), hour, minute, tz)
    if candidate <= now:
        year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
        candidate = _at(_clamped_day(year, month, day_of_month), hour, minute, tz)
    return candidate


def _next_cron_run(cron: CronExpression, now: datetime) -> datetime | None:
    start = (now + timedelta(minutes=1)).replace(second=0, microsecond=0)
    hours = range(24) if cron.hour is None else [cron.hour]
    minutes = range(60) if cron.minute is None else [cron.minute]

    day = start.date()
    for _ in range(MAX_CRON_SEARCH_DAYS):
        if cron.matches_day(day):
            for hour in hours:
                for minute in minutes:
                    candidate = _at(day, hour, minute, now.tzinfo)
                    if candidate >= start:
                        return candidate
        day += timedelta(days=1)
    return None
