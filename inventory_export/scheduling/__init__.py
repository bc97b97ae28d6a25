"""
Recurring export scheduling: next-run computation, schedule validation,
timers and the scheduler itself.
"""

from .recurrence import compute_next_run, cron_matches, parse_cron
from .schedule_validation import validate_schedule_config
from .scheduler import ExportScheduler
from .timers import ManualTimerPool, MinuteTicker, TimerPool

__all__ = [
    "ExportScheduler",
    "compute_next_run",
    "cron_matches",
    "parse_cron",
    "validate_schedule_config",
    "TimerPool",
    "ManualTimerPool",
    "MinuteTicker",
]
