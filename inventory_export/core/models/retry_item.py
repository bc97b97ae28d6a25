"""
RetryItem model representing a queued, backoff-governed re-attempt of a failed export.
"""

from datetime import datetime, timedelta, timezone
from typing import Literal

from pydantic import BaseModel, Field

from .export import ExportRequest, ExportResult

RetryStatus = Literal["pending", "processing", "completed", "failed"]


class RetryOptions(BaseModel):
    """
    Backoff policy for a retry item.

    Attributes:
        max_retries: Maximum number of failed re-attempts before giving up
        base_delay: Delay in seconds before the first re-attempt
        backoff_multiplier: Factor applied to the delay per failed re-attempt
    """

    max_retries: int = Field(3, ge=0)
    base_delay: float = Field(60.0, ge=0.0)
    backoff_multiplier: float = Field(2.0, ge=1.0)


class RetryItem(BaseModel):
    """
    A failed export attempt owned by the retry queue.

    State machine: pending -> processing -> completed | pending | failed.
    retry_count never exceeds max_retries; a failed item is retained for
    inspection and never changes state again.

    Attributes:
        id: Unique retry id ("retry_<epoch-ms>_<random>")
        request: The export request to re-run
        error: Most recent error message
        created_at: When the original attempt failed
        retry_count: Failed re-attempts so far
        max_retries: Upper bound for retry_count
        base_delay: Base delay in seconds
        backoff_multiplier: Exponential backoff factor
        status: Current state
        last_retry_at: When the most recent re-attempt ran
        next_attempt_at: Earliest time the next re-attempt may run
        last_result: Result of the most recent re-attempt
    """

    id: str
    request: ExportRequest
    error: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    retry_count: int = Field(0, ge=0)
    max_retries: int = Field(3, ge=0)
    base_delay: float = 60.0
    backoff_multiplier: float = 2.0
    status: RetryStatus = "pending"
    last_retry_at: datetime | None = None
    next_attempt_at: datetime | None = None
    last_result: ExportResult | None = None

    def backoff_delay(self) -> float:
        """Delay in seconds before the next attempt: base * multiplier^retry_count."""
        return self.base_delay * (self.backoff_multiplier ** self.retry_count)

    def schedule_next_attempt(self, now: datetime) -> None:
        self.next_attempt_at = now + timedelta(seconds=self.backoff_delay())

    def is_due(self, now: datetime) -> bool:
        return self.status == "pending" and (
            self.next_attempt_at is None or self.next_attempt_at <= now
        )
