"""
Retry queue for failed export attempts.

Items are re-attempted with exponential backoff until they succeed or run
out of retries. Failed items are retained for inspection.
"""

import threading
from collections.abc import Callable
from typing import Any

from inventory_export.core.errors import ExhaustedRetryError, TransientExportError
from inventory_export.core.models import ExportRequest, ExportResult, RetryItem, RetryOptions
from inventory_export.observability.logger import get_logger
from inventory_export.observability.metrics import (
    increment_counter,
    record_retry_queue,
    retry_attempts_total,
)
from inventory_export.utils.clock import Clock, utcnow
from inventory_export.utils.ids import generate_id

logger = get_logger(__name__)

RETRY_STATES = ("pending", "processing", "completed", "failed")

AttemptFunc = Callable[[ExportRequest], ExportResult]
ExhaustedCallback = Callable[[RetryItem, ExhaustedRetryError], Any]
CompletedCallback = Callable[[RetryItem, ExportResult], Any]


class RetryQueue:
    """
    Owns every RetryItem and its state transitions.

    ``process_queue`` may be called concurrently from the ticker and from
    manual triggers: due items are claimed under a lock, so an item that is
    already processing is skipped by every other caller.
    """

    def __init__(
        self,
        attempt: AttemptFunc | None = None,
        options: RetryOptions | None = None,
        clock: Clock = utcnow,
        on_exhausted: ExhaustedCallback | None = None,
        on_completed: CompletedCallback | None = None,
    ):
        """
        Args:
            attempt: Callable running one export attempt (usually Exporter.attempt)
            options: Default backoff policy for new items
            clock: Source of the current time
            on_exhausted: Called once when an item is permanently failed
            on_completed: Called once when a re-attempt succeeds
        """
        self._attempt = attempt
        self.options = options or RetryOptions()
        self._clock = clock
        self.on_exhausted = on_exhausted
        self.on_completed = on_completed
        self._items: dict[str, RetryItem] = {}
        self._lock = threading.Lock()

    def bind(self, attempt: AttemptFunc) -> None:
        """Set the callable used to re-run exports."""
        self._attempt = attempt

    def enqueue(
        self,
        request: ExportRequest,
        error: str,
        options: RetryOptions | None = None,
    ) -> str:
        """
        Queue a failed export for re-attempt.

        Args:
            request: The export request that failed
            error: Error message of the failed attempt
            options: Backoff policy overriding the queue default

        Returns:
            Retry id
        """
        policy = options or self.options
        now = self._clock()
        item = RetryItem(
            id=generate_id("retry", length=9),
            request=request,
            error=error,
            created_at=now,
            max_retries=policy.max_retries,
            base_delay=policy.base_delay,
            backoff_multiplier=policy.backoff_multiplier,
        )
        item.schedule_next_attempt(now)

        with self._lock:
            self._items[item.id] = item
            self._publish_depth()

        logger.info(
            "Queued export for retry",
            extra={
                "retry_id": item.id,
                "format": request.format,
                "schedule_id": request.schedule_id,
                "next_attempt_at": item.next_attempt_at.isoformat(),
                "error": error,
            },
        )
        return item.id

    def process_queue(self) -> dict[str, int]:
        """
        Re-attempt every due pending item.

        Safe to call repeatedly or concurrently.

        Returns:
            Counts of the items handled by this call, by outcome
        """
        if self._attempt is None:
            raise RuntimeError("RetryQueue has no attempt callable bound")

        now = self._clock()
        with self._lock:
            claimed = [item for item in self._items.values() if item.is_due(now)]
            for item in claimed:
                item.status = "processing"

        summary = {"processed": len(claimed), "completed": 0, "rescheduled": 0, "failed": 0}
        for item in claimed:
            outcome = self._process_item(item)
            summary[outcome] += 1

        if claimed:
            logger.info("Processed retry queue", extra=summary)
        return summary

    def _process_item(self, item: RetryItem) -> str:
        if item.retry_count >= item.max_retries:
            self._mark_failed(item)
            return "failed"

        item.last_retry_at = self._clock()
        try:
            result = self._attempt(item.request)
            if not result.success:
                raise TransientExportError(result.error or "Export failed", item.request.format)
        except Exception as e:
            return self._record_failure(item, str(e))

        with self._lock:
            item.status = "completed"
            item.last_result = result
            self._publish_depth()

        increment_counter(retry_attempts_total, 1, status="completed")
        logger.info(
            "Retry succeeded",
            extra={"retry_id": item.id, "retry_count": item.retry_count, "artifact_name": result.artifact_name},
        )
        self._invoke(self.on_completed, item, result)
        return "completed"

    def _record_failure(self, item: RetryItem, error: str) -> str:
        with self._lock:
            item.retry_count += 1
            item.error = error
            if item.retry_count < item.max_retries:
                item.status = "pending"
                item.schedule_next_attempt(self._clock())
                self._publish_depth()
                outcome = "rescheduled"
            else:
                outcome = "failed"

        if outcome == "failed":
            self._mark_failed(item)
            return outcome

        increment_counter(retry_attempts_total, 1, status="pending")
        logger.warning(
            f"Retry attempt failed: {error}",
            extra={
                "retry_id": item.id,
                "retry_count": item.retry_count,
                "max_retries": item.max_retries,
                "next_attempt_at": item.next_attempt_at.isoformat(),
            },
        )
        return outcome

    def _mark_failed(self, item: RetryItem) -> None:
        with self._lock:
            item.status = "failed"
            self._publish_depth()

        increment_counter(retry_attempts_total, 1, status="failed")
        exhausted = ExhaustedRetryError(item.id, item.retry_count, item.error)
        logger.error(str(exhausted), extra={"retry_id": item.id, "schedule_id": item.request.schedule_id})
        self._invoke(self.on_exhausted, item, exhausted)

    def _invoke(self, callback, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Retry queue callback failed", extra={"retry_id": args[0].id})

    def _publish_depth(self) -> None:
        record_retry_queue(self._counts())

    def _counts(self) -> dict[str, int]:
        counts = dict.fromkeys(RETRY_STATES, 0)
        for item in self._items.values():
            counts[item.status] += 1
        return counts

    def status(self) -> dict[str, int]:
        """Counts by state plus the total."""
        with self._lock:
            counts = self._counts()
        counts["total"] = sum(counts.values())
        return counts

    def get_item(self, retry_id: str) -> RetryItem | None:
        """Snapshot of a retry item (mutating it does not affect the queue)."""
        with self._lock:
            item = self._items.get(retry_id)
            return item.model_copy(deep=True) if item else None

    def items(self, status: str | None = None) -> list[RetryItem]:
        with self._lock:
            return [
                item.model_copy(deep=True)
                for item in self._items.values()
                if status is None or item.status == status
            ]

    def clear(self, statuses: tuple[str, ...] = ("completed", "failed")) -> int:
        """
        Remove items in the given states.

        Processing items are never removed.

        Returns:
            Number of items removed
        """
        with self._lock:
            doomed = [
                retry_id
                for retry_id, item in self._items.items()
                if item.status in statuses and item.status != "processing"
            ]
            for retry_id in doomed:
                del self._items[retry_id]
            self._publish_depth()
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
