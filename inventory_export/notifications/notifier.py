"""
Notification creation and multi-channel delivery.

Every enabled channel is attempted independently; a failing channel is
logged and counted but never blocks the others or reaches the caller.
"""

from typing import Any

from inventory_export.core.errors import ExhaustedRetryError, NotificationDeliveryError
from inventory_export.core.models import (
    ExportNotification,
    NotificationConfig,
    RetryItem,
    ScheduledExport,
    ScheduleRunResult,
)
from inventory_export.observability.logger import get_logger
from inventory_export.observability.metrics import increment_counter, notifications_total
from inventory_export.utils.ids import generate_id

from .channels import EmailSender, PushSender, WebhookPoster
from .store import NotificationStore

logger = get_logger(__name__)

SUCCESS_TITLE = "Export Completed Successfully"
FAILURE_TITLE = "Export Failed"
SCHEDULED_FAILURE_TITLE = "Scheduled Export Failed"
RETRY_EXHAUSTED_TITLE = "Export Retry Exhausted"


class Notifier:
    """
    Records notifications in its store and delivers them through the
    channels a schedule enables.
    """

    def __init__(
        self,
        store: NotificationStore | None = None,
        email_sender: EmailSender | None = None,
        push_sender: PushSender | None = None,
        webhook_poster: WebhookPoster | None = None,
    ):
        self.store = store or NotificationStore()
        self.email_sender = email_sender
        self.push_sender = push_sender or PushSender()
        self.webhook_poster = webhook_poster or WebhookPoster()

    def create_notification(
        self,
        notification_type: str,
        title: str,
        message: str,
        schedule_id: str | None = None,
        schedule_name: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> ExportNotification:
        """Build a notification and append it to the log."""
        notification = ExportNotification(
            id=generate_id("notification"),
            schedule_id=schedule_id,
            schedule_name=schedule_name,
            type=notification_type,
            title=title,
            message=message,
            data=data or {},
        )
        self.store.append(notification)
        return notification

    def deliver(self, notification: ExportNotification, config: NotificationConfig | None) -> dict[str, bool]:
        """
        Send a notification through every enabled channel.

        Returns:
            Channel name -> delivered, for each attempted channel
        """
        outcomes: dict[str, bool] = {}
        if config is None or not config.enabled:
            return outcomes

        channels = (
            ("email", config.email, self.email_sender),
            ("push", config.push, self.push_sender),
            ("webhook", config.webhook, self.webhook_poster),
        )
        for channel, channel_config, sender in channels:
            if channel_config is None or not channel_config.enabled:
                continue
            outcomes[channel] = self._send(channel, sender, notification, channel_config)
        return outcomes

    def _send(self, channel: str, sender, notification: ExportNotification, channel_config) -> bool:
        extra = {"channel": channel, "notification_id": notification.id, "schedule_id": notification.schedule_id}
        try:
            if sender is None:
                raise NotificationDeliveryError(channel, "Channel is not configured")
            sender.send(notification, channel_config)
        except NotificationDeliveryError as e:
            increment_counter(notifications_total, 1, channel=channel, status="failed")
            logger.error(f"Notification delivery failed: {e}", extra=extra)
            return False
        except Exception as e:
            increment_counter(notifications_total, 1, channel=channel, status="failed")
            logger.error(f"Notification delivery failed: {e}", extra=extra, exc_info=True)
            return False

        increment_counter(notifications_total, 1, channel=channel, status="sent")
        logger.info("Notification delivered", extra=extra)
        return True

    def notify_result(self, schedule: ScheduledExport, result: ScheduleRunResult) -> ExportNotification:
        """Record and deliver the outcome of a scheduled run."""
        notification = self.create_notification(
            "success" if result.success else "error",
            SUCCESS_TITLE if result.success else FAILURE_TITLE,
            result.message or result.error or "",
            schedule_id=schedule.id,
            schedule_name=schedule.name,
            data={
                "artifact_name": result.artifact_name,
                "size": result.size,
                "record_count": result.record_count,
                "execution_time": result.execution_time,
                "error": result.error,
            },
        )
        self.deliver(notification, schedule.notification_config)
        return notification

    def notify_error(self, schedule: ScheduledExport, error: BaseException | str) -> ExportNotification:
        """Record and deliver an unexpected failure of a scheduled run."""
        notification = self.create_notification(
            "error",
            SCHEDULED_FAILURE_TITLE,
            str(error) or "Unknown error occurred",
            schedule_id=schedule.id,
            schedule_name=schedule.name,
            data={"error": repr(error) if isinstance(error, BaseException) else str(error)},
        )
        self.deliver(notification, schedule.notification_config)
        return notification

    def notify_exhausted(self, item: RetryItem, error: ExhaustedRetryError) -> ExportNotification:
        """Record and deliver a permanently failed retry item."""
        request = item.request
        notification = self.create_notification(
            "error",
            RETRY_EXHAUSTED_TITLE,
            str(error),
            schedule_id=request.schedule_id,
            schedule_name=request.schedule_name,
            data={
                "retry_id": item.id,
                "retry_count": item.retry_count,
                "format": request.format,
                "last_error": item.error,
            },
        )
        self.deliver(notification, request.notification_config)
        return notification

    def get_notifications(self, unread_only: bool = False) -> list[ExportNotification]:
        return self.store.list(unread_only=unread_only)

    def mark_notification_read(self, notification_id: str) -> bool:
        return self.store.mark_read(notification_id)

    def clear_notifications(self) -> int:
        return self.store.clear()
