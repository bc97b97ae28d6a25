"""
Notification channel collaborators.

Each sender is a one-shot "send or fail" operation raising
NotificationDeliveryError on failure.
"""

import smtplib
from email.message import EmailMessage
from typing import Any

import requests

from inventory_export.core.errors import NotificationDeliveryError
from inventory_export.core.models import (
    EmailChannelConfig,
    ExportNotification,
    PushChannelConfig,
    WebhookChannelConfig,
)
from inventory_export.observability.logger import get_logger

logger = get_logger(__name__)

SUCCESS_STATUS_CODES = range(200, 300)


def notification_payload(notification: ExportNotification) -> dict[str, Any]:
    """JSON-ready representation of a notification."""
    return notification.model_dump(mode="json")


class EmailSender:
    """Sends notifications over SMTP."""

    channel = "email"

    def __init__(
        self,
        host: str | None,
        port: int = 25,
        sender: str | None = None,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = False,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender or "inventory-export@localhost"
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, notification: ExportNotification, config: EmailChannelConfig) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = config.subject or notification.title
        message["From"] = self.sender
        message["To"] = ", ".join(config.recipients)

        body = notification.message
        if config.template:
            body = config.template.format(
                title=notification.title,
                message=notification.message,
                schedule_name=notification.schedule_name or "",
                timestamp=notification.timestamp.isoformat(),
                **{k: v for k, v in notification.data.items() if isinstance(k, str)},
            )
        message.set_content(body)
        return message

    def send(self, notification: ExportNotification, config: EmailChannelConfig) -> None:
        if not self.host:
            raise NotificationDeliveryError(self.channel, "SMTP host is not configured")
        if not config.recipients:
            raise NotificationDeliveryError(self.channel, "No email recipients configured")

        try:
            message = self.build_message(notification, config)
        except (KeyError, IndexError, ValueError) as e:
            raise NotificationDeliveryError(self.channel, f"Invalid email template: {e}") from e

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationDeliveryError(self.channel, f"SMTP delivery failed: {e}") from e


class PushSender:
    """
    Posts push notifications to a push gateway.

    Without a configured endpoint the notification is only logged.
    """

    channel = "push"

    def __init__(self, endpoint: str | None = None, timeout: float = 10.0, session: requests.Session | None = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, notification: ExportNotification, config: PushChannelConfig) -> None:
        title = config.title or notification.title
        body = config.message or notification.message

        if not self.endpoint:
            logger.info(
                f"Push notification: {title}",
                extra={"channel": self.channel, "notification_id": notification.id, "body": body},
            )
            return

        payload = {"title": title, "body": body, "data": notification_payload(notification)}
        try:
            response = self.session.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise NotificationDeliveryError(self.channel, f"Request failed: {e}") from e

        if response.status_code not in SUCCESS_STATUS_CODES:
            raise NotificationDeliveryError(self.channel, f"HTTP {response.status_code}: {response.text}")


class WebhookPoster:
    """Delivers the notification payload to a configured HTTP endpoint."""

    channel = "webhook"

    def __init__(self, timeout: float = 10.0, session: requests.Session | None = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, notification: ExportNotification, config: WebhookChannelConfig) -> None:
        if not config.url:
            raise NotificationDeliveryError(self.channel, "Webhook URL is not configured")

        payload = {**config.payload, "notification": notification_payload(notification)}
        headers = {"Content-Type": "application/json", **config.headers}

        try:
            response = self.session.request(
                config.method,
                config.url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise NotificationDeliveryError(self.channel, f"Request timeout after {self.timeout} seconds") from e
        except requests.exceptions.RequestException as e:
            raise NotificationDeliveryError(self.channel, f"Connection error: {e}") from e

        if response.status_code not in SUCCESS_STATUS_CODES:
            raise NotificationDeliveryError(self.channel, f"HTTP {response.status_code}: {response.text}")
