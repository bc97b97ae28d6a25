"""
Notification configuration and notification log entry models.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class EmailChannelConfig(BaseModel):
    enabled: bool = False
    recipients: list[str] = Field(default_factory=list)
    subject: str | None = None
    template: str | None = None


class PushChannelConfig(BaseModel):
    enabled: bool = False
    title: str | None = None
    message: str | None = None


class WebhookChannelConfig(BaseModel):
    enabled: bool = False
    url: str = ""
    method: Literal["POST", "PUT"] = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    payload: dict[str, Any] = Field(default_factory=dict)


class NotificationConfig(BaseModel):
    """
    Channels a schedule notifies on completion or failure.

    Attributes:
        enabled: Master switch; no channel is attempted when False
        email: Email channel settings
        push: Push channel settings
        webhook: Webhook channel settings
    """

    enabled: bool = False
    email: EmailChannelConfig | None = None
    push: PushChannelConfig | None = None
    webhook: WebhookChannelConfig | None = None


class ExportNotification(BaseModel):
    """
    Entry of the append-only notification log.

    The read flag is the only field that may change after creation; the
    notification store replaces the entry with an updated copy.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    schedule_id: str | None = None
    schedule_name: str | None = None
    type: Literal["success", "error", "warning", "info"]
    title: str
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False
    data: dict[str, Any] = Field(default_factory=dict)
