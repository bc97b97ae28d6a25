"""
Notification log and delivery channels.
"""

from .channels import EmailSender, PushSender, WebhookPoster
from .notifier import Notifier
from .store import NotificationStore

__all__ = [
    "Notifier",
    "NotificationStore",
    "EmailSender",
    "PushSender",
    "WebhookPoster",
]
