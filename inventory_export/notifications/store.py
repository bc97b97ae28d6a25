"""
Append-only notification log owned by the notifier.
"""

import threading

from inventory_export.core.models import ExportNotification


class NotificationStore:
    """
    In-memory notification log.

    Unbounded: entries are never edited except for the read flag, and
    ``clear`` is the only way to drop them.
    """

    def __init__(self):
        self._entries: list[ExportNotification] = []
        self._lock = threading.Lock()

    def append(self, notification: ExportNotification) -> None:
        with self._lock:
            self._entries.append(notification)

    def list(self, unread_only: bool = False) -> list[ExportNotification]:
        """Newest first."""
        with self._lock:
            entries = list(reversed(self._entries))
        if unread_only:
            entries = [n for n in entries if not n.read]
        return entries

    def mark_read(self, notification_id: str) -> bool:
        with self._lock:
            for idx, entry in enumerate(self._entries):
                if entry.id == notification_id:
                    self._entries[idx] = entry.model_copy(update={"read": True})
                    return True
        return False

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._entries if not n.read)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
