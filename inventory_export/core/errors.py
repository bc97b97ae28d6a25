"""
Exception taxonomy for the export orchestration subsystem.

Data-quality problems are reported in result objects, not raised. These
exceptions cover configuration mistakes, transient export failures and
terminal retry exhaustion.
"""


class ExportOrchestrationError(Exception):
    """Base class for all export orchestration errors."""


class ConfigurationError(ExportOrchestrationError):
    """Raised for bad schedule or rule definitions. Never persisted."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or [message]
        super().__init__(message)


class TransientExportError(ExportOrchestrationError):
    """Serializer or IO failure that is worth retrying."""

    def __init__(self, message: str, export_format: str | None = None):
        self.export_format = export_format
        super().__init__(message)


class ExhaustedRetryError(ExportOrchestrationError):
    """A retry item ran out of attempts and is permanently failed."""

    def __init__(self, retry_id: str, retry_count: int, last_error: str):
        self.retry_id = retry_id
        self.retry_count = retry_count
        self.last_error = last_error
        super().__init__(
            f"Export retry {retry_id} failed permanently after {retry_count} retries: {last_error}"
        )


class IntegrityError(ExportOrchestrationError):
    """Produced artifact does not match the expected records."""


class NotificationDeliveryError(ExportOrchestrationError):
    """A single notification channel failed to deliver."""

    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(f"[{channel}] {message}")


class ScheduleNotFoundError(ExportOrchestrationError):
    """No schedule exists with the requested id."""

    def __init__(self, schedule_id: str):
        self.schedule_id = schedule_id
        super().__init__(f"Schedule not found: {schedule_id}")
