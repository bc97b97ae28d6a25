"""
Core data models for the inventory export orchestrator.

All models use Pydantic for runtime validation and type safety.
"""

from .column_spec import ColumnSpec
from .export import (
    EXPORT_FORMATS,
    BulkExportResult,
    FILE_EXTENSIONS,
    ExportConfig,
    ExportOptions,
    ExportRequest,
    ExportResult,
)
from .integrity import IntegrityCheck, IntegrityCheckResult, IntegrityVerificationResult
from .notification import (
    EmailChannelConfig,
    ExportNotification,
    NotificationConfig,
    PushChannelConfig,
    WebhookChannelConfig,
)
from .retry_item import RetryItem, RetryOptions
from .scheduled_export import (
    Recurrence,
    ScheduleConfig,
    ScheduledExport,
    ScheduleResult,
    ScheduleRunResult,
)
from .validation_result import (
    DataQuality,
    RecordStatistics,
    RecordValidationResult,
    ValidationResult,
)
from .validation_rule import ValidationRule

__all__ = [
    "EXPORT_FORMATS",
    "FILE_EXTENSIONS",
    "ColumnSpec",
    "ExportOptions",
    "ExportConfig",
    "ExportRequest",
    "ExportResult",
    "BulkExportResult",
    "ValidationRule",
    "ValidationResult",
    "RecordValidationResult",
    "RecordStatistics",
    "DataQuality",
    "IntegrityCheck",
    "IntegrityCheckResult",
    "IntegrityVerificationResult",
    "Recurrence",
    "ScheduleConfig",
    "ScheduledExport",
    "ScheduleResult",
    "ScheduleRunResult",
    "RetryItem",
    "RetryOptions",
    "NotificationConfig",
    "EmailChannelConfig",
    "PushChannelConfig",
    "WebhookChannelConfig",
    "ExportNotification",
]
