"""
Export request/response models and format constants.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .column_spec import ColumnSpec
from .notification import NotificationConfig

EXPORT_FORMATS = ("excel", "csv", "pdf", "json")

FILE_EXTENSIONS = {
    "excel": "xlsx",
    "csv": "csv",
    "pdf": "pdf",
    "json": "json",
}


class ExportOptions(BaseModel):
    """
    Per-request export options.

    Attributes:
        filename: Explicit artifact name (generated from the prefix otherwise)
        filename_prefix: Prefix for generated names ("<prefix>_<ISO-date>.<ext>")
        title: Title written in the metadata banner
        include_headers: Emit a header row with column labels
        include_metadata: Emit title/generation-timestamp/record-count banner rows
        delimiter: Field delimiter for delimited text
        encoding: Text encoding for text formats
        sheet_name: Worksheet name for spreadsheet output
        orientation: Page orientation for paginated output
        page_size: Page size for paginated output
        output_dir: Directory to write the artifact to (kept in memory if unset)
    """

    filename: str | None = None
    filename_prefix: str = "export"
    title: str | None = None
    include_headers: bool = True
    include_metadata: bool = False
    delimiter: str = Field(",", min_length=1, max_length=1)
    encoding: str = "utf-8"
    sheet_name: str = "Data"
    orientation: Literal["portrait", "landscape"] = "landscape"
    page_size: Literal["a4", "letter", "legal"] = "a4"
    output_dir: str | None = None


class ExportConfig(BaseModel):
    """
    Export configuration attached to a request or a schedule.

    Attributes:
        format: Target format (schedules keep it on the schedule itself)
        columns: Column layout (inferred from the records when empty)
        options: Serializer-facing options
        filters: Filters passed to the data source collaborator
        validate_before_export: Run the validator before serializing
    """

    format: str | None = None
    columns: list[ColumnSpec] = Field(default_factory=list)
    options: ExportOptions = Field(default_factory=ExportOptions)
    filters: dict[str, Any] = Field(default_factory=dict)
    validate_before_export: bool = False


class ExportRequest(BaseModel):
    """
    Everything needed to (re-)run one export attempt.

    Stored inside retry items, so it carries the originating schedule and
    its notification settings.
    """

    records: list[dict[str, Any]]
    columns: list[ColumnSpec] = Field(default_factory=list)
    format: str
    options: ExportOptions = Field(default_factory=ExportOptions)
    schedule_id: str | None = None
    schedule_name: str | None = None
    notification_config: NotificationConfig | None = None


class ExportResult(BaseModel):
    """
    Outcome of an export attempt.

    Either the artifact was fully produced (success=True) or nothing was
    emitted (success=False with an error message).
    """

    success: bool
    artifact_name: str | None = None
    artifact_path: str | None = None
    size: int | None = None
    record_count: int = 0
    checksum: str | None = None
    header_rows: int = 0
    error: str | None = None
    generated_at: datetime | None = None
    duration_seconds: float | None = None
    content: bytes | None = Field(default=None, exclude=True, repr=False)

    @property
    def message(self) -> str:
        if self.success:
            return f"Exported {self.record_count} records to {self.artifact_name}"
        return self.error or "Export failed"


class BulkExportResult(BaseModel):
    """Aggregate outcome of exporting several requests in one call."""

    success: bool
    record_count: int = 0
    succeeded: int = 0
    failed: int = 0
    results: list[ExportResult] = Field(default_factory=list)
