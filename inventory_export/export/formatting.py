"""
Column projection, default cell formatting, metadata banner and artifact
naming shared by the exporter and the integrity checker.
"""

from datetime import date, datetime, timezone
from typing import Any

from inventory_export.core.models import FILE_EXTENSIONS, ColumnSpec, ExportOptions
from inventory_export.utils.records import MISSING, get_nested_value

SAMPLE_CELL_SIZE = 20


def format_cell(value: Any, column: ColumnSpec) -> str:
    """
    Turn a raw field value into the cell text written to the artifact.

    A column formatter wins over the type-based default.
    """
    if column.formatter is not None:
        formatted = column.formatter(None if value is MISSING else value)
        return "" if formatted is None else str(formatted)

    if value is None or value is MISSING:
        return ""

    if column.type == "date":
        return _format_date(value)
    if column.type in ("number", "currency"):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return f"{value:,.2f}" if column.type == "currency" else f"{value:,}"
        return str(value)
    if column.type == "boolean":
        return "Yes" if value else "No"
    return str(value)


def _format_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
        except ValueError:
            return value
    return str(value)


def project_row(record: dict[str, Any], columns: list[ColumnSpec]) -> list[str]:
    """Project one record onto the column layout."""
    return [format_cell(get_nested_value(record, column.key, MISSING), column) for column in columns]


def project_rows(records: list[dict[str, Any]], columns: list[ColumnSpec]) -> list[list[str]]:
    return [project_row(record, columns) for record in records]


def infer_columns(records: list[dict[str, Any]]) -> list[ColumnSpec]:
    """
    Derive a column layout from record keys, in first-seen order.

    Only top-level keys are used; nested values are written as their string form.
    """
    keys: dict[str, None] = {}
    for record in records:
        for key in record:
            keys.setdefault(str(key), None)

    columns = []
    for key in keys:
        sample = next((r[key] for r in records if r.get(key) is not None), None)
        column_type = "boolean" if isinstance(sample, bool) else "string"
        columns.append(ColumnSpec(key=key, type=column_type))
    return columns


def build_metadata(options: ExportOptions, record_count: int, generated_at: datetime) -> dict[str, Any] | None:
    """Metadata injected into the artifact, or None when not requested."""
    if not options.include_metadata:
        return None
    return {
        "title": options.title,
        "generated_at": generated_at.isoformat(),
        "record_count": record_count,
    }


def banner_rows(metadata: dict[str, Any] | None) -> list[list[str]]:
    """Title, generation timestamp and record count rows for tabular formats."""
    if not metadata:
        return []
    rows = []
    if metadata.get("title"):
        rows.append([str(metadata["title"])])
    rows.append(["Generated At", str(metadata["generated_at"])])
    rows.append(["Record Count", str(metadata["record_count"])])
    return rows


def header_row_count(options: ExportOptions, metadata: dict[str, Any] | None) -> int:
    """Rows preceding the first data row in a tabular artifact."""
    return len(banner_rows(metadata)) + (1 if options.include_headers else 0)


def generate_filename(prefix: str, export_format: str, now: datetime | None = None) -> str:
    """
    Deterministic artifact name: ``<prefix>_<ISO-date>.<ext>``.

    >>> generate_filename("hardware", "excel", datetime(2024, 3, 1))
    'hardware_2024-03-01.xlsx'
    """
    now = now or datetime.now(timezone.utc)
    extension = FILE_EXTENSIONS.get(export_format, export_format)
    return f"{prefix}_{now.date().isoformat()}.{extension}"


def resolve_artifact_name(options: ExportOptions, export_format: str, now: datetime | None = None) -> str:
    if options.filename:
        return options.filename
    return generate_filename(options.filename_prefix, export_format, now)


def estimate_size(record_count: int, column_count: int) -> int:
    """Rough artifact size in bytes."""
    return record_count * column_count * SAMPLE_CELL_SIZE
