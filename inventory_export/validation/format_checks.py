"""
Format-specific checks run after rule validation.

Each check only reports errors and warnings; record statistics are never
touched here.
"""

import json
from collections.abc import Callable
from typing import Any

from inventory_export.core.models import ExportConfig

EXCEL_MAX_ROWS = 1_048_576
EXCEL_MAX_CELL_CHARS = 32_767
PDF_LARGE_DATASET_ROWS = 10_000

FormatIssues = tuple[list[str], list[str]]


def _iter_string_values(record: dict[str, Any]):
    for value in record.values():
        if isinstance(value, str):
            yield value


def check_excel(records: list[dict[str, Any]], config: ExportConfig) -> FormatIssues:
    errors: list[str] = []
    warnings: list[str] = []

    if len(records) > EXCEL_MAX_ROWS:
        errors.append("Excel format supports maximum 1,048,576 rows")

    for idx, record in enumerate(records):
        for value in _iter_string_values(record):
            if len(value) > EXCEL_MAX_CELL_CHARS:
                warnings.append(
                    f"Row {idx + 1}: Cell value exceeds Excel's 32,767 character limit"
                )
    return errors, warnings


def check_csv(records: list[dict[str, Any]], config: ExportConfig) -> FormatIssues:
    delimiter = config.options.delimiter or ","
    warnings = [
        f"Row {idx + 1}: Value contains delimiter character '{delimiter}'"
        for idx, record in enumerate(records)
        for value in _iter_string_values(record)
        if delimiter in value
    ]
    return [], warnings


def check_pdf(records: list[dict[str, Any]], config: ExportConfig) -> FormatIssues:
    warnings = []
    if len(records) > PDF_LARGE_DATASET_ROWS:
        warnings.append("Large datasets may result in very large PDF files")
    return [], warnings


def check_json(records: list[dict[str, Any]], config: ExportConfig) -> FormatIssues:
    try:
        json.dumps(records, allow_nan=False)
    except (TypeError, ValueError):
        return ["Data contains values that cannot be serialized to JSON"], []
    return [], []


FORMAT_CHECKS: dict[str, Callable[[list[dict[str, Any]], ExportConfig], FormatIssues]] = {
    "excel": check_excel,
    "csv": check_csv,
    "pdf": check_pdf,
    "json": check_json,
}


def run_format_checks(
    records: list[dict[str, Any]],
    export_format: str | None,
    config: ExportConfig,
) -> FormatIssues:
    """
    Run the checks registered for ``export_format``.

    Unknown or missing formats have no checks.

    Returns:
        (errors, warnings)
    """
    check = FORMAT_CHECKS.get(export_format or "")
    if check is None:
        return [], []
    return check(records, config)
