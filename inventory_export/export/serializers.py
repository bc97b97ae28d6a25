"""
Byte-level serializer capability and the built-in text serializers.

The exporter hands serializers pre-formatted cell strings; spreadsheet and
paginated-document serializers are provided by the host application through
``Exporter.register_serializer``.
"""

import csv
import io
import json
from typing import Any, Protocol, runtime_checkable

from inventory_export.core.models import ColumnSpec, ExportOptions

from .formatting import banner_rows


@runtime_checkable
class Serializer(Protocol):
    """
    Capability turning projected rows into artifact bytes.

    ``tabular`` serializers lay out banner and header rows above the data,
    which the integrity checker skips when counting records.
    """

    tabular: bool

    def serialize(
        self,
        rows: list[list[str]],
        columns: list[ColumnSpec],
        options: ExportOptions,
        metadata: dict[str, Any] | None = None,
    ) -> bytes:
        ...


class CsvSerializer:
    """Delimited text via the csv module."""

    tabular = True

    def serialize(
        self,
        rows: list[list[str]],
        columns: list[ColumnSpec],
        options: ExportOptions,
        metadata: dict[str, Any] | None = None,
    ) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer, delimiter=options.delimiter, lineterminator="\n")

        writer.writerows(banner_rows(metadata))
        if options.include_headers:
            writer.writerow([column.label for column in columns])
        writer.writerows(rows)

        return buffer.getvalue().encode(options.encoding)


class JsonSerializer:
    """Array of objects keyed by column key, optionally wrapped with metadata."""

    tabular = False

    def serialize(
        self,
        rows: list[list[str]],
        columns: list[ColumnSpec],
        options: ExportOptions,
        metadata: dict[str, Any] | None = None,
    ) -> bytes:
        keys = [column.key for column in columns]
        records = [dict(zip(keys, row)) for row in rows]

        document: Any = records
        if metadata:
            document = {**metadata, "records": records}

        return json.dumps(document, ensure_ascii=False, indent=2).encode(options.encoding)


def builtin_serializers() -> dict[str, Serializer]:
    return {
        "csv": CsvSerializer(),
        "json": JsonSerializer(),
    }
