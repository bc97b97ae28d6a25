"""
Unit tests for cell formatting, serializers and the exporter.
"""

import csv
import io
import json
from datetime import date, datetime, timezone

import pytest

from inventory_export.core.models import ColumnSpec, ExportOptions, ExportRequest
from inventory_export.export import CsvSerializer, Exporter, JsonSerializer, RetryQueue
from inventory_export.export.exporter import NO_DATA_ERROR
from inventory_export.export.formatting import (
    banner_rows,
    build_metadata,
    format_cell,
    generate_filename,
    header_row_count,
    infer_columns,
    project_rows,
)


class FailingSerializer:
    tabular = True

    def __init__(self, failures: int = 1):
        self.failures = failures
        self.calls = 0

    def serialize(self, rows, columns, options, metadata=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise IOError("disk quota exceeded")
        return b"ok"


@pytest.mark.unit
class TestFormatting:
    """Tests for default cell formatting and projection"""

    @pytest.mark.parametrize("value,column_type,expected", [
        (None, "string", ""),
        (1234567, "number", "1,234,567"),
        (1234.5, "currency", "1,234.50"),
        (True, "boolean", "Yes"),
        (False, "boolean", "No"),
        ("2024-03-01T10:15:00Z", "date", "2024-03-01"),
        (date(2024, 3, 1), "date", "2024-03-01"),
        (datetime(2024, 3, 1, 23, 59), "date", "2024-03-01"),
        ("n/a", "number", "n/a"),
        (42, "string", "42"),
    ])
    def test_default_formatting(self, value, column_type, expected):
        assert format_cell(value, ColumnSpec(key="f", type=column_type)) == expected

    def test_formatter_wins(self):
        column = ColumnSpec(key="status", formatter=lambda v: v.upper())
        assert format_cell("active", column) == "ACTIVE"

    def test_project_nested_and_missing(self, hardware_columns):
        rows = project_rows([{"asset_id": "HW000001", "owner": {"name": "Ana"}}], hardware_columns)
        assert rows == [["HW000001", "", "", "", "Ana"]]

    def test_label_defaults_to_key(self):
        assert ColumnSpec(key="asset_id").label == "asset_id"

    def test_infer_columns_first_seen_order(self):
        columns = infer_columns([{"b": 1, "a": True}, {"c": None, "a": False}])

        assert [c.key for c in columns] == ["b", "a", "c"]
        assert [c.type for c in columns] == ["string", "boolean", "string"]

    def test_metadata_banner(self):
        options = ExportOptions(include_metadata=True, title="Hardware")
        generated_at = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
        metadata = build_metadata(options, 3, generated_at)

        assert banner_rows(metadata) == [
            ["Hardware"],
            ["Generated At", "2024-03-01T09:00:00+00:00"],
            ["Record Count", "3"],
        ]
        assert header_row_count(options, metadata) == 4

    def test_no_metadata_by_default(self):
        assert build_metadata(ExportOptions(), 3, datetime.now(timezone.utc)) is None

    def test_generate_filename(self):
        assert generate_filename("hardware", "excel", datetime(2024, 3, 1)) == "hardware_2024-03-01.xlsx"
        assert generate_filename("export", "csv", datetime(2024, 3, 1)) == "export_2024-03-01.csv"


@pytest.mark.unit
class TestSerializers:
    """Tests for the built-in serializers"""

    def test_csv_layout(self, hardware_columns):
        options = ExportOptions(include_metadata=True, title="Assets")
        metadata = {"title": "Assets", "generated_at": "2024-03-01T09:00:00", "record_count": 1}

        content = CsvSerializer().serialize([["HW1", "laptop", "active", "1.00", "Ana"]], hardware_columns, options, metadata)
        rows = list(csv.reader(io.StringIO(content.decode("utf-8"))))

        assert rows[0] == ["Assets"]
        assert rows[3] == ["Asset ID", "Category", "Status", "Purchase Price", "Owner"]
        assert rows[4] == ["HW1", "laptop", "active", "1.00", "Ana"]

    def test_csv_custom_delimiter_quotes(self):
        columns = [ColumnSpec(key="name")]
        content = CsvSerializer().serialize([["a;b"]], columns, ExportOptions(delimiter=";"))

        assert content == b'name\n"a;b"\n'

    def test_json_wraps_records_with_metadata(self):
        columns = [ColumnSpec(key="asset_id")]
        metadata = {"title": None, "generated_at": "2024-03-01T09:00:00", "record_count": 1}

        document = json.loads(JsonSerializer().serialize([["HW1"]], columns, ExportOptions(), metadata))

        assert document["records"] == [{"asset_id": "HW1"}]
        assert document["record_count"] == 1

    def test_json_plain_array(self):
        columns = [ColumnSpec(key="asset_id")]
        assert json.loads(JsonSerializer().serialize([["HW1"]], columns, ExportOptions())) == [{"asset_id": "HW1"}]


@pytest.mark.unit
class TestExporter:
    """Tests for Exporter"""

    def test_empty_records_fail_without_artifact(self, clock):
        result = Exporter(clock=clock).export([], [], "csv")

        assert result.success is False
        assert result.error == NO_DATA_ERROR
        assert result.content is None
        assert result.artifact_name is None

    def test_unsupported_format(self, hardware_records):
        result = Exporter().export(hardware_records, [], "xml")

        assert result.success is False
        assert result.error == "Unsupported export format: xml"

    def test_csv_export(self, clock, hardware_records, hardware_columns):
        result = Exporter(clock=clock).export(hardware_records, hardware_columns, "csv")

        assert result.success is True
        assert result.artifact_name == "export_2024-01-15.csv"
        assert result.record_count == 3
        assert result.header_rows == 1
        assert result.size == len(result.content)
        assert len(result.checksum) == 64
        lines = result.content.decode("utf-8").splitlines()
        assert lines[1] == "HW000001,laptop,active,\"1,299.50\",Ana Lima"

    def test_json_export_has_no_header_rows(self, hardware_records, hardware_columns):
        result = Exporter().export(hardware_records, hardware_columns, "json")

        assert result.success is True
        assert result.header_rows == 0
        assert json.loads(result.content)[2]["owner.name"] == "Kai Chen"

    def test_writes_artifact_atomically(self, tmp_path, hardware_records):
        options = ExportOptions(output_dir=str(tmp_path / "exports"), filename="hardware.csv")

        result = Exporter().export(hardware_records, [], "csv", options)

        assert result.success is True
        assert result.artifact_path == str(tmp_path / "exports" / "hardware.csv")
        assert (tmp_path / "exports" / "hardware.csv").read_bytes() == result.content
        assert [p.name for p in (tmp_path / "exports").iterdir()] == ["hardware.csv"]

    def test_serializer_failure_is_reported_and_queued(self, clock, hardware_records):
        retry_queue = RetryQueue(clock=clock)
        exporter = Exporter(serializers={"csv": FailingSerializer()}, retry_queue=retry_queue, clock=clock)

        result = exporter.export(hardware_records, [], "csv")

        assert result.success is False
        assert "disk quota exceeded" in result.error
        assert len(retry_queue) == 1
        assert retry_queue.items()[0].request.records == hardware_records

    def test_non_bytes_serializer_output_fails(self, hardware_records):
        class TextSerializer:
            tabular = False

            def serialize(self, rows, columns, options, metadata=None):
                return "not bytes"

        result = Exporter(serializers={"json": TextSerializer()}).export(hardware_records, [], "json")

        assert result.success is False
        assert "expected bytes" in result.error

    def test_register_serializer(self, hardware_records):
        class PdfStub:
            tabular = False

            def serialize(self, rows, columns, options, metadata=None):
                return b"%PDF-1.7"

        exporter = Exporter()
        exporter.register_serializer("pdf", PdfStub())
        result = exporter.export(hardware_records, [], "pdf")

        assert "pdf" in exporter.supported_formats()
        assert result.success is True
        assert result.artifact_name.endswith(".pdf")

    def test_export_stats(self, hardware_records, hardware_columns):
        stats = Exporter().get_export_stats(hardware_records, hardware_columns)

        assert stats == {"record_count": 3, "column_count": 5, "estimated_size": 300}

    def test_bulk_export(self, hardware_records):
        requests = [
            ExportRequest(records=hardware_records, format="csv"),
            ExportRequest(records=hardware_records[:1], format="json"),
            ExportRequest(records=[], format="csv"),
        ]

        result = Exporter().bulk_export(requests)

        assert result.success is False
        assert result.succeeded == 2
        assert result.failed == 1
        assert result.record_count == 4
