"""
Format-agnostic export dispatch.

The exporter projects records onto columns, injects metadata, names the
artifact and hands the cell rows to the serializer registered for the
format. Writes are all-or-nothing: an artifact is either complete or not
emitted at all.
"""

import hashlib
import os
import tempfile
import time
from pathlib import Path
from typing import Any

from inventory_export.core.errors import TransientExportError
from inventory_export.core.models import (
    BulkExportResult,
    ColumnSpec,
    ExportOptions,
    ExportRequest,
    ExportResult,
)
from inventory_export.observability.logger import get_logger
from inventory_export.observability.metrics import record_export
from inventory_export.utils.clock import Clock, utcnow
from inventory_export.utils.ids import random_suffix

from .formatting import (
    build_metadata,
    estimate_size,
    header_row_count,
    infer_columns,
    project_rows,
    resolve_artifact_name,
)
from .serializers import Serializer, builtin_serializers

logger = get_logger(__name__)

NO_DATA_ERROR = "No data provided for export"


class Exporter:
    """
    Dispatches export requests to per-format serializers.

    Stateless per call; the serializer registry is populated at startup.
    When a retry queue is attached, failed ``export`` calls are enqueued for
    a later re-attempt.
    """

    def __init__(
        self,
        serializers: dict[str, Serializer] | None = None,
        retry_queue=None,
        clock: Clock = utcnow,
    ):
        self._serializers: dict[str, Serializer] = builtin_serializers()
        self._serializers.update(serializers or {})
        self.retry_queue = retry_queue
        self._clock = clock

    def register_serializer(self, export_format: str, serializer: Serializer) -> None:
        """Register (or replace) the serializer for a format."""
        self._serializers[export_format] = serializer
        logger.info("Registered serializer", extra={"format": export_format})

    def attach_retry_queue(self, retry_queue) -> None:
        self.retry_queue = retry_queue

    def supported_formats(self) -> list[str]:
        return sorted(self._serializers)

    def export(
        self,
        records: list[dict[str, Any]],
        columns: list[ColumnSpec] | None,
        export_format: str,
        options: ExportOptions | None = None,
    ) -> ExportResult:
        """
        Export records in the given format.

        Returns:
            ExportResult; failures are reported, never raised
        """
        request = ExportRequest(
            records=records or [],
            columns=columns or [],
            format=export_format,
            options=options or ExportOptions(),
        )
        return self.export_request(request)

    def export_request(self, request: ExportRequest, enqueue_on_failure: bool = True) -> ExportResult:
        """
        Run one export attempt, converting serializer/IO failures to a result.

        Transient failures are handed to the attached retry queue.
        """
        try:
            return self.attempt(request)
        except TransientExportError as e:
            result = ExportResult(success=False, error=str(e), generated_at=self._clock())
            if enqueue_on_failure and self.retry_queue is not None:
                retry_id = self.retry_queue.enqueue(request, str(e))
                logger.warning(
                    "Export failed, queued for retry",
                    extra={"format": request.format, "retry_id": retry_id, "schedule_id": request.schedule_id},
                )
            return result

    def attempt(self, request: ExportRequest) -> ExportResult:
        """
        Run one export attempt.

        Non-retryable problems (no data, unknown format) come back as a failed
        result; serializer and write failures raise.

        Raises:
            TransientExportError: If serialization or the artifact write fails
        """
        start = time.monotonic()
        try:
            result = self._attempt(request)
        except TransientExportError as e:
            duration = time.monotonic() - start
            record_export(request.format, False, 0, duration)
            logger.error(
                f"Export attempt failed: {e}",
                extra={"format": request.format, "schedule_id": request.schedule_id},
            )
            raise

        duration = time.monotonic() - start
        result.duration_seconds = round(duration, 3)
        record_export(request.format, result.success, result.record_count, duration)
        if result.success:
            logger.info(
                "Export completed",
                extra={
                    "format": request.format,
                    "artifact_name": result.artifact_name,
                    "record_count": result.record_count,
                    "size": result.size,
                    "schedule_id": request.schedule_id,
                },
            )
        else:
            logger.warning(
                f"Export rejected: {result.error}",
                extra={"format": request.format, "schedule_id": request.schedule_id},
            )
        return result

    def _attempt(self, request: ExportRequest) -> ExportResult:
        export_format = request.format
        generated_at = self._clock()

        if not request.records:
            return ExportResult(success=False, error=NO_DATA_ERROR, generated_at=generated_at)

        serializer = self._serializers.get(export_format)
        if serializer is None:
            return ExportResult(
                success=False,
                error=f"Unsupported export format: {export_format}",
                generated_at=generated_at,
            )

        options = request.options
        columns = request.columns or infer_columns(request.records)
        metadata = build_metadata(options, len(request.records), generated_at)

        try:
            rows = project_rows(request.records, columns)
            content = serializer.serialize(rows, columns, options, metadata)
        except Exception as e:
            raise TransientExportError(
                f"Failed to serialize {export_format} export: {e}", export_format=export_format
            ) from e

        if not isinstance(content, (bytes, bytearray)):
            raise TransientExportError(
                f"Serializer for {export_format} returned {type(content).__name__}, expected bytes",
                export_format=export_format,
            )
        content = bytes(content)

        artifact_name = resolve_artifact_name(options, export_format, generated_at)
        artifact_path = None
        if options.output_dir:
            try:
                artifact_path = str(self._write_atomic(Path(options.output_dir), artifact_name, content))
            except OSError as e:
                raise TransientExportError(
                    f"Failed to write {artifact_name}: {e}", export_format=export_format
                ) from e

        return ExportResult(
            success=True,
            artifact_name=artifact_name,
            artifact_path=artifact_path,
            size=len(content),
            record_count=len(request.records),
            checksum=hashlib.sha256(content).hexdigest(),
            header_rows=header_row_count(options, metadata) if serializer.tabular else 0,
            generated_at=generated_at,
            content=content,
        )

    @staticmethod
    def _write_atomic(output_dir: Path, artifact_name: str, content: bytes) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        target = output_dir / artifact_name

        fd, tmp_path = tempfile.mkstemp(dir=output_dir, prefix=f".{artifact_name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return target

    def get_export_stats(self, records: list[dict[str, Any]], columns: list[ColumnSpec] | None = None) -> dict[str, int]:
        """Record count, column count and a rough size estimate in bytes."""
        record_count = len(records or [])
        column_count = len(columns) if columns else len(infer_columns(records or []))
        return {
            "record_count": record_count,
            "column_count": column_count,
            "estimated_size": estimate_size(record_count, column_count),
        }

    def bulk_export(self, requests: list[ExportRequest]) -> BulkExportResult:
        """
        Export several requests one after another.

        Succeeds only when every request succeeded.
        """
        batch_id = random_suffix()
        results = [self.export_request(request) for request in requests]
        succeeded = sum(1 for r in results if r.success)

        logger.info(
            "Bulk export finished",
            extra={"batch_id": batch_id, "requests": len(requests), "succeeded": succeeded},
        )
        return BulkExportResult(
            success=succeeded == len(requests),
            record_count=sum(r.record_count for r in results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=results,
        )
