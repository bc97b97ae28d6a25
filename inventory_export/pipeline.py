"""
Validate-and-export pipeline.

Coordinates the flow: validate → export → verify
"""

from typing import Any

from pydantic import BaseModel

from inventory_export.core.models import (
    ColumnSpec,
    ExportConfig,
    ExportOptions,
    ExportResult,
    IntegrityVerificationResult,
    ValidationResult,
)
from inventory_export.export import Exporter
from inventory_export.observability.logger import get_logger, log_operation
from inventory_export.validation import ExportValidator, IntegrityChecker

logger = get_logger(__name__)


class PipelineResult(BaseModel):
    """
    Outcome of one validate-and-export run.

    export and integrity stay None when an earlier stage stopped the run.
    """

    success: bool
    validation: ValidationResult
    export: ExportResult | None = None
    integrity: IntegrityVerificationResult | None = None

    @property
    def errors(self) -> list[str]:
        errors = list(self.validation.errors)
        if self.export is not None and not self.export.success and self.export.error:
            errors.append(self.export.error)
        if self.integrity is not None:
            errors.extend(self.integrity.errors)
        return errors


class ExportPipeline:
    """
    Orchestrates a single export request.

    Flow:
    1. Validate records against the data type's rules and the format's limits
    2. Export the records (failures are queued for retry by the exporter)
    3. Verify the produced artifact against the source records
    """

    def __init__(
        self,
        validator: ExportValidator | None = None,
        exporter: Exporter | None = None,
        integrity_checker: IntegrityChecker | None = None,
    ):
        self.validator = validator or ExportValidator()
        self.exporter = exporter or Exporter()
        self.integrity_checker = integrity_checker or IntegrityChecker()

    def run(
        self,
        records: list[dict[str, Any]],
        data_type: str,
        export_format: str,
        columns: list[ColumnSpec] | None = None,
        options: ExportOptions | None = None,
        skip_validation: bool = False,
        verify: bool = True,
    ) -> PipelineResult:
        """
        Run the pipeline for one record set.

        Args:
            records: Records to export
            data_type: Data type the records belong to
            export_format: Target format
            columns: Column layout (inferred when omitted)
            options: Export options
            skip_validation: Export even if validation reports errors
            verify: Run the integrity checks on the artifact

        Returns:
            PipelineResult
        """
        columns = columns or []
        options = options or ExportOptions()

        with log_operation(
            "Validate and export",
            logger=logger,
            data_type=data_type,
            format=export_format,
            record_count=len(records),
        ):
            # Step 1: Validate
            validation = self.validator.validate(
                records,
                data_type,
                ExportConfig(format=export_format, columns=columns, options=options),
            )
            if not validation.is_valid and not skip_validation:
                logger.warning(
                    "Validation failed, export skipped",
                    extra={"data_type": data_type, "error_count": len(validation.errors)},
                )
                return PipelineResult(success=False, validation=validation)

            # Step 2: Export
            export_result = self.exporter.export(records, columns, export_format, options)
            if not export_result.success:
                return PipelineResult(success=False, validation=validation, export=export_result)

            if not verify:
                return PipelineResult(success=True, validation=validation, export=export_result)

            # Step 3: Verify
            integrity = self.integrity_checker.verify(
                export_result,
                records,
                export_format,
                columns=columns,
                options=options,
            )
            if not integrity.is_valid:
                logger.error(
                    "Export artifact failed integrity verification",
                    extra={"artifact_name": export_result.artifact_name, "errors": integrity.errors},
                )

            return PipelineResult(
                success=integrity.is_valid,
                validation=validation,
                export=export_result,
                integrity=integrity,
            )
