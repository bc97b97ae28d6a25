"""
Pre-export validation of record sets.

Applies the data type's rule set to every record, detects duplicates and
missing required fields, scores data quality and finally runs the checks
specific to the target format.
"""

import json
from typing import Any

from inventory_export.core.models import (
    ExportConfig,
    RecordStatistics,
    RecordValidationResult,
    ValidationResult,
)
from inventory_export.core.rules import RuleEngine, RuleRegistry, default_registry
from inventory_export.observability.logger import get_logger
from inventory_export.observability.metrics import record_validation
from inventory_export.utils.records import get_nested_value, is_blank, MISSING

from .format_checks import run_format_checks
from .quality import calculate_data_quality

logger = get_logger(__name__)


def _normalize_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {k: _normalize_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_normalize_value(v) for v in value]
    return value


def canonical_record_key(record: dict[str, Any]) -> str:
    """
    Canonical form of a record used for duplicate detection.

    Strings are trimmed, integral floats collapse to ints and null fields are
    dropped, so {"a": " x ", "b": 1.0, "c": None} equals {"a": "x", "b": 1}.
    """
    return json.dumps(_normalize_value(record), sort_keys=True, default=str)


class ExportValidator:
    """
    Validates record sets before they are exported.

    Stateless apart from the read-only rule registry, so a single instance
    may be shared across threads.
    """

    def __init__(self, registry: RuleRegistry | None = None):
        self.registry = registry or default_registry()

    def validate(
        self,
        records: list[dict[str, Any]],
        data_type: str,
        export_config: ExportConfig | dict[str, Any] | None = None,
    ) -> ValidationResult:
        """
        Validate a record set for export.

        Data problems are reported, never raised. A malformed rule definition
        yields an invalid result whose only error is the failure message.

        Args:
            records: Records to validate
            data_type: Name the rule set and required fields are looked up by
            export_config: Target export configuration (format, delimiter)

        Returns:
            ValidationResult
        """
        if not records:
            logger.warning("No data provided for export", extra={"data_type": data_type})
            result = ValidationResult(
                is_valid=False,
                errors=["No data provided for export"],
            )
            record_validation(data_type, result)
            return result

        try:
            config = self._coerce_config(export_config)
            result = self._validate(records, data_type, config)
        except Exception as e:
            logger.error(
                f"Validation aborted: {e}",
                extra={"data_type": data_type, "error_type": type(e).__name__},
                exc_info=True,
            )
            result = ValidationResult(
                is_valid=False,
                errors=[str(e) or "Unknown validation error"],
                statistics=RecordStatistics(
                    total_records=len(records),
                    invalid_records=len(records),
                ),
            )

        record_validation(data_type, result)
        logger.info(
            "Validated export data",
            extra={
                "data_type": data_type,
                "is_valid": result.is_valid,
                "total_records": result.statistics.total_records,
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
                "quality_overall": result.data_quality.overall,
            },
        )
        return result

    @staticmethod
    def _coerce_config(export_config: ExportConfig | dict[str, Any] | None) -> ExportConfig:
        if export_config is None:
            return ExportConfig()
        if isinstance(export_config, ExportConfig):
            return export_config
        return ExportConfig.model_validate(export_config)

    def _validate(self, records: list[dict[str, Any]], data_type: str, config: ExportConfig) -> ValidationResult:
        engine = RuleEngine(list(self.registry.rules_for(data_type)))
        record_results = engine.validate_batch(records)

        errors = [msg for r in record_results for msg in r.errors]
        warnings = [msg for r in record_results for msg in r.warnings]
        rows_with_warnings = {r.index for r in record_results if r.warnings}

        duplicate_count, duplicate_warnings = self.check_duplicates(records, rows_with_warnings)
        warnings.extend(duplicate_warnings)

        missing_count, missing_warnings = self.check_missing_fields(records, data_type, rows_with_warnings)
        warnings.extend(missing_warnings)

        valid_records = sum(1 for r in record_results if r.is_valid)
        quality = calculate_data_quality(
            total_records=len(records),
            valid_records=valid_records,
            consistent_records=len(records) - len(rows_with_warnings),
        )

        format_errors, format_warnings = run_format_checks(records, config.format, config)
        errors.extend(format_errors)
        warnings.extend(format_warnings)

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            statistics=RecordStatistics(
                total_records=len(records),
                valid_records=valid_records,
                invalid_records=len(records) - valid_records,
                duplicate_records=duplicate_count,
                missing_fields=missing_count,
            ),
            data_quality=quality,
        )

    def validate_record(self, record: dict[str, Any], data_type: str, index: int = 0) -> RecordValidationResult:
        """Validate a single record against the data type's rules."""
        return RuleEngine(list(self.registry.rules_for(data_type))).validate_record(record, index)

    @staticmethod
    def check_duplicates(
        records: list[dict[str, Any]],
        flagged_rows: set[int] | None = None,
    ) -> tuple[int, list[str]]:
        """
        Flag every record whose canonical form was already seen.

        Returns:
            (duplicate count, warnings referencing the earlier row)
        """
        seen: dict[str, int] = {}
        warnings: list[str] = []
        for idx, record in enumerate(records):
            key = canonical_record_key(record)
            if key in seen:
                warnings.append(
                    f"Row {idx + 1}: Duplicate record detected (similar to row {seen[key] + 1})"
                )
                if flagged_rows is not None:
                    flagged_rows.add(idx)
            else:
                seen[key] = idx
        return len(warnings), warnings

    def check_missing_fields(
        self,
        records: list[dict[str, Any]],
        data_type: str,
        flagged_rows: set[int] | None = None,
    ) -> tuple[int, list[str]]:
        """
        Check the data type's required-field list against every record.

        Returns:
            (number of missing fields across all records, warnings)
        """
        required_fields = self.registry.required_fields_for(data_type)
        warnings: list[str] = []
        for idx, record in enumerate(records):
            for field in required_fields:
                if is_blank(get_nested_value(record, field, MISSING)):
                    warnings.append(f"Row {idx + 1}: Missing required field '{field}'")
                    if flagged_rows is not None:
                        flagged_rows.add(idx)
        return len(warnings), warnings
