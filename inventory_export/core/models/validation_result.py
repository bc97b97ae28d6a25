"""
Validation result models produced by the export validator (ephemeral).
"""

from pydantic import BaseModel, ConfigDict, Field


class RecordValidationResult(BaseModel):
    """
    Outcome of applying a rule set to a single record.

    Attributes:
        index: Zero-based position of the record in the record set
        is_valid: False when any error-severity rule failed
        errors: Row-prefixed error messages
        warnings: Row-prefixed warning messages
    """

    index: int = Field(..., ge=0)
    is_valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class RecordStatistics(BaseModel):
    """Record counts gathered during validation."""

    model_config = ConfigDict(frozen=True)

    total_records: int = Field(0, ge=0)
    valid_records: int = Field(0, ge=0)
    invalid_records: int = Field(0, ge=0)
    duplicate_records: int = Field(0, ge=0)
    missing_fields: int = Field(0, ge=0)


class DataQuality(BaseModel):
    """Quality percentages (0-100, two decimals)."""

    model_config = ConfigDict(frozen=True)

    completeness: float = Field(0.0, ge=0.0, le=100.0)
    consistency: float = Field(0.0, ge=0.0, le=100.0)
    accuracy: float = Field(0.0, ge=0.0, le=100.0)
    overall: float = Field(0.0, ge=0.0, le=100.0)


class ValidationResult(BaseModel):
    """
    Outcome of validating a record set before export.

    Created fresh per validation call and immutable once returned.

    Attributes:
        is_valid: True when no errors were reported
        errors: Ordered error messages
        warnings: Ordered warning messages
        statistics: Record counts
        data_quality: Quality scores
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "is_valid": False,
                "errors": ["Row 1: Field 'status' is required"],
                "warnings": ["Row 1: Missing required field 'status'"],
                "statistics": {
                    "total_records": 1,
                    "valid_records": 0,
                    "invalid_records": 1,
                    "duplicate_records": 0,
                    "missing_fields": 1,
                },
                "data_quality": {
                    "completeness": 0.0,
                    "consistency": 0.0,
                    "accuracy": 0.0,
                    "overall": 0.0,
                },
            }
        },
    )

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    statistics: RecordStatistics = Field(default_factory=RecordStatistics)
    data_quality: DataQuality = Field(default_factory=DataQuality)
