"""
Integrity check models for verifying produced export artifacts.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from inventory_export.core.errors import IntegrityError


class IntegrityCheck(BaseModel):
    """
    Declarative descriptor of one artifact check.

    Attributes:
        name: Display name ("Record Count")
        type: Which check to run
        expected_size: Expected artifact size in bytes (file_size)
        expected_checksum: Expected SHA-256 hex digest (checksum)
    """

    name: str
    type: Literal["file_exists", "file_size", "record_count", "data_integrity", "checksum"]
    expected_size: int | None = None
    expected_checksum: str | None = None


class IntegrityCheckResult(BaseModel):
    """Pass/fail outcome of a single integrity check."""

    name: str
    check_type: str
    passed: bool = False
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    warning: str | None = None


class IntegrityVerificationResult(BaseModel):
    """
    Aggregate outcome of every check run against an artifact.

    Attributes:
        is_valid: True when every check passed
        errors: Messages of failed checks
        warnings: Non-fatal observations
        checks: Individual check results, in execution order
    """

    is_valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    checks: list[IntegrityCheckResult] = Field(default_factory=list)

    def raise_for_status(self) -> None:
        """Raise IntegrityError when any check failed."""
        if not self.is_valid:
            raise IntegrityError("; ".join(self.errors) or "Integrity verification failed")
