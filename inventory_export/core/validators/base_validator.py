"""
Base validator interface for all validation rules.

Validators receive the value resolved from a record by dotted path and raise
ValidationError when the rule fails; the rule engine turns the error into a
row-prefixed message.
"""

from abc import ABC, abstractmethod
from typing import Any, NoReturn


class ValidationError(Exception):
    """Raised when a validation rule fails."""

    def __init__(self, rule_name: str, field_name: str, message: str):
        self.rule_name = rule_name
        self.field_name = field_name
        self.message = message
        super().__init__(f"[{rule_name}] {field_name}: {message}")

    def row_message(self, row: int) -> str:
        """Report text for a 1-based row: ``Row 3: Field 'asset_id' is required``."""
        return f"Row {row}: Field '{self.field_name}' {self.message}"


class BaseValidator(ABC):
    """
    Abstract base class for all validators.

    Each validator implements a specific rule kind (required, type, format,
    range, enum, custom). Absent and null values pass every kind except
    ``required``.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        """
        Args:
            field_name: Dotted path of the field to validate
            parameters: Kind-specific parameters (e.g., min/max for range)
        """
        self.field_name = field_name
        self.parameters = parameters or {}

    @abstractmethod
    def validate(self, value: Any, record: dict[str, Any]) -> None:
        """
        Validate a value against this rule.

        Args:
            value: The resolved field value (MISSING when the path is absent)
            record: The entire record (for cross-field rules)

        Raises:
            ValidationError: If validation fails
        """

    @property
    @abstractmethod
    def rule_type(self) -> str:
        """Return the rule kind identifier."""

    def fail(self, message: str) -> NoReturn:
        raise ValidationError(rule_name=self.rule_type, field_name=self.field_name, message=message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name}, params={self.parameters})"
