"""
RequiredFieldValidator - ensures a field is present and not null/empty.
"""

from typing import Any

from inventory_export.utils.records import MISSING

from .base_validator import BaseValidator, ValidationError


class RequiredFieldValidator(BaseValidator):
    """
    Validates that a required field is present and not null/empty.

    Fails if:
    - Field is missing from the record
    - Field value is None
    - Field value is an empty string (whitespace-only counts as empty
      unless ``allow_blank`` is set)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.allow_blank = self.parameters.get("allow_blank", False)

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if value is MISSING or value is None:
            raise ValidationError(
                rule_name="required",
                field_name=self.field_name,
                message="is required"
            )

        if isinstance(value, str):
            empty = value == "" if self.allow_blank else value.strip() == ""
            if empty:
                raise ValidationError(
                    rule_name="required",
                    field_name=self.field_name,
                    message="is required"
                )

    @property
    def rule_type(self) -> str:
        return "required"
