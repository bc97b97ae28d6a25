"""
EnumValidator - validates that a field holds one of an allowed set of values.
"""

from typing import Any

from inventory_export.utils.records import is_blank

from .base_validator import BaseValidator, ValidationError


class EnumValidator(BaseValidator):
    """
    Validates that a field value is one of ``allowed_values``.

    Parameters:
    - allowed_values: Non-empty list of permitted values (exact match)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        allowed = self.parameters.get("allowed_values")
        if not allowed or not isinstance(allowed, (list, tuple, set, frozenset)):
            raise ValueError("EnumValidator requires a non-empty 'allowed_values' list")
        self.allowed_values = list(allowed)

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if is_blank(value):
            return

        if value not in self.allowed_values:
            raise ValidationError(
                rule_name="enum",
                field_name=self.field_name,
                message="contains invalid value"
            )

    @property
    def rule_type(self) -> str:
        return "enum"
