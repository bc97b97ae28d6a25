"""
RangeValidator - validates numeric values are within a specified range.
"""

import math
from typing import Any

from inventory_export.utils.records import is_blank

from .base_validator import BaseValidator, ValidationError


class RangeValidator(BaseValidator):
    """
    Validates that a numeric field is within a specified range.

    Parameters:
    - min: Minimum value (inclusive)
    - max: Maximum value (inclusive)

    Numeric strings are converted before comparison; anything that does not
    convert to a number fails.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        self.min_value = self.parameters.get("min")
        self.max_value = self.parameters.get("max")

        if self.min_value is None and self.max_value is None:
            raise ValueError("RangeValidator requires at least one of: min, max")

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if is_blank(value):
            return

        number = self._to_number(value)
        if number is None:
            raise ValidationError(
                rule_name="range",
                field_name=self.field_name,
                message="value is out of range"
            )

        if self.min_value is not None and number < self.min_value:
            raise ValidationError(
                rule_name="range",
                field_name=self.field_name,
                message="value is out of range"
            )

        if self.max_value is not None and number > self.max_value:
            raise ValidationError(
                rule_name="range",
                field_name=self.field_name,
                message="value is out of range"
            )

    @staticmethod
    def _to_number(value: Any) -> float | None:
        if isinstance(value, bool):
            return float(value)
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return None if math.isnan(number) else number

    @property
    def rule_type(self) -> str:
        return "range"
