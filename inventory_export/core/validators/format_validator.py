"""
FormatValidator - validates field values against a regular expression pattern.
"""

import re
from re import Pattern
from typing import Any

from inventory_export.utils.records import is_blank

from .base_validator import BaseValidator, ValidationError


class FormatValidator(BaseValidator):
    """
    Validates that a field value matches a regular expression pattern.

    Parameters:
    - pattern: Regular expression pattern (string or compiled Pattern)
    - flags: Optional regex flags (e.g., re.IGNORECASE)

    Non-string values are matched against their ``str()`` form.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        pattern = self.parameters.get("pattern")
        if not pattern:
            raise ValueError("FormatValidator requires 'pattern' parameter")

        flags = self.parameters.get("flags", 0)

        try:
            if isinstance(pattern, str):
                self.pattern: Pattern = re.compile(pattern, flags)
            elif isinstance(pattern, Pattern):
                self.pattern = pattern
            else:
                raise ValueError(f"Pattern must be string or compiled Pattern, got {type(pattern)}")
        except re.error as e:
            raise ValueError(f"Invalid regex pattern: {e}")

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if is_blank(value):
            return

        value_str = value if isinstance(value, str) else str(value)

        if not self.pattern.search(value_str):
            raise ValidationError(
                rule_name="format",
                field_name=self.field_name,
                message="format is invalid"
            )

    @property
    def rule_type(self) -> str:
        return "format"
