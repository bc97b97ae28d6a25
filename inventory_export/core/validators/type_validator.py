"""
TypeValidator - validates that a field holds a value of the expected semantic type.
"""

import math
import re
from datetime import date, datetime
from typing import Any
from urllib.parse import urlparse

from inventory_export.utils.records import is_blank

from .base_validator import BaseValidator, ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class TypeValidator(BaseValidator):
    """
    Validates that a field matches the expected type.

    Supported types: string, number, integer, boolean, date, email, url.
    Numbers given as strings are accepted only when ``coerce`` is set.
    """

    SUPPORTED_TYPES = ("string", "number", "integer", "boolean", "date", "email", "url")

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        expected_type = self.parameters.get("expected_type")
        if not expected_type:
            raise ValueError("TypeValidator requires 'expected_type' parameter")

        self.expected_type = str(expected_type).lower()
        if self.expected_type not in self.SUPPORTED_TYPES:
            raise ValueError(f"Unsupported type: {expected_type}")

        self.coerce = self.parameters.get("coerce", False)

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        # Optional-field policy: absent values are the required rule's concern
        if is_blank(value):
            return

        checker = getattr(self, f"_is_{self.expected_type}")
        if not checker(value):
            raise ValidationError(
                rule_name="type",
                field_name=self.field_name,
                message=f"must be of type {self.expected_type}"
            )

    def _is_string(self, value: Any) -> bool:
        return isinstance(value, str)

    def _is_number(self, value: Any) -> bool:
        if isinstance(value, bool):
            return False
        if isinstance(value, (int, float)):
            return not (isinstance(value, float) and math.isnan(value))
        if self.coerce and isinstance(value, str):
            try:
                return not math.isnan(float(value))
            except ValueError:
                return False
        return False

    def _is_integer(self, value: Any) -> bool:
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        if self.coerce and isinstance(value, str):
            try:
                int(value)
                return True
            except ValueError:
                return False
        return False

    def _is_boolean(self, value: Any) -> bool:
        if isinstance(value, bool):
            return True
        # Special handling for textual booleans (avoid "False" -> True)
        return self.coerce and isinstance(value, str) and value.lower() in (
            "true", "false", "1", "0", "yes", "no"
        )

    def _is_date(self, value: Any) -> bool:
        if isinstance(value, (date, datetime)):
            return True
        if not isinstance(value, str):
            return False
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
            return True
        except ValueError:
            return False

    def _is_email(self, value: Any) -> bool:
        return isinstance(value, str) and EMAIL_PATTERN.match(value) is not None

    def _is_url(self, value: Any) -> bool:
        if not isinstance(value, str):
            return False
        parsed = urlparse(value)
        return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)

    @property
    def rule_type(self) -> str:
        return "type"
