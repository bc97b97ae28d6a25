"""
Validation rule implementations.

Provides validators for required fields, type checking, format patterns,
numeric ranges, enumerations and custom validation logic.
"""

from .base_validator import BaseValidator, ValidationError
from .custom_validator import CustomValidator
from .enum_validator import EnumValidator
from .format_validator import FormatValidator
from .range_validator import RangeValidator
from .required_field_validator import RequiredFieldValidator
from .type_validator import TypeValidator

__all__ = [
    "BaseValidator",
    "ValidationError",
    "RequiredFieldValidator",
    "TypeValidator",
    "FormatValidator",
    "RangeValidator",
    "EnumValidator",
    "CustomValidator",
]
