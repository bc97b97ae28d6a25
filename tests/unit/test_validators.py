"""
Unit tests for validation rules.

Includes property-based testing with hypothesis for validators.
"""

import re
from datetime import date

import pytest
from hypothesis import given
from hypothesis import strategies as st

from inventory_export.core.validators import (
    CustomValidator,
    EnumValidator,
    FormatValidator,
    RangeValidator,
    RequiredFieldValidator,
    TypeValidator,
    ValidationError,
)
from inventory_export.utils.records import MISSING


class TestRequiredFieldValidator:
    """Tests for RequiredFieldValidator"""

    def test_valid_required_field(self):
        validator = RequiredFieldValidator("asset_id")
        validator.validate("HW000001", {"asset_id": "HW000001"})  # Should not raise

    def test_missing_field_raises_error(self):
        validator = RequiredFieldValidator("status")

        with pytest.raises(ValidationError) as exc_info:
            validator.validate(MISSING, {"asset_id": "HW000001"})

        assert exc_info.value.message == "is required"
        assert exc_info.value.field_name == "status"
        assert exc_info.value.rule_name == "required"

    def test_null_field_raises_error(self):
        validator = RequiredFieldValidator("status")

        with pytest.raises(ValidationError):
            validator.validate(None, {"status": None})

    def test_whitespace_string_raises_error(self):
        validator = RequiredFieldValidator("status")

        with pytest.raises(ValidationError):
            validator.validate("   ", {"status": "   "})

    def test_blank_string_allowed_when_configured(self):
        validator = RequiredFieldValidator("status", {"allow_blank": True})
        validator.validate("   ", {"status": "   "})  # Should not raise

    def test_falsy_values_are_present(self):
        validator = RequiredFieldValidator("count")
        validator.validate(0, {"count": 0})
        validator.validate(False, {"count": False})

    @given(st.text(min_size=1).filter(lambda s: s.strip() != ""))
    def test_property_any_nonblank_string_passes(self, value):
        """Property test: any non-blank string should pass"""
        validator = RequiredFieldValidator("field")
        validator.validate(value, {"field": value})


class TestTypeValidator:
    """Tests for TypeValidator"""

    @pytest.mark.parametrize("expected_type,value", [
        ("string", "laptop"),
        ("number", 12.5),
        ("number", 3),
        ("integer", 42),
        ("boolean", True),
        ("date", "2024-03-01"),
        ("date", "2024-03-01T10:00:00Z"),
        ("date", date(2024, 3, 1)),
        ("email", "ana@example.com"),
        ("url", "https://example.com/assets"),
    ])
    def test_valid_values(self, expected_type, value):
        validator = TypeValidator("field", {"expected_type": expected_type})
        validator.validate(value, {"field": value})

    @pytest.mark.parametrize("expected_type,value", [
        ("string", 5),
        ("number", "12.5"),
        ("number", True),
        ("number", float("nan")),
        ("integer", 4.2),
        ("integer", True),
        ("boolean", "true"),
        ("date", "not a date"),
        ("email", "not-an-email"),
        ("email", "ana@example"),
        ("url", "example.com"),
    ])
    def test_invalid_values(self, expected_type, value):
        validator = TypeValidator("field", {"expected_type": expected_type})

        with pytest.raises(ValidationError) as exc_info:
            validator.validate(value, {"field": value})

        assert exc_info.value.message == f"must be of type {expected_type}"

    def test_coerce_accepts_numeric_strings(self):
        validator = TypeValidator("price", {"expected_type": "number", "coerce": True})
        validator.validate("12.50", {"price": "12.50"})

    def test_coerce_accepts_textual_booleans(self):
        validator = TypeValidator("active", {"expected_type": "boolean", "coerce": True})
        validator.validate("no", {"active": "no"})

    def test_absent_values_pass(self):
        validator = TypeValidator("email", {"expected_type": "email"})
        validator.validate(MISSING, {})
        validator.validate(None, {"email": None})
        validator.validate("", {"email": ""})

    def test_unsupported_type_rejected(self):
        with pytest.raises(ValueError, match="Unsupported type"):
            TypeValidator("field", {"expected_type": "decimal"})

    def test_missing_expected_type_rejected(self):
        with pytest.raises(ValueError):
            TypeValidator("field", {})

    @given(st.integers())
    def test_property_integers_are_numbers(self, value):
        validator = TypeValidator("field", {"expected_type": "number"})
        validator.validate(value, {"field": value})


class TestFormatValidator:
    """Tests for FormatValidator"""

    def test_matching_value(self):
        validator = FormatValidator("asset_id", {"pattern": r"^HW\d{6}$"})
        validator.validate("HW000123", {"asset_id": "HW000123"})

    def test_non_matching_value(self):
        validator = FormatValidator("asset_id", {"pattern": r"^HW\d{6}$"})

        with pytest.raises(ValidationError) as exc_info:
            validator.validate("HW12", {"asset_id": "HW12"})

        assert exc_info.value.message == "format is invalid"

    def test_compiled_pattern_with_flags(self):
        validator = FormatValidator("asset_id", {"pattern": re.compile(r"^hw\d+$", re.IGNORECASE)})
        validator.validate("HW1", {"asset_id": "HW1"})

    def test_non_string_values_use_str(self):
        validator = FormatValidator("code", {"pattern": r"^\d{3}$"})
        validator.validate(123, {"code": 123})

    def test_invalid_pattern_rejected(self):
        with pytest.raises(ValueError, match="Invalid regex pattern"):
            FormatValidator("field", {"pattern": "[unclosed"})

    @given(st.from_regex(r"HW\d{6}", fullmatch=True))
    def test_property_generated_asset_ids_match(self, value):
        validator = FormatValidator("asset_id", {"pattern": r"^HW\d{6}$"})
        validator.validate(value, {"asset_id": value})


class TestRangeValidator:
    """Tests for RangeValidator"""

    def test_value_within_range(self):
        validator = RangeValidator("quantity", {"min": 0, "max": 100})
        validator.validate(50, {"quantity": 50})
        validator.validate(0, {"quantity": 0})
        validator.validate(100, {"quantity": 100})

    @pytest.mark.parametrize("value", [-1, 101, "abc"])
    def test_value_outside_range(self, value):
        validator = RangeValidator("quantity", {"min": 0, "max": 100})

        with pytest.raises(ValidationError) as exc_info:
            validator.validate(value, {"quantity": value})

        assert exc_info.value.message == "value is out of range"

    def test_numeric_strings_are_converted(self):
        validator = RangeValidator("quantity", {"min": 0})
        validator.validate("12", {"quantity": "12"})

    def test_requires_a_bound(self):
        with pytest.raises(ValueError):
            RangeValidator("quantity", {})

    @given(st.floats(min_value=0, max_value=1000, allow_nan=False))
    def test_property_values_in_bounds_pass(self, value):
        validator = RangeValidator("price", {"min": 0, "max": 1000})
        validator.validate(value, {"price": value})


class TestEnumValidator:
    """Tests for EnumValidator"""

    def test_allowed_value(self):
        validator = EnumValidator("category", {"allowed_values": ["laptop", "desktop"]})
        validator.validate("laptop", {"category": "laptop"})

    def test_disallowed_value(self):
        validator = EnumValidator("category", {"allowed_values": ["laptop", "desktop"]})

        with pytest.raises(ValidationError) as exc_info:
            validator.validate("toaster", {"category": "toaster"})

        assert exc_info.value.message == "contains invalid value"

    def test_match_is_case_sensitive(self):
        validator = EnumValidator("category", {"allowed_values": ["laptop"]})

        with pytest.raises(ValidationError):
            validator.validate("Laptop", {"category": "Laptop"})

    def test_empty_allowed_values_rejected(self):
        with pytest.raises(ValueError):
            EnumValidator("category", {"allowed_values": []})


class TestCustomValidator:
    """Tests for CustomValidator"""

    def test_predicate_returning_true_passes(self):
        validator = CustomValidator("serial", {"check": lambda value, record: value.isupper()})
        validator.validate("ABC", {"serial": "ABC"})

    def test_predicate_returning_none_passes(self):
        validator = CustomValidator("serial", {"check": lambda value, record: None})
        validator.validate("abc", {"serial": "abc"})

    def test_predicate_returning_false_fails(self):
        validator = CustomValidator("serial", {"check": lambda value, record: value.isupper()})

        with pytest.raises(ValidationError) as exc_info:
            validator.validate("abc", {"serial": "abc"})

        assert exc_info.value.rule_name == "custom"
        assert exc_info.value.message == "failed custom validation"

    def test_raised_reason_is_reported(self):
        def must_match_category(value, record):
            if not value.startswith(record["category"][:2].upper()):
                raise ValueError("serial does not match category")

        validator = CustomValidator(
            "serial",
            {"check": must_match_category, "error_message": "has invalid serial"},
        )

        with pytest.raises(ValidationError) as exc_info:
            validator.validate("SV-1", {"serial": "SV-1", "category": "laptop"})

        assert exc_info.value.message == "has invalid serial: serial does not match category"

    def test_blank_values_skipped(self):
        validator = CustomValidator("serial", {"check": lambda value, record: False})

        for value in (MISSING, None, ""):
            validator.validate(value, {})

    def test_import_path(self):
        passing = CustomValidator("serial", {"check": "operator:ne"})
        failing = CustomValidator("serial", {"check": "operator:eq"})

        passing.validate("abc", {"serial": "abc"})
        with pytest.raises(ValidationError):
            failing.validate("abc", {"serial": "abc"})

    @pytest.mark.parametrize("check", ["not callable", "operator:no_such_function", "no_such_module_xyz:check"])
    def test_unresolvable_check_rejected(self, check):
        with pytest.raises(ValueError):
            CustomValidator("serial", {"check": check})

    def test_requires_check(self):
        with pytest.raises(ValueError, match="requires 'check'"):
            CustomValidator("serial", {})
