"""
Rule engine for applying validation rules to export records.

The rule engine builds validators from rule definitions, applies every rule
to a record independently, and produces a per-record validation result.
"""

from typing import Any

from inventory_export.core.errors import ConfigurationError
from inventory_export.core.models import RecordValidationResult, ValidationRule
from inventory_export.core.validators import (
    BaseValidator,
    CustomValidator,
    EnumValidator,
    FormatValidator,
    RangeValidator,
    RequiredFieldValidator,
    TypeValidator,
    ValidationError,
)
from inventory_export.utils.records import MISSING, get_nested_value


class RuleEngine:
    """
    Applies a data type's rule set to records.

    A record is valid iff every enabled rule with severity "error" passes;
    failed "warning" rules are reported but never flip validity.
    """

    VALIDATOR_REGISTRY = {
        "required": RequiredFieldValidator,
        "type": TypeValidator,
        "format": FormatValidator,
        "range": RangeValidator,
        "enum": EnumValidator,
        "custom": CustomValidator,
    }

    def __init__(self, rules: list[ValidationRule | dict[str, Any]]):
        """
        Initialize the rule engine with validation rules.

        Args:
            rules: ValidationRule models or equivalent dicts

        Raises:
            ConfigurationError: If a rule definition is malformed
        """
        self.rules = [self._coerce_rule(rule) for rule in rules]
        self.validators: list[tuple[ValidationRule, BaseValidator]] = []
        self._build_validators()

    @staticmethod
    def _coerce_rule(rule: ValidationRule | dict[str, Any]) -> ValidationRule:
        if isinstance(rule, ValidationRule):
            return rule
        try:
            return ValidationRule.model_validate(rule)
        except ValueError as e:
            raise ConfigurationError(f"Invalid rule definition {rule!r}: {e}") from e

    def _build_validators(self) -> None:
        """Build validator instances from rule definitions."""
        for rule in self.rules:
            if not rule.enabled:
                continue

            validator_class = self.VALIDATOR_REGISTRY.get(rule.kind)
            if not validator_class:
                raise ConfigurationError(f"Unknown rule kind: {rule.kind}")

            try:
                validator = validator_class(rule.field, dict(rule.parameters))
            except (ValueError, TypeError) as e:
                raise ConfigurationError(
                    f"Failed to create validator for rule '{rule.name}': {e}"
                ) from e
            self.validators.append((rule, validator))

    def validate_record(self, record: dict[str, Any], index: int) -> RecordValidationResult:
        """
        Validate one record against all rules.

        Args:
            record: The record mapping
            index: Zero-based row index (messages use 1-based rows)

        Returns:
            RecordValidationResult with row-prefixed messages
        """
        errors: list[str] = []
        warnings: list[str] = []

        for rule, validator in self.validators:
            value = get_nested_value(record, rule.field, MISSING)

            try:
                validator.validate(value, record)
            except ValidationError as e:
                message = e.row_message(index + 1)
                if rule.severity == "error":
                    errors.append(message)
                else:
                    warnings.append(message)

        return RecordValidationResult(
            index=index,
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
        )

    def validate_batch(self, records: list[dict[str, Any]]) -> list[RecordValidationResult]:
        """Validate every record, preserving order."""
        return [self.validate_record(record, idx) for idx, record in enumerate(records)]

    def get_rule_summary(self) -> dict[str, Any]:
        """
        Get summary of loaded rules.

        Returns:
            Dictionary with rule counts by kind and severity
        """
        return {
            "total_rules": len(self.validators),
            "rules_by_kind": self._count_by("kind"),
            "rules_by_severity": self._count_by("severity"),
        }

    def _count_by(self, attribute: str) -> dict[str, int]:
        counts: dict[str, int] = {}
        for rule, _ in self.validators:
            key = getattr(rule, attribute)
            counts[key] = counts.get(key, 0) + 1
        return counts
