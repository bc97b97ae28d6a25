"""
Static registry of validation rules and required-field lists per data type.

The registry is populated once at startup and is read-only afterwards.
Merging a YAML configuration produces a new registry.
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from inventory_export.core.models import ValidationRule

DEFAULT_REQUIRED_FIELDS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "hardware": ("asset_id", "category", "status"),
    "software": ("license_key", "name", "license_type"),
    "employees": ("employee_id", "name", "email"),
    "assignments": ("assignment_id", "employee_id", "asset_id"),
    "users": ("user_id", "username", "role"),
    "activities": ("activity_id", "timestamp", "action"),
    "reports": ("report_id", "type", "generated_at"),
    "statistics": ("metric_name", "value", "timestamp"),
})

HARDWARE_CATEGORIES = ["laptop", "desktop", "server", "mobile", "tablet", "peripheral"]
LICENSE_TYPES = ["perpetual", "subscription", "trial", "free"]


def _default_rules() -> dict[str, list[ValidationRule]]:
    return {
        "hardware": [
            ValidationRule(name="Asset ID Required", kind="required", field="asset_id"),
            ValidationRule(
                name="Asset ID Format",
                kind="format",
                field="asset_id",
                parameters={"pattern": r"^HW\d{6}$"},
            ),
            ValidationRule(name="Category Required", kind="required", field="category"),
            ValidationRule(
                name="Valid Category",
                kind="enum",
                field="category",
                parameters={"allowed_values": HARDWARE_CATEGORIES},
            ),
            ValidationRule(name="Status Required", kind="required", field="status"),
        ],
        "software": [
            ValidationRule(name="License Key Required", kind="required", field="license_key"),
            ValidationRule(name="Software Name Required", kind="required", field="name"),
            ValidationRule(
                name="License Type Valid",
                kind="enum",
                field="license_type",
                parameters={"allowed_values": LICENSE_TYPES},
                severity="warning",
            ),
        ],
        "employees": [
            ValidationRule(name="Employee ID Required", kind="required", field="employee_id"),
            ValidationRule(
                name="Email Format",
                kind="type",
                field="email",
                parameters={"expected_type": "email"},
            ),
            ValidationRule(name="Name Required", kind="required", field="name"),
        ],
    }


class RuleRegistry:
    """
    Read-only lookup of rules and required fields by data-type name.

    Unknown data types resolve to an empty rule set and no required fields.
    """

    def __init__(
        self,
        rules: Mapping[str, Iterable[ValidationRule]] | None = None,
        required_fields: Mapping[str, Iterable[str]] | None = None,
    ):
        self._rules = MappingProxyType({
            data_type: tuple(rule_list) for data_type, rule_list in (rules or {}).items()
        })
        self._required_fields = MappingProxyType({
            data_type: tuple(fields) for data_type, fields in (required_fields or {}).items()
        })

    def rules_for(self, data_type: str) -> tuple[ValidationRule, ...]:
        return self._rules.get(data_type, ())

    def required_fields_for(self, data_type: str) -> tuple[str, ...]:
        return self._required_fields.get(data_type, ())

    def data_types(self) -> list[str]:
        return sorted(set(self._rules) | set(self._required_fields))

    def merged_with(self, other: "RuleRegistry") -> "RuleRegistry":
        """Return a new registry where ``other``'s data types replace ours."""
        rules = dict(self._rules)
        rules.update(other._rules)
        required = dict(self._required_fields)
        required.update(other._required_fields)
        return RuleRegistry(rules, required)

    def __repr__(self) -> str:
        return f"RuleRegistry(data_types={self.data_types()})"


def default_registry() -> RuleRegistry:
    """Registry with the built-in inventory rule sets."""
    return RuleRegistry(_default_rules(), DEFAULT_REQUIRED_FIELDS)
