"""
Rule configuration management.

Loads validation rules from YAML files and provides a builder for
assembling rule sets programmatically.
"""

from pathlib import Path
from typing import Any

import yaml

from inventory_export.core.errors import ConfigurationError
from inventory_export.core.models import ValidationRule

from .registry import RuleRegistry


class RuleConfigLoader:
    """
    Loads a rule registry from a YAML configuration file.

    Expected YAML format:
    ```yaml
    data_types:
      hardware:
        required_fields: [asset_id, category, status]
        rules:
          asset_id:
            - type: required
            - type: format
              params:
                pattern: "^HW[0-9]{6}$"
          purchase_price:
            - type: range
              severity: warning
              params:
                min: 0
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the rule config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Rule configuration file not found: {config_path}")

    def load_registry(self) -> RuleRegistry:
        """
        Parse the YAML file into a RuleRegistry.

        Raises:
            ConfigurationError: If the YAML is invalid or a rule is malformed
        """
        try:
            with open(self.config_path) as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(config, dict) or "data_types" not in config:
            raise ConfigurationError("Configuration file must contain 'data_types' section")
        if not isinstance(config["data_types"], dict):
            raise ConfigurationError("'data_types' section must be a mapping")

        rules: dict[str, list[ValidationRule]] = {}
        required_fields: dict[str, list[str]] = {}

        for data_type, section in config["data_types"].items():
            section = section or {}
            if not isinstance(section, dict):
                raise ConfigurationError(f"Section for data type '{data_type}' must be a mapping")

            fields = section.get("required_fields")
            if fields is not None:
                if not isinstance(fields, list):
                    raise ConfigurationError(
                        f"required_fields for data type '{data_type}' must be a list"
                    )
                required_fields[data_type] = [str(f) for f in fields]

            rules[data_type] = self._parse_field_rules(data_type, section.get("rules") or {})

        return RuleRegistry(rules, required_fields)

    def _parse_field_rules(self, data_type: str, field_rules: dict[str, Any]) -> list[ValidationRule]:
        parsed = []
        for field_name, field_rule_list in field_rules.items():
            if not isinstance(field_rule_list, list):
                raise ConfigurationError(
                    f"Rules for field '{data_type}.{field_name}' must be a list"
                )
            for idx, rule_def in enumerate(field_rule_list):
                parsed.append(self._parse_rule(field_name, rule_def, idx))
        return parsed

    def _parse_rule(self, field_name: str, rule_def: dict[str, Any], idx: int) -> ValidationRule:
        """
        Parse a single rule definition.

        Args:
            field_name: The field this rule applies to
            rule_def: The rule definition from YAML
            idx: Index of this rule for the field (for naming)

        Raises:
            ConfigurationError: If rule definition is invalid
        """
        if not isinstance(rule_def, dict) or "type" not in rule_def:
            raise ConfigurationError(f"Rule for field '{field_name}' is missing 'type'")

        rule_type = rule_def["type"]
        rule_name = rule_def.get("name", f"{field_name}_{rule_type}_{idx}")
        parameters = rule_def.get("params", rule_def.get("parameters", {})) or {}

        severity = rule_def.get("severity", "error")
        if severity not in ("error", "warning"):
            raise ConfigurationError(
                f"Invalid severity '{severity}' for rule '{rule_name}'. Must be 'error' or 'warning'"
            )

        try:
            return ValidationRule(
                name=rule_name,
                kind=rule_type,
                field=field_name,
                parameters=parameters,
                severity=severity,
                enabled=rule_def.get("enabled", True),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid rule '{rule_name}': {e}") from e


class RuleConfigBuilder:
    """
    Programmatically build rule sets (for testing or dynamic rules).
    """

    def __init__(self):
        self.rules: list[ValidationRule] = []

    def _add(self, name: str, kind: str, field_name: str, parameters: dict[str, Any], severity: str) -> "RuleConfigBuilder":
        self.rules.append(ValidationRule(
            name=name,
            kind=kind,
            field=field_name,
            parameters=parameters,
            severity=severity,
        ))
        return self

    def add_required(self, field_name: str, severity: str = "error") -> "RuleConfigBuilder":
        """Add a required field rule."""
        return self._add(f"{field_name}_required", "required", field_name, {}, severity)

    def add_type(self, field_name: str, expected_type: str, coerce: bool = False, severity: str = "error") -> "RuleConfigBuilder":
        """Add a type check rule."""
        return self._add(
            f"{field_name}_type",
            "type",
            field_name,
            {"expected_type": expected_type, "coerce": coerce},
            severity,
        )

    def add_format(self, field_name: str, pattern: str, severity: str = "error") -> "RuleConfigBuilder":
        """Add a regex format rule."""
        return self._add(f"{field_name}_format", "format", field_name, {"pattern": pattern}, severity)

    def add_range(
        self,
        field_name: str,
        min_value: float | None = None,
        max_value: float | None = None,
        severity: str = "error",
    ) -> "RuleConfigBuilder":
        """Add a range validation rule."""
        params = {}
        if min_value is not None:
            params["min"] = min_value
        if max_value is not None:
            params["max"] = max_value
        return self._add(f"{field_name}_range", "range", field_name, params, severity)

    def add_enum(self, field_name: str, allowed_values: list[Any], severity: str = "error") -> "RuleConfigBuilder":
        """Add an enumeration rule."""
        return self._add(
            f"{field_name}_enum", "enum", field_name, {"allowed_values": list(allowed_values)}, severity
        )

    def add_custom(self, field_name: str, check, error_message: str | None = None, severity: str = "error") -> "RuleConfigBuilder":
        """Add a custom rule backed by a predicate or a "module:function" path."""
        params: dict[str, Any] = {"check": check}
        if error_message:
            params["error_message"] = error_message
        return self._add(f"{field_name}_custom", "custom", field_name, params, severity)

    def build(self) -> list[ValidationRule]:
        """Build and return the rule list."""
        return list(self.rules)
