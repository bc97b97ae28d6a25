"""
ValidationRule model representing a declarative constraint on exported records.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ValidationRule(BaseModel):
    """
    A declarative constraint applied to every record of a data type.

    Rules are grouped by data-type name in a registry populated at startup
    and never mutated at runtime.

    Attributes:
        name: Human-readable name ("Asset ID Format")
        kind: "required", "type", "format", "range", "enum" or "custom"
        field: Dotted path of the field this rule applies to
        parameters: Kind-specific params (e.g. {"pattern": "^HW\\d{6}$"})
        severity: "error" (record invalid) or "warning" (reported only)
        enabled: Whether the rule is active
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "name": "Asset ID Format",
                "kind": "format",
                "field": "asset_id",
                "parameters": {"pattern": "^HW\\d{6}$"},
                "severity": "error",
                "enabled": True,
            }
        },
    )

    name: str = Field(..., min_length=1)
    kind: Literal["required", "type", "format", "range", "enum", "custom"]
    field: str = Field(..., min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)
    severity: Literal["error", "warning"] = "error"
    enabled: bool = True
