"""
Helpers for addressing fields of opaque record mappings by dotted path.
"""

from collections.abc import Mapping
from typing import Any


class _Missing:
    """Sentinel for a path that does not resolve to a value."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def get_nested_value(record: Any, path: str, default: Any = None) -> Any:
    """
    Resolve a dotted path ("owner.address.city") against nested mappings.

    Args:
        record: Record mapping (nested mappings and sequences allowed)
        path: Dotted field path; numeric segments index into lists
        default: Returned when any segment is absent

    Returns:
        The resolved value or ``default``
    """
    current = record
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, (list, tuple)) and segment.isdigit():
            idx = int(segment)
            if idx >= len(current):
                return default
            current = current[idx]
        else:
            return default
    return current


def is_blank(value: Any) -> bool:
    """True for absent, None, or empty-string values ("not present")."""
    return value is MISSING or value is None or value == ""
