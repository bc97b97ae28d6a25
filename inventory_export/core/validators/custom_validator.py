"""
CustomValidator - validates with a host-supplied predicate.
"""

import importlib
from collections.abc import Callable
from typing import Any

from inventory_export.utils.records import is_blank

from .base_validator import BaseValidator

Check = Callable[[Any, dict[str, Any]], Any]


def resolve_check(check: Check | str) -> Check:
    """
    Resolve a check given as a callable or a ``"package.module:function"`` path.

    String paths let YAML rule files reference checks shipped with the host.
    """
    if callable(check):
        return check
    if not isinstance(check, str) or ":" not in check:
        raise ValueError("check must be callable or a 'module:function' path")

    module_name, _, attribute = check.partition(":")
    try:
        target = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Cannot import check '{check}': {e}") from e
    if not callable(target):
        raise ValueError(f"Check '{check}' is not callable")
    return target


class CustomValidator(BaseValidator):
    """
    Validates a field with a predicate ``check(value, record)``.

    Parameters:
    - check: Callable or "module:function" path. Returning False fails the
             rule; raising ValueError/TypeError fails it with the exception
             text as the reason.
    - error_message: Message reported on failure (default "failed custom validation")

    Blank values are skipped; pair with a required rule to reject them.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        if "check" not in self.parameters:
            raise ValueError("CustomValidator requires 'check' parameter")
        self.check = resolve_check(self.parameters["check"])
        self.error_message = self.parameters.get("error_message") or "failed custom validation"

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        if is_blank(value):
            return

        try:
            passed = self.check(value, record)
        except (ValueError, TypeError) as e:
            self.fail(f"{self.error_message}: {e}")
        if passed is False:
            self.fail(self.error_message)

    @property
    def rule_type(self) -> str:
        return "custom"
