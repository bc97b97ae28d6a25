"""
Validation rule engine, rule registry and configuration management.
"""

from .registry import DEFAULT_REQUIRED_FIELDS, RuleRegistry, default_registry
from .rule_config import RuleConfigBuilder, RuleConfigLoader
from .rule_engine import RuleEngine

__all__ = [
    "RuleEngine",
    "RuleRegistry",
    "RuleConfigLoader",
    "RuleConfigBuilder",
    "DEFAULT_REQUIRED_FIELDS",
    "default_registry",
]
