"""
Input validation utilities for the export orchestrator.

Guards identifiers, names and paths arriving from the CLI, configuration
files and persisted schedules.
"""

import re


class InputValidationError(ValueError):
    """Raised when input validation fails."""
    pass


def validate_identifier(value: str, field_name: str = "id") -> str:
    """
    Validate an entity identifier (schedule id, retry id, notification id).

    Identifiers must be non-empty strings containing only alphanumeric
    characters, hyphens, underscores and dots.

    Args:
        value: The identifier to validate
        field_name: Name of the field (for error messages)

    Returns:
        The validated identifier (stripped of whitespace)

    Raises:
        InputValidationError: If validation fails

    Examples:
        >>> validate_identifier("schedule_1700000000000_ab12cd")
        'schedule_1700000000000_ab12cd'
        >>> validate_identifier("bad id!")  # doctest: +SKIP
        InputValidationError: id contains invalid characters
    """
    if not value or not isinstance(value, str):
        raise InputValidationError(f"{field_name} must be a non-empty string")

    value = value.strip()

    if not value:
        raise InputValidationError(f"{field_name} cannot be empty or whitespace-only")

    if not re.match(r'^[a-zA-Z0-9_\-\.]+$', value):
        raise InputValidationError(
            f"{field_name} contains invalid characters. "
            "Only alphanumeric, hyphens, underscores, and dots are allowed."
        )

    if len(value) > 255:
        raise InputValidationError(f"{field_name} exceeds maximum length of 255 characters")

    return value


def validate_schedule_id(schedule_id: str, field_name: str = "schedule_id") -> str:
    """
    Validate a schedule ID.

    Examples:
        >>> validate_schedule_id("schedule_1700000000000_ab12cd")
        'schedule_1700000000000_ab12cd'
    """
    return validate_identifier(schedule_id, field_name)


def validate_data_type(data_type: str, field_name: str = "data_type") -> str:
    """
    Validate a data type name ("hardware", "software", ...).

    Examples:
        >>> validate_data_type(" hardware ")
        'hardware'
    """
    if not data_type or not isinstance(data_type, str):
        raise InputValidationError(f"{field_name} must be a non-empty string")

    data_type = data_type.strip()
    if not re.match(r'^[a-zA-Z][a-zA-Z0-9_]*$', data_type):
        raise InputValidationError(
            f"{field_name} must start with a letter and contain only alphanumeric characters and underscores"
        )
    return data_type


def validate_limit(limit: int, field_name: str = "limit", max_limit: int = 10000) -> int:
    """
    Validate a limit parameter for listings.

    Examples:
        >>> validate_limit(100)
        100
        >>> validate_limit(0)  # doctest: +SKIP
        InputValidationError: limit must be a positive integer
    """
    if not isinstance(limit, int) or isinstance(limit, bool):
        raise InputValidationError(f"{field_name} must be an integer, got {type(limit).__name__}")

    if limit <= 0:
        raise InputValidationError(f"{field_name} must be a positive integer, got {limit}")

    if limit > max_limit:
        raise InputValidationError(f"{field_name} exceeds maximum of {max_limit}")

    return limit


def sanitize_sql_identifier(identifier: str, field_name: str = "identifier") -> str:
    """
    Sanitize an SQL identifier (table name, column name, etc.).

    Use this for dynamic table names to prevent SQL injection.

    Examples:
        >>> sanitize_sql_identifier("export_schedules")
        'export_schedules'
        >>> sanitize_sql_identifier("table; DROP TABLE users;")  # doctest: +SKIP
        InputValidationError: identifier contains invalid characters
    """
    if not identifier or not isinstance(identifier, str):
        raise InputValidationError(f"{field_name} must be a non-empty string")

    identifier = identifier.strip()

    if not re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', identifier):
        raise InputValidationError(
            f"{field_name} contains invalid characters. "
            "SQL identifiers must start with a letter or underscore and contain only "
            "alphanumeric characters and underscores."
        )

    if len(identifier) > 63:  # PostgreSQL limit
        raise InputValidationError(f"{field_name} exceeds PostgreSQL maximum length of 63 characters")

    reserved_keywords = {
        "select", "insert", "update", "delete", "drop", "create", "alter",
        "table", "database", "index", "view", "user", "grant", "revoke"
    }
    if identifier.lower() in reserved_keywords:
        raise InputValidationError(
            f"{field_name} '{identifier}' is a reserved SQL keyword. "
            "Please use a different name."
        )

    return identifier


def validate_file_path(file_path: str, field_name: str = "file_path") -> str:
    """
    Validate a file or directory path for security.

    Prevents path traversal and null bytes.

    Examples:
        >>> validate_file_path("/data/exports")
        '/data/exports'
        >>> validate_file_path("../../../etc/passwd")  # doctest: +SKIP
        InputValidationError: file_path contains path traversal characters
    """
    if not file_path or not isinstance(file_path, str):
        raise InputValidationError(f"{field_name} must be a non-empty string")

    file_path = file_path.strip()

    if not file_path:
        raise InputValidationError(f"{field_name} cannot be empty or whitespace-only")

    if ".." in file_path.replace("\\", "/").split("/"):
        raise InputValidationError(f"{field_name} contains path traversal characters (..)")

    if "\x00" in file_path:
        raise InputValidationError(f"{field_name} contains null bytes")

    if len(file_path) > 4096:  # Linux PATH_MAX
        raise InputValidationError(f"{field_name} exceeds maximum length of 4096 characters")

    return file_path


def safe_filename_prefix(name: str, default: str = "export") -> str:
    """
    Turn a free-form name into a filename prefix.

    Examples:
        >>> safe_filename_prefix("Weekly Hardware / Audit")
        'Weekly_Hardware_Audit'
        >>> safe_filename_prefix("***")
        'export'
    """
    prefix = re.sub(r'[^a-zA-Z0-9_\-]+', "_", (name or "").strip()).strip("_")
    return prefix[:100] or default
