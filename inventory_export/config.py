"""
Runtime settings for the export orchestrator.

Settings come from environment variables, optionally seeded from a .env
file via python-dotenv.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from inventory_export.core.errors import ConfigurationError
from inventory_export.core.models import RetryOptions

ENV_VARS = {
    "output_dir": "EXPORT_OUTPUT_DIR",
    "timezone": "EXPORT_TIMEZONE",
    "rules_path": "EXPORT_RULES_PATH",
    "data_dir": "EXPORT_DATA_DIR",
    "schedules_file": "EXPORT_SCHEDULES_FILE",
    "retry_max_retries": "RETRY_MAX_RETRIES",
    "retry_base_delay_seconds": "RETRY_BASE_DELAY_SECONDS",
    "retry_backoff_multiplier": "RETRY_BACKOFF_MULTIPLIER",
    "smtp_host": "SMTP_HOST",
    "smtp_port": "SMTP_PORT",
    "smtp_user": "SMTP_USER",
    "smtp_password": "SMTP_PASSWORD",
    "smtp_sender": "SMTP_SENDER",
    "smtp_use_tls": "SMTP_USE_TLS",
    "push_endpoint": "PUSH_ENDPOINT",
    "webhook_timeout_seconds": "WEBHOOK_TIMEOUT_SECONDS",
    "db_host": "DB_HOST",
    "db_port": "DB_PORT",
    "db_name": "DB_NAME",
    "db_user": "DB_USER",
    "db_password": "DB_PASSWORD",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
    "metrics_port": "METRICS_PORT",
}


class ExportSettings(BaseModel):
    """
    Export orchestrator settings.

    Attributes:
        output_dir: Directory artifacts are written to (in memory if unset)
        timezone: Default IANA timezone for recurrences without one
        rules_path: Optional YAML rule file merged over the built-in rules
        data_dir: Directory of <data_type>.json record files for scheduled runs
        schedules_file: JSON schedule store used when no database is configured
        retry_*: Default retry backoff policy
        smtp_*: Email channel settings
        push_endpoint: Push gateway URL (push is only logged when unset)
        webhook_timeout_seconds: Timeout for webhook and push requests
        db_*: PostgreSQL schedule store settings (in-memory store if no password)
        log_level / log_format: Logging setup
        metrics_port: Port for the Prometheus endpoint (disabled if unset)
    """

    output_dir: str | None = None
    timezone: str = "UTC"
    rules_path: str | None = None
    data_dir: str | None = None
    schedules_file: str | None = None

    retry_max_retries: int = Field(3, ge=0)
    retry_base_delay_seconds: float = Field(60.0, ge=0.0)
    retry_backoff_multiplier: float = Field(2.0, ge=1.0)

    smtp_host: str | None = None
    smtp_port: int = Field(25, gt=0, le=65535)
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_sender: str | None = None
    smtp_use_tls: bool = False

    push_endpoint: str | None = None
    webhook_timeout_seconds: float = Field(10.0, gt=0.0)

    db_host: str = "localhost"
    db_port: int = Field(5432, gt=0, le=65535)
    db_name: str = "inventory"
    db_user: str = "inventory_export"
    db_password: str | None = None

    log_level: str = "INFO"
    log_format: str = "json"
    metrics_port: int | None = Field(None, gt=0, le=65535)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        if v.lower() not in ("json", "text"):
            raise ValueError(f"Invalid log format: {v}. Must be 'json' or 'text'")
        return v.lower()

    @property
    def retry_options(self) -> RetryOptions:
        return RetryOptions(
            max_retries=self.retry_max_retries,
            base_delay=self.retry_base_delay_seconds,
            backoff_multiplier=self.retry_backoff_multiplier,
        )

    @property
    def database_configured(self) -> bool:
        return bool(self.db_password)


def load_settings(env_file: str | Path | None = None) -> ExportSettings:
    """
    Build settings from the environment.

    Args:
        env_file: .env file to load first; existing variables win

    Raises:
        ConfigurationError: If a variable has an invalid value
    """
    if env_file is not None:
        load_dotenv(env_file, override=False)

    values = {}
    for field_name, env_var in ENV_VARS.items():
        raw = os.getenv(env_var)
        if raw is not None and raw.strip() != "":
            values[field_name] = raw.strip()

    try:
        return ExportSettings(**values)
    except ValidationError as e:
        errors = [
            f"{ENV_VARS.get(str(err['loc'][0]), err['loc'][0])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError("Invalid settings: " + "; ".join(errors), errors) from e
