"""
Unit tests for settings loading.
"""

import pytest

from inventory_export.config import ExportSettings, load_settings
from inventory_export.core.errors import ConfigurationError


@pytest.mark.unit
class TestLoadSettings:
    """Tests for load_settings"""

    def test_defaults(self, clean_env):
        settings = load_settings()

        assert settings.timezone == "UTC"
        assert settings.output_dir is None
        assert settings.log_level == "INFO"
        assert settings.log_format == "json"
        assert settings.database_configured is False
        assert settings.retry_options.max_retries == 3
        assert settings.retry_options.base_delay == 60.0

    def test_reads_environment(self, clean_env):
        clean_env.setenv("EXPORT_OUTPUT_DIR", "/var/exports")
        clean_env.setenv("EXPORT_TIMEZONE", "Europe/Berlin")
        clean_env.setenv("RETRY_MAX_RETRIES", "5")
        clean_env.setenv("RETRY_BASE_DELAY_SECONDS", "30")
        clean_env.setenv("SMTP_USE_TLS", "true")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("DB_PASSWORD", "secret")

        settings = load_settings()

        assert settings.output_dir == "/var/exports"
        assert settings.timezone == "Europe/Berlin"
        assert settings.retry_options.max_retries == 5
        assert settings.retry_options.base_delay == 30.0
        assert settings.smtp_use_tls is True
        assert settings.log_level == "DEBUG"
        assert settings.database_configured is True

    def test_blank_values_are_ignored(self, clean_env):
        clean_env.setenv("SMTP_PORT", "  ")
        assert load_settings().smtp_port == 25

    def test_invalid_value_names_the_variable(self, clean_env):
        clean_env.setenv("SMTP_PORT", "not-a-port")
        clean_env.setenv("LOG_FORMAT", "xml")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        errors = exc_info.value.errors
        assert any(error.startswith("SMTP_PORT:") for error in errors)
        assert any(error.startswith("LOG_FORMAT:") for error in errors)

    def test_env_file_does_not_override_environment(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("EXPORT_TIMEZONE=Asia/Tokyo\nMETRICS_PORT=9200\n")
        clean_env.setenv("EXPORT_TIMEZONE", "UTC")
        # registered with monkeypatch so the value loaded from the file is removed on teardown
        clean_env.setenv("METRICS_PORT", "1")
        clean_env.delenv("METRICS_PORT")

        settings = load_settings(env_file)

        assert settings.timezone == "UTC"
        assert settings.metrics_port == 9200

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            ExportSettings(log_level="LOUD")
