"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from wingman.config import Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.max_retries_per_model == 3
        assert settings.retry_backoff_base_seconds == 1.0
        assert settings.fallback_on_format_error is False
        assert settings.prompt_caching_enabled is True
        assert settings.cache_ttl_seconds == 3600
        assert settings.prompt_source == "inline"
        assert settings.models_config_path == "config/models.yaml"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES_PER_MODEL", "5")
        monkeypatch.setenv("FALLBACK_ON_FORMAT_ERROR", "true")
        monkeypatch.setenv("PROMPT_SOURCE", "yaml")

        settings = Settings(_env_file=None)

        assert settings.max_retries_per_model == 5
        assert settings.fallback_on_format_error is True
        assert settings.prompt_source == "yaml"

    def test_retries_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_retries_per_model=0)

    def test_debug_namespaces(self):
        settings = Settings(_env_file=None, log_debug_namespaces="cache, orchestrator,")
        assert settings.debug_namespaces == ["cache", "orchestrator"]

    def test_redact_url(self):
        redacted = Settings._redact_url("postgresql+asyncpg://user:secret@db:5432/wingman")
        assert redacted == "postgresql+asyncpg://***:***@db:5432/wingman"
        assert "secret" not in redacted
