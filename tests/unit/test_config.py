"""Tests for application configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from tutor_gateway.config import Environment, Settings


class TestSettings:
    """Test Settings model validation and computed fields."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Settings loads with all defaults (no env vars needed)."""
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        s = Settings(_env_file=None)
        assert s.environment == Environment.DEVELOPMENT
        assert s.is_dev is True
        assert s.is_prod is False
        assert s.tool_registry_path == Path("config/tools.yaml")
        assert s.diagnostics_dir == Path(".diagnostics")
        assert s.perplexity_base_url == "https://api.perplexity.ai"
        assert s.default_tool is None

    def test_secret_str_not_exposed(self) -> None:
        """API keys are not exposed in repr or string conversion."""
        s = Settings(
            openai_api_key="super-secret-key",  # type: ignore[arg-type]
            _env_file=None,
        )
        assert "super-secret-key" not in repr(s)
        assert s.openai_api_key is not None
        assert s.openai_api_key.get_secret_value() == "super-secret-key"

    def test_api_keys_optional(self) -> None:
        """All provider API keys are optional by default."""
        s = Settings(_env_file=None)
        assert s.openai_api_key is None
        assert s.anthropic_api_key is None
        assert s.google_api_key is None
        assert s.perplexity_api_key is None

    def test_operator_keys_default_empty(self) -> None:
        s = Settings(_env_file=None)
        assert s.admin_api_keys == []
        assert s.instructor_api_keys == []
        assert s.student_api_keys == []

    def test_operator_keys_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """List settings are read as JSON arrays from the environment."""
        monkeypatch.setenv("ADMIN_API_KEYS", '["adm-1", "adm-2"]')
        s = Settings(_env_file=None)
        assert [k.get_secret_value() for k in s.admin_api_keys] == ["adm-1", "adm-2"]

    def test_environment_enum(self) -> None:
        """Environment accepts valid values."""
        s = Settings(environment="production", _env_file=None)  # type: ignore[arg-type]
        assert s.is_prod is True
        assert s.is_dev is False

    def test_testing_environment(self) -> None:
        s = Settings(environment="testing", _env_file=None)  # type: ignore[arg-type]
        assert s.is_testing is True

    def test_invalid_environment_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(environment="moon", _env_file=None)  # type: ignore[arg-type]
