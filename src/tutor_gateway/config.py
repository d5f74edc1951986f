"""Centralized application configuration via environment variables."""

from enum import StrEnum
from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Provider API keys use SecretStr to prevent accidental logging.
    A provider is only instantiated when its key is set.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App ---
    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "DEBUG"

    # --- Provider API Keys ---
    openai_api_key: SecretStr | None = None
    anthropic_api_key: SecretStr | None = None
    google_api_key: SecretStr | None = None
    perplexity_api_key: SecretStr | None = None

    # --- Provider endpoints ---
    # Perplexity speaks the OpenAI wire format at its own base URL.
    # Other providers use the built-in endpoints of their SDKs.
    openai_base_url: str | None = None
    perplexity_base_url: str = "https://api.perplexity.ai"

    # --- Tool Registry ---
    tool_registry_path: Path = Path("config/tools.yaml")
    default_tool: str | None = None  # overrides default_tool in tools.yaml

    # --- Diagnostics ---
    diagnostics_dir: Path = Path(".diagnostics")
    health_check_timeout_ms: int = 30_000

    # --- Operator API keys ---
    admin_api_keys: list[SecretStr] = []
    instructor_api_keys: list[SecretStr] = []
    student_api_keys: list[SecretStr] = []

    # --- Convenience properties ---
    @property
    def is_dev(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton.

    Usage::

        from tutor_gateway.config import get_settings
        settings = get_settings()

    Or for dependency injection in FastAPI::

        @app.get("/")
        def root(settings: Settings = Depends(get_settings)):
            ...
    """
    return Settings()


settings = get_settings()
