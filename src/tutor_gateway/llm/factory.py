"""Provider factory -- creates providers based on available API keys.

Uses PROVIDER_REGISTRY for extensibility. Adding a new provider
requires only a new entry in PROVIDER_CONFIGS.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import SecretStr

from tutor_gateway.config import Settings
from tutor_gateway.llm.providers import PROVIDER_REGISTRY, ChatProvider
from tutor_gateway.llm.tools import ProviderId

logger = structlog.get_logger()


@dataclass(frozen=True)
class ProviderFactoryConfig:
    """Typed configuration for creating a chat provider instance."""

    get_api_key: Callable[[Settings], SecretStr | None]
    get_base_url: Callable[[Settings], str | None] | None = None


PROVIDER_CONFIGS: dict[ProviderId, ProviderFactoryConfig] = {
    ProviderId.OPENAI: ProviderFactoryConfig(
        get_api_key=lambda s: s.openai_api_key,
        get_base_url=lambda s: s.openai_base_url,
    ),
    ProviderId.ANTHROPIC: ProviderFactoryConfig(
        get_api_key=lambda s: s.anthropic_api_key,
    ),
    ProviderId.GOOGLE: ProviderFactoryConfig(
        get_api_key=lambda s: s.google_api_key,
    ),
    ProviderId.PERPLEXITY: ProviderFactoryConfig(
        get_api_key=lambda s: s.perplexity_api_key,
        get_base_url=lambda s: s.perplexity_base_url,
    ),
}


def create_providers(settings: Settings) -> dict[ProviderId, ChatProvider]:
    """Instantiate providers for all configured API keys.

    Returns dict: provider id -> ChatProvider instance.
    Only providers with non-None API keys are created.
    """
    providers: dict[ProviderId, ChatProvider] = {}

    for provider_id, provider_cls in PROVIDER_REGISTRY.items():
        config = PROVIDER_CONFIGS.get(provider_id)
        if config is None:
            continue

        api_key_secret = config.get_api_key(settings)
        if api_key_secret is None:
            continue

        kwargs: dict[str, Any] = {"api_key": api_key_secret.get_secret_value()}
        if config.get_base_url is not None:
            kwargs["base_url"] = config.get_base_url(settings)

        providers[provider_id] = provider_cls(**kwargs)
        logger.info("chat_provider_registered", provider=str(provider_id))

    if not providers:
        logger.warning("no_chat_providers_configured")

    return providers
