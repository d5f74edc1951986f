"""Perplexity Sonar provider (OpenAI-compatible wire format)."""

from tutor_gateway.llm.providers.openai_compat import OpenAICompatProvider
from tutor_gateway.llm.tools import ProviderId

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"


class PerplexityProvider(OpenAICompatProvider):
    """Perplexity uses the Chat Completions format with its own base_url."""

    provider_id = ProviderId.PERPLEXITY

    def __init__(
        self,
        api_key: str,
        base_url: str | None = PERPLEXITY_BASE_URL,
        temperature: float = 0.7,
    ) -> None:
        super().__init__(
            api_key=api_key,
            base_url=base_url or PERPLEXITY_BASE_URL,
            temperature=temperature,
        )
