"""Chat provider adapters.

PROVIDER_REGISTRY maps provider ids (used in tools.yaml) to their
implementation classes. To add a new provider:

1. Create a new module in this package
2. Implement ChatProvider subclass
3. Add a ProviderId member and an entry to PROVIDER_REGISTRY below
4. Add its API key lookup to PROVIDER_CONFIGS in llm/factory.py
"""

from tutor_gateway.llm.providers.anthropic import AnthropicProvider
from tutor_gateway.llm.providers.base import ChatProvider, translate_error
from tutor_gateway.llm.providers.gemini import GeminiProvider
from tutor_gateway.llm.providers.openai_compat import (
    OpenAICompatProvider,
    OpenAIProvider,
)
from tutor_gateway.llm.providers.perplexity import PerplexityProvider
from tutor_gateway.llm.tools import ProviderId

PROVIDER_REGISTRY: dict[ProviderId, type[ChatProvider]] = {
    ProviderId.OPENAI: OpenAIProvider,
    ProviderId.ANTHROPIC: AnthropicProvider,
    ProviderId.GOOGLE: GeminiProvider,
    ProviderId.PERPLEXITY: PerplexityProvider,
}

__all__ = [
    "PROVIDER_REGISTRY",
    "AnthropicProvider",
    "ChatProvider",
    "GeminiProvider",
    "OpenAICompatProvider",
    "OpenAIProvider",
    "PerplexityProvider",
    "translate_error",
]
