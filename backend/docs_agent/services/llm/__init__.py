"""
LLM Provider Abstraction Layer

Provides a unified interface over several OpenAI-compatible LLM backends
(Gemini, Groq, OpenRouter, Mistral) with a provider registry and a
completion gateway that streams or falls back between providers.
"""

from docs_agent.services.llm.gateway import CompletionGateway, StreamingCompletion, get_gateway
from docs_agent.services.llm.models import CompletionResult, Turn
from docs_agent.services.llm.registry import ProviderConfig, ProviderRegistry, get_registry

__all__ = [
    "CompletionGateway",
    "StreamingCompletion",
    "get_gateway",
    "CompletionResult",
    "Turn",
    "ProviderConfig",
    "ProviderRegistry",
    "get_registry",
]
