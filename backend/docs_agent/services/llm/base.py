"""
Abstract base class for all LLM providers.

Each provider implements the API-specific translation layer for one
backend: a one-shot completion and a stream of text deltas.
Fallback between providers and the choice of model are handled by the
gateway; a provider never retries on its own.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from docs_agent.services.llm.models import Turn


class LLMProvider(ABC):
    """Abstract base class for all LLM providers."""

    provider_name: str = "base"

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        messages: list[Turn],
        model: str,
        temperature: float = 0.3,
    ) -> str:
        """
        Send the conversation to the LLM and return the full reply text.

        Args:
            system_prompt: The system prompt
            messages: Conversation turns, oldest first
            model: The provider's model identifier
            temperature: Sampling temperature

        Returns:
            Non-empty reply text

        Raises:
            ProviderError subclass on auth, quota, network or malformed response
            ServiceMisconfigured if the provider has no credential
        """
        ...

    @abstractmethod
    def stream(
        self,
        system_prompt: str,
        messages: list[Turn],
        model: str,
        temperature: float = 0.3,
    ) -> AsyncIterator[str]:
        """
        Stream the reply as incremental text deltas.

        Implemented as an async generator: nothing is sent upstream until
        the first item is requested, and closing the generator (aclose())
        must close the upstream connection.
        """
        ...
