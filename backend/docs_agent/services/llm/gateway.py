"""
Completion Gateway

Shared logic for all providers:
- Resolving (provider, model) through the registry, with the default
  pair substituted for unknown providers
- Streaming completions for the chat agent (single provider, no fallback)
- One-shot completions with ordered fallback for translation and search

One-shot fallback runs through these states:

    NotStarted -> Trying(0) -> ... -> Trying(n-1) -> Exhausted
                      \\______________________/
                               -> Succeeded(provider, text)

Trying(0) is the caller's provider with the caller's model; every later
attempt uses the next provider in priority order (never the first one
again) with that provider's own default model. A single failure moves on.
"""

from dataclasses import dataclass
from typing import AsyncIterator

from docs_agent.core.config import get_settings
from docs_agent.core.errors import AllProvidersExhausted, ProviderError, ServiceMisconfigured
from docs_agent.core.logging import get_logger
from docs_agent.services.llm.models import CompletionResult, Turn
from docs_agent.services.llm.registry import ProviderRegistry, get_registry

logger = get_logger(__name__)


@dataclass
class StreamingCompletion:
    provider: str
    model: str
    deltas: AsyncIterator[str]


class CompletionGateway:
    """Routes completion requests to providers."""

    def __init__(self, registry: ProviderRegistry, temperature: float = 0.3):
        self.registry = registry
        self.temperature = temperature

    def complete_streaming(
        self,
        provider_id: str | None,
        model: str | None,
        system_prompt: str,
        history: list[Turn],
    ) -> StreamingCompletion:
        """
        Start a streaming completion on the chosen provider.

        The returned deltas are an async generator; the upstream request is
        only sent when the first delta is requested, so errors (including
        ServiceMisconfigured) surface on that first read.
        """
        config, api_model = self.registry.resolve(provider_id, model)
        provider = self.registry.get_provider(config.id)
        logger.info(f"[LLM] stream provider={config.id} model={api_model}")
        return StreamingCompletion(
            provider=config.id,
            model=api_model,
            deltas=provider.stream(
                system_prompt=system_prompt,
                messages=history,
                model=api_model,
                temperature=self.temperature,
            ),
        )

    async def complete_once(
        self,
        provider_id: str | None,
        model: str | None,
        system_prompt: str,
        user_text: str,
    ) -> CompletionResult:
        """
        One-shot completion with ordered provider fallback.

        Args:
            provider_id: Caller-selected provider (unknown ids use the default)
            model: Caller-selected model, only used for the first attempt
            system_prompt: The system prompt
            user_text: The single user message

        Returns:
            CompletionResult naming the provider that actually answered

        Raises:
            AllProvidersExhausted: every configured provider failed once
        """
        first, first_model = self.registry.resolve(provider_id, model)
        attempts = [(first, first_model)] + [
            (config, config.default_model)
            for config in self.registry.fallback_order()
            if config.id != first.id
        ]

        messages = [Turn(role="user", content=user_text)]
        attempted: list[str] = []

        for position, (config, api_model) in enumerate(attempts):
            attempted.append(config.id)
            if position > 0:
                logger.info(f"[LLM] Fallback: attempting {config.id} ({api_model})")
            try:
                content = await self.registry.get_provider(config.id).complete(
                    system_prompt=system_prompt,
                    messages=messages,
                    model=api_model,
                    temperature=self.temperature,
                )
            except (ProviderError, ServiceMisconfigured) as e:
                logger.warning(f"[LLM] Provider {config.id} failed: {e.message}")
                continue

            return CompletionResult(
                provider=config.id,
                model=api_model,
                content=content,
                fell_back=position > 0,
                requested_provider=first.id,
            )

        logger.error(f"[LLM] All providers failed: {', '.join(attempted)}")
        raise AllProvidersExhausted(attempted)


# ── Singleton ─────────────────────────────────────────────────────────────────

_gateway: CompletionGateway | None = None


def get_gateway() -> CompletionGateway:
    """Get or create the completion gateway singleton."""
    global _gateway
    if _gateway is None:
        _gateway = CompletionGateway(
            get_registry(), temperature=get_settings().completion_temperature
        )
    return _gateway
