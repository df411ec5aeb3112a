"""
OpenAI-Compatible Chat Completions Provider

Gemini, Groq, OpenRouter and Mistral all expose the OpenAI chat
completion wire contract, so one provider class covers them, configured
with each backend's base URL, API key and models:
- client.chat.completions.create()
- messages: system prompt + conversation
- response.choices[0].message.content  /  chunk.choices[0].delta.content
"""

from typing import AsyncIterator

import httpx
import openai
from openai import AsyncOpenAI

from docs_agent.core.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderNetworkError,
    ProviderQuotaError,
    ProviderResponseError,
    ServiceMisconfigured,
)
from docs_agent.services.llm.base import LLMProvider
from docs_agent.services.llm.models import Turn


class OpenAICompatibleProvider(LLMProvider):
    """Provider for any backend speaking the OpenAI chat completions API."""

    def __init__(self, config, timeout: float = 60.0, http_client: httpx.AsyncClient | None = None):
        self.config = config
        self.provider_name = config.id
        self._timeout = timeout
        self._http_client = http_client
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if not self.config.api_key:
            raise ServiceMisconfigured(
                f"Provider {self.config.id} not configured or missing API key"
            )
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self._timeout,
                # One failure is enough to move on to the next provider
                max_retries=0,
                http_client=self._http_client,
            )
        return self._client

    def _build_messages(self, system_prompt: str, messages: list[Turn]) -> list[dict]:
        return [{"role": "system", "content": system_prompt}] + [
            {"role": m.role, "content": m.content} for m in messages
        ]

    def _translate_error(self, e: Exception) -> ProviderError:
        """Map SDK / transport exceptions onto the provider error taxonomy."""
        name = self.config.id
        if isinstance(e, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return ProviderAuthError(f"{name}: authentication failed", provider=name)
        if isinstance(e, openai.RateLimitError):
            return ProviderQuotaError(f"{name}: rate limit or quota exceeded", provider=name)
        if isinstance(e, openai.APIStatusError):
            if e.status_code == 402:
                return ProviderQuotaError(f"{name}: insufficient credits", provider=name)
            if e.status_code >= 500:
                return ProviderNetworkError(f"{name}: upstream error {e.status_code}", provider=name)
            return ProviderResponseError(f"{name}: request rejected ({e.status_code})", provider=name)
        if isinstance(e, (openai.APIConnectionError, httpx.HTTPError)):
            return ProviderNetworkError(f"{name}: network error", provider=name)
        return ProviderResponseError(f"{name}: malformed response", provider=name)

    async def complete(
        self,
        system_prompt: str,
        messages: list[Turn],
        model: str,
        temperature: float = 0.3,
    ) -> str:
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=self._build_messages(system_prompt, messages),
                temperature=temperature,
            )
        except (openai.OpenAIError, httpx.HTTPError) as e:
            raise self._translate_error(e) from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise self._translate_error(e) from e

        if not content:
            raise ProviderResponseError(
                f"Empty response from {self.config.id}", provider=self.config.id
            )
        return content

    async def stream(
        self,
        system_prompt: str,
        messages: list[Turn],
        model: str,
        temperature: float = 0.3,
    ) -> AsyncIterator[str]:
        client = self._get_client()
        try:
            upstream = await client.chat.completions.create(
                model=model,
                messages=self._build_messages(system_prompt, messages),
                temperature=temperature,
                stream=True,
            )
        except (openai.OpenAIError, httpx.HTTPError) as e:
            raise self._translate_error(e) from e

        # Leaving this block (normally, on error, or via aclose()) closes the HTTP response
        async with upstream:
            try:
                async for chunk in upstream:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta.content if chunk.choices[0].delta else None
                    if delta:
                        yield delta
            except (openai.OpenAIError, httpx.HTTPError) as e:
                raise self._translate_error(e) from e
