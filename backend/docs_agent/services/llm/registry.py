"""
Provider Registry

Maps provider ids to their endpoint, credential, default model and
fallback position. Built once from settings at startup and read-only
afterwards, so requests can share it without locking.
"""

from dataclasses import dataclass

from docs_agent.core.config import Settings, get_settings
from docs_agent.core.logging import get_logger
from docs_agent.services.llm.base import LLMProvider

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    id: str
    display_name: str
    base_url: str
    api_key: str
    default_model: str
    priority: int


# ── Known Providers ───────────────────────────────────────────────────────────
# Each entry maps a provider id to its display name; endpoint, key and
# default model come from settings fields named "<id>_base_url",
# "<id>_api_key" and "<id>_default_model".

KNOWN_PROVIDERS: dict[str, str] = {
    "gemini": "Gemini",
    "groq": "Groq",
    "openrouter": "OpenRouter",
    "mistral": "Mistral",
}


def build_provider_configs(settings: Settings) -> list[ProviderConfig]:
    """Create provider configs ordered by fallback priority."""
    order = [p for p in settings.provider_order if p in KNOWN_PROVIDERS]
    # Providers missing from the priority list go last, in declaration order
    order += [p for p in KNOWN_PROVIDERS if p not in order]

    return [
        ProviderConfig(
            id=provider_id,
            display_name=KNOWN_PROVIDERS[provider_id],
            base_url=getattr(settings, f"{provider_id}_base_url"),
            api_key=getattr(settings, f"{provider_id}_api_key"),
            default_model=getattr(settings, f"{provider_id}_default_model"),
            priority=position,
        )
        for position, provider_id in enumerate(order)
    ]


class ProviderRegistry:
    """Read-only table of providers plus lazily created provider clients."""

    def __init__(
        self,
        configs: list[ProviderConfig],
        default_provider: str,
        default_model: str,
        timeout: float = 60.0,
        provider_factory=None,
    ):
        self._configs = {c.id: c for c in sorted(configs, key=lambda c: c.priority)}
        if not self._configs:
            raise ValueError("At least one provider must be configured")
        if default_provider not in self._configs:
            default_provider = next(iter(self._configs))
        self.default_provider = default_provider
        self.default_model = default_model
        self._timeout = timeout
        self._factory = provider_factory or self._create_provider
        # Provider instances (lazy-loaded singletons, one pooled client each)
        self._instances: dict[str, LLMProvider] = {}

    def _create_provider(self, config: ProviderConfig) -> LLMProvider:
        from docs_agent.services.llm.openai_compatible import OpenAICompatibleProvider
        return OpenAICompatibleProvider(config, timeout=self._timeout)

    def get_config(self, provider_id: str | None) -> ProviderConfig | None:
        if not provider_id:
            return None
        return self._configs.get(provider_id.lower())

    def resolve(self, provider_id: str | None, model: str | None) -> tuple[ProviderConfig, str]:
        """
        Pick the provider config and model for a request.

        A known provider keeps the requested model (or its own default).
        An unknown provider is replaced by the default provider/model pair.
        """
        config = self.get_config(provider_id)
        if config is not None:
            return config, model or config.default_model

        logger.warning(
            f"[LLM] Unknown provider {provider_id!r}, defaulting to {self.default_provider}"
        )
        return self._configs[self.default_provider], self.default_model

    def fallback_order(self) -> list[ProviderConfig]:
        """All providers in fixed priority order."""
        return list(self._configs.values())

    def get_provider(self, provider_id: str) -> LLMProvider:
        """Get the provider instance for a known provider id."""
        config = self._configs[provider_id]
        if provider_id not in self._instances:
            self._instances[provider_id] = self._factory(config)
        return self._instances[provider_id]

    def list_providers(self) -> list[dict]:
        """
        Return the providers for the frontend picker.

        Credentials are reduced to a "configured" flag.
        """
        return [
            {
                "id": c.id,
                "display_name": c.display_name,
                "default_model": c.default_model,
                "configured": bool(c.api_key),
                "is_default": c.id == self.default_provider,
            }
            for c in self._configs.values()
        ]


# ── Singleton ─────────────────────────────────────────────────────────────────

_registry: ProviderRegistry | None = None


def get_registry() -> ProviderRegistry:
    """Get or create the registry from settings."""
    global _registry
    if _registry is None:
        settings = get_settings()
        _registry = ProviderRegistry(
            build_provider_configs(settings),
            default_provider=settings.default_provider,
            default_model=settings.default_model,
            timeout=settings.http_timeout,
        )
    return _registry
