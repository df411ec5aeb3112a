"""
Error taxonomy for the request pipeline.

Every failure that crosses a module boundary is an AgentError subclass so
routers and the app-level exception handler can map it to a status code
and a human-readable message without leaking internals.

Which errors are fatal is decided by the orchestrator, not here:
retrieval and session-store errors are caught at their call site and
turned into degraded behaviour.
"""


class AgentError(Exception):
    """
    Base class for pipeline errors.

    Attributes:
        code: Machine-readable error code (e.g. "INDEX_UNAVAILABLE")
        message: Message safe to show to an end user
        http_status: Status used when the error reaches the HTTP layer
    """

    code: str = "AGENT_ERROR"
    http_status: int = 500

    def __init__(self, message: str, *, code: str | None = None, http_status: int | None = None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        super().__init__(message)


class InvalidRequest(AgentError):
    code = "INVALID_REQUEST"
    http_status = 400


class ServiceMisconfigured(AgentError):
    """A required credential or endpoint is missing from configuration."""

    code = "SERVICE_MISCONFIGURED"
    http_status = 503


class EmbeddingUnavailable(AgentError):
    code = "EMBEDDING_UNAVAILABLE"
    http_status = 503


class IndexUnavailable(AgentError):
    code = "INDEX_UNAVAILABLE"
    http_status = 503


# ── Completion layer ──────────────────────────────────────────────────────────


class ProviderError(AgentError):
    """A single provider attempt failed. Advances the fallback chain."""

    code = "PROVIDER_ERROR"
    http_status = 502

    def __init__(self, message: str, *, provider: str | None = None, **kwargs):
        self.provider = provider
        super().__init__(message, **kwargs)


class ProviderAuthError(ProviderError):
    code = "PROVIDER_AUTH_ERROR"


class ProviderQuotaError(ProviderError):
    code = "PROVIDER_QUOTA_ERROR"


class ProviderNetworkError(ProviderError):
    code = "PROVIDER_NETWORK_ERROR"


class ProviderResponseError(ProviderError):
    """Malformed or empty completion payload."""

    code = "PROVIDER_RESPONSE_ERROR"


class AllProvidersExhausted(AgentError):
    code = "ALL_PROVIDERS_EXHAUSTED"
    http_status = 503

    def __init__(self, attempted: list[str]):
        self.attempted = attempted
        super().__init__("All AI providers failed. Please try again later.")


class SessionStoreError(AgentError):
    code = "SESSION_STORE_ERROR"
    http_status = 500
