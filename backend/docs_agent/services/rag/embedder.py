"""
Embedder Client

Turns query text into a fixed-dimension vector by calling the external
embedding service. The default deployment talks to Gemini's
text-embedding-004 through its OpenAI-compatible endpoint, so the same
LangChain OpenAIEmbeddings wrapper used at indexing time works here.

Texts are never chunked by this component; chunking belongs to the
offline indexing job.
"""

from langchain_openai import OpenAIEmbeddings

from docs_agent.core.config import Settings, get_settings
from docs_agent.core.errors import EmbeddingUnavailable, InvalidRequest, ServiceMisconfigured
from docs_agent.core.logging import get_logger

logger = get_logger(__name__)


class Embedder:
    """Wraps the embedding service. Fails fast; callers decide how to degrade."""

    def __init__(self, settings: Settings | None = None, client: OpenAIEmbeddings | None = None):
        self._settings = settings or get_settings()
        self._client = client

    def _get_client(self) -> OpenAIEmbeddings:
        if self._client is not None:
            return self._client

        api_key = self._settings.resolved_embedding_api_key
        if not api_key:
            raise ServiceMisconfigured("Embedding API key is not configured")

        self._client = OpenAIEmbeddings(
            model=self._settings.embedding_model,
            openai_api_key=api_key,
            openai_api_base=self._settings.embedding_base_url,
            # Non-OpenAI backends expect raw strings, not tiktoken ids
            check_embedding_ctx_length=False,
            # One retry at most; retrieval is an enhancement, not a requirement
            max_retries=1,
            request_timeout=self._settings.http_timeout,
        )
        return self._client

    async def embed(self, text: str) -> list[float]:
        """
        Embed a single query string.

        Raises:
            InvalidRequest: text is empty after trimming
            ServiceMisconfigured: no embedding credential
            EmbeddingUnavailable: network error or malformed response
        """
        text = (text or "").strip()
        if not text:
            raise InvalidRequest("Cannot embed empty text")

        client = self._get_client()
        try:
            vector = await client.aembed_query(text)
        except Exception as e:
            logger.warning(f"[RAG] Embedding request failed: {e}")
            raise EmbeddingUnavailable("Embedding service unavailable") from e

        if not vector or not all(isinstance(v, (int, float)) for v in vector):
            raise EmbeddingUnavailable("Embedding service returned a malformed vector")
        return [float(v) for v in vector]
