"""
Vector Index Client

Queries the remote ChromaDB server for the chunks nearest to a query
vector. The offline indexing job stores each chunk's text as the Chroma
document and ``{title, path}`` as its metadata, in collections created
with cosine distance, so similarity = 1 - distance.

Results come back in the index's own order (nearest first); ties are left
as the index returns them.
"""

from urllib.parse import urlsplit

import chromadb

from docs_agent.core.config import Settings, get_settings
from docs_agent.core.errors import IndexUnavailable, ServiceMisconfigured
from docs_agent.core.logging import get_logger
from docs_agent.services.rag.models import ChunkMetadata, RetrievedChunk

logger = get_logger(__name__)

DEFAULT_CHROMA_PORT = 8000


class VectorIndex:
    """Thin async wrapper around a pooled ChromaDB HTTP client."""

    def __init__(self, settings: Settings | None = None, client=None):
        self._settings = settings or get_settings()
        self._client = client

    async def _get_client(self):
        if self._client is not None:
            return self._client

        url = self._settings.vector_index_url
        if not url:
            raise ServiceMisconfigured("Vector index URL is not configured")

        parts = urlsplit(url)
        ssl = parts.scheme == "https"
        port = parts.port or (443 if ssl else DEFAULT_CHROMA_PORT)
        headers = {}
        if self._settings.vector_index_api_key:
            headers["Authorization"] = f"Bearer {self._settings.vector_index_api_key}"

        try:
            self._client = await chromadb.AsyncHttpClient(
                host=parts.hostname or "localhost",
                port=port,
                ssl=ssl,
                headers=headers,
            )
        except Exception as e:
            logger.warning(f"[RAG] Could not connect to vector index: {e}")
            raise IndexUnavailable("Vector index unavailable") from e
        return self._client

    async def search(self, vector: list[float], limit: int, collection: str) -> list[RetrievedChunk]:
        """
        Return at most ``limit`` chunks, highest similarity first.

        Raises:
            ServiceMisconfigured: no index URL configured
            IndexUnavailable: connectivity, auth, or malformed result
        """
        client = await self._get_client()
        try:
            coll = await client.get_collection(collection)
            result = await coll.query(
                query_embeddings=[vector],
                n_results=limit,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as e:
            logger.warning(f"[RAG] Vector search failed on '{collection}': {e}")
            raise IndexUnavailable("Vector index unavailable") from e

        # Chroma returns one list per query embedding
        ids = (result.get("ids") or [[]])[0]
        docs = (result.get("documents") or [[]])[0] or []
        metas = (result.get("metadatas") or [[]])[0] or []
        distances = (result.get("distances") or [[]])[0] or []

        chunks: list[RetrievedChunk] = []
        for i, chunk_id in enumerate(ids[:limit]):
            meta = (metas[i] if i < len(metas) else None) or {}
            text = docs[i] if i < len(docs) else None
            distance = distances[i] if i < len(distances) else None
            chunks.append(
                RetrievedChunk(
                    id=str(chunk_id),
                    score=1.0 - float(distance) if distance is not None else 0.0,
                    content=(text or meta.get("content") or ""),
                    metadata=ChunkMetadata(title=meta.get("title"), path=meta.get("path")),
                )
            )
        return chunks

    async def count(self, collection: str) -> int:
        """Number of chunks stored in a collection (used by /rag/status)."""
        client = await self._get_client()
        try:
            coll = await client.get_collection(collection)
            return await coll.count()
        except Exception as e:
            raise IndexUnavailable("Vector index unavailable") from e
