"""
RAG Retriever Service

Runs the two retrieval calls for one query, in order:
1. The query text is converted into a vector by the embedder.
2. The vector index returns the top-K nearest chunks (cosine similarity).

Search depends on the embedding, so the calls are sequential. Failures
propagate as EmbeddingUnavailable / IndexUnavailable / ServiceMisconfigured;
whether to degrade is the orchestrator's decision.
"""

from docs_agent.core.config import get_settings
from docs_agent.core.errors import AgentError
from docs_agent.core.logging import get_logger
from docs_agent.services.rag.embedder import Embedder
from docs_agent.services.rag.models import RetrievedChunk
from docs_agent.services.rag.vector_index import VectorIndex

logger = get_logger(__name__)


class Retriever:
    def __init__(self, embedder: Embedder, index: VectorIndex):
        self.embedder = embedder
        self.index = index

    async def retrieve(self, query: str, collection: str, limit: int) -> list[RetrievedChunk]:
        """
        Retrieve the chunks most relevant to a query.

        Args:
            query: Natural language query (the user's latest message)
            collection: Vector collection to search
            limit: Maximum number of chunks

        Returns:
            Chunks ordered highest similarity first; possibly empty
        """
        vector = await self.embedder.embed(query)
        chunks = await self.index.search(vector, limit=limit, collection=collection)
        if chunks:
            logger.info(f"[RAG] Retrieved {len(chunks)} chunks from '{collection}'")
        else:
            logger.info(f"[RAG] No results in '{collection}'")
        return chunks

    async def status(self) -> dict:
        """Reachability and chunk counts of the configured collections (for /rag/status)."""
        settings = get_settings()
        counts: dict[str, int] = {}
        try:
            for name in (settings.agent_collection, settings.search_collection):
                counts[name] = await self.index.count(name)
        except AgentError as e:
            return {"available": False, "collections": counts, "message": e.message}
        return {"available": True, "collections": counts, "message": ""}


# ── Singleton ─────────────────────────────────────────────────────────────────

_retriever: Retriever | None = None


def get_retriever() -> Retriever:
    """Get or create the retriever singleton (one pooled client per service)."""
    global _retriever
    if _retriever is None:
        _retriever = Retriever(Embedder(), VectorIndex())
    return _retriever
