"""
RAG (Retrieval-Augmented Generation) Pipeline

Provides documentation context to the LLM by:
1. Embedding the user's query (external embedding service)
2. Searching the vector index for the nearest stored chunks
3. Joining those chunks into the context block of the system prompt

The corpus itself is built by the offline indexing job.
"""

from docs_agent.services.rag.context import RETRIEVAL_FAILED_CONTEXT, assemble_context
from docs_agent.services.rag.models import RetrievedChunk
from docs_agent.services.rag.retriever import Retriever, get_retriever

__all__ = [
    "RETRIEVAL_FAILED_CONTEXT",
    "assemble_context",
    "RetrievedChunk",
    "Retriever",
    "get_retriever",
]
