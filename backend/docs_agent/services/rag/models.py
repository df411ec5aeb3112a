"""
Pydantic models for retrieval results.

Chunks are produced by the vector index for one query and consumed only by
the context assembler (and echoed by /search); they are never persisted.
"""

from pydantic import BaseModel


class ChunkMetadata(BaseModel):
    title: str | None = None
    path: str | None = None


class RetrievedChunk(BaseModel):
    id: str
    score: float
    content: str
    metadata: ChunkMetadata = ChunkMetadata()
