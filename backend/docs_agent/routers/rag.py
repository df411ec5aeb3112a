"""
RAG Admin Router

Provides an endpoint to check the vector index collections.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docs_agent.services.rag.retriever import Retriever, get_retriever

router = APIRouter()


class RAGStatusResponse(BaseModel):
    available: bool
    collections: dict[str, int] = {}
    message: str = ""


@router.get("/status", response_model=RAGStatusResponse)
async def rag_status(retriever: Retriever = Depends(get_retriever)):
    """Check reachability and chunk counts of the vector index."""
    info = await retriever.status()
    return RAGStatusResponse(**info)
