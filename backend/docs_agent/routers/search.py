"""
Search Router

Semantic search over the documentation with a short generated answer.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docs_agent.services.orchestrator import RequestOrchestrator, get_orchestrator

router = APIRouter()


class SearchRequest(BaseModel):
    query: str = ""


class SearchResult(BaseModel):
    id: str
    score: float
    pageContent: str
    metadata: dict


class SearchAnswer(BaseModel):
    provider: str
    content: str


class SearchResponse(BaseModel):
    results: list[SearchResult]
    answer: SearchAnswer | None = None


@router.post("", response_model=SearchResponse)
async def search(
    body: SearchRequest,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    outcome = await orchestrator.search(body.query)
    return SearchResponse(
        results=[
            SearchResult(
                id=chunk.id,
                score=chunk.score,
                pageContent=chunk.content,
                metadata=chunk.metadata.model_dump(exclude_none=True),
            )
            for chunk in outcome.results
        ],
        answer=(
            SearchAnswer(provider=outcome.answer.provider, content=outcome.answer.content)
            if outcome.answer
            else None
        ),
    )
