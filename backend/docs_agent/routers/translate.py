"""
Translate Router

English to Urdu translation of documentation pages, with provider fallback.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docs_agent.services.orchestrator import RequestOrchestrator, get_orchestrator

router = APIRouter()


class TranslateRequest(BaseModel):
    content: str = ""
    provider: str | None = None
    model: str | None = None


class TranslateResponse(BaseModel):
    translation: str
    provider: str
    note: str | None = None


@router.post("", response_model=TranslateResponse, response_model_exclude_none=True)
async def translate(
    body: TranslateRequest,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    """Translate content; `note` is only present when another provider answered."""
    result = await orchestrator.translate(body.content, body.provider, body.model)
    return TranslateResponse(
        translation=result.content,
        provider=result.provider,
        note=f"Original provider failed. Handled by {result.provider}." if result.fell_back else None,
    )
