"""
Providers Router

Exposes the available AI providers to the frontend picker.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docs_agent.services.llm.registry import ProviderRegistry, get_registry

router = APIRouter()


class ProviderInfo(BaseModel):
    id: str
    display_name: str
    default_model: str
    configured: bool
    is_default: bool


@router.get("", response_model=list[ProviderInfo])
async def get_available_providers(registry: ProviderRegistry = Depends(get_registry)):
    """Return the providers in fallback order."""
    return registry.list_providers()
