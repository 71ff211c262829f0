"""Writing suggestion endpoints."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from apptrack.errors import SuggestionUnavailableError
from apptrack.models.suggestion import Suggestion, SuggestionRequest
from apptrack.services.suggestion_service import QUICK_PROMPTS, suggestion_service

router = APIRouter(prefix="/api/suggestions", tags=["suggestions"])


@router.post("/", response_model=Suggestion)
async def suggest(request: SuggestionRequest) -> Suggestion:
    try:
        return await suggestion_service.suggest(request)
    except SuggestionUnavailableError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/prompts", response_model=list[str])
async def quick_prompts() -> list[str]:
    return QUICK_PROMPTS
