"""Public feed, leaderboard and quick-add endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from apptrack.errors import ApptrackError
from apptrack.models.application import MutationResult
from apptrack.models.explore import LeaderboardEntry, PublicApplication
from apptrack.routers.deps import get_manager, get_remote_store, http_error
from apptrack.services.explore_service import ExploreService
from apptrack.services.lifecycle import ApplicationLifecycleManager
from apptrack.services.remote_store import RemoteStore

router = APIRouter(prefix="/api/explore", tags=["explore"])


def get_explore_service(remote: RemoteStore = Depends(get_remote_store)) -> ExploreService:
    return ExploreService(remote)


@router.get("/applications", response_model=list[PublicApplication])
async def public_applications(
    q: str | None = None,
    status: str | None = None,
    explore: ExploreService = Depends(get_explore_service),
) -> list[PublicApplication]:
    try:
        return await explore.public_feed(search=q, status=status)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ApptrackError as e:
        raise http_error(e)


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(
    size: int | None = Query(None, ge=1),
    explore: ExploreService = Depends(get_explore_service),
) -> list[LeaderboardEntry]:
    try:
        return await explore.leaderboard(size)
    except ApptrackError as e:
        raise http_error(e)


@router.post("/applications/{application_id}/copy", response_model=MutationResult, status_code=201)
async def copy_application(
    application_id: str,
    explore: ExploreService = Depends(get_explore_service),
    manager: ApplicationLifecycleManager = Depends(get_manager),
) -> MutationResult:
    """Add another user's public application to the caller's dashboard."""
    try:
        return await explore.copy_public(manager, application_id)
    except ApptrackError as e:
        raise http_error(e)
