"""Application lifecycle REST endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from apptrack.errors import ApptrackError
from apptrack.models.application import (
    ApplicationDraft,
    ApplicationStats,
    ApplicationUpdate,
    ListResult,
    MutationResult,
    StatusChange,
)
from apptrack.routers.deps import get_manager, http_error
from apptrack.services.lifecycle import ApplicationLifecycleManager

router = APIRouter(prefix="/api/applications", tags=["applications"])


@router.get("/", response_model=ListResult)
async def list_applications(
    owner_id: str | None = None,
    manager: ApplicationLifecycleManager = Depends(get_manager),
) -> ListResult:
    try:
        return await manager.list_applications(owner_id)
    except ApptrackError as e:
        raise http_error(e)


@router.post("/", response_model=MutationResult, status_code=201)
async def create_application(
    draft: ApplicationDraft,
    manager: ApplicationLifecycleManager = Depends(get_manager),
) -> MutationResult:
    try:
        return await manager.create(draft)
    except ApptrackError as e:
        raise http_error(e)


@router.get("/stats", response_model=ApplicationStats)
async def application_stats(
    manager: ApplicationLifecycleManager = Depends(get_manager),
) -> ApplicationStats:
    try:
        return await manager.stats()
    except ApptrackError as e:
        raise http_error(e)


@router.post("/{application_id}/advance", response_model=MutationResult)
async def advance_application(
    application_id: str,
    manager: ApplicationLifecycleManager = Depends(get_manager),
) -> MutationResult:
    """Move to the next status in the pipeline (accepted stays accepted)."""
    try:
        return await manager.advance(application_id)
    except ApptrackError as e:
        raise http_error(e)


@router.put("/{application_id}/status", response_model=MutationResult)
async def set_application_status(
    application_id: str,
    change: StatusChange,
    manager: ApplicationLifecycleManager = Depends(get_manager),
) -> MutationResult:
    try:
        return await manager.set_status(application_id, change.status)
    except ApptrackError as e:
        raise http_error(e)


@router.patch("/{application_id}", response_model=MutationResult)
async def update_application(
    application_id: str,
    changes: ApplicationUpdate,
    manager: ApplicationLifecycleManager = Depends(get_manager),
) -> MutationResult:
    try:
        return await manager.update_fields(application_id, changes)
    except ApptrackError as e:
        raise http_error(e)


@router.delete("/{application_id}", response_model=MutationResult)
async def delete_application(
    application_id: str,
    manager: ApplicationLifecycleManager = Depends(get_manager),
) -> MutationResult:
    try:
        return await manager.delete(application_id)
    except ApptrackError as e:
        raise http_error(e)
