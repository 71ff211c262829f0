"""Request-scoped dependencies shared by the REST routers."""
from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Header, HTTPException, Request

from apptrack.db import get_connection
from apptrack.errors import (
    ApplicationNotFoundError,
    ApptrackError,
    MutationInFlightError,
    NotAuthenticatedError,
    RemoteUnavailableError,
    SuggestionUnavailableError,
    ValidationFailedError,
)
from apptrack.models.identity import Identity
from apptrack.services.lifecycle import ApplicationLifecycleManager, InFlightGuard
from apptrack.services.local_store import LocalStore
from apptrack.services.remote_store import RemoteStore
from apptrack.services.session import SessionContext


def get_identity(
    x_user_id: str | None = Header(None),
    x_ephemeral: bool = Header(False),
    authorization: str | None = Header(None),
) -> Identity:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip() or None
    return Identity(user_id=x_user_id, is_ephemeral=x_ephemeral, access_token=token)


def get_local_store() -> LocalStore:
    return LocalStore(get_connection())


def get_remote_store(request: Request, identity: Identity = Depends(get_identity)) -> RemoteStore:
    return RemoteStore(request.app.state.http_client, identity.access_token)


def get_guard(request: Request) -> InFlightGuard:
    return request.app.state.guard


async def get_manager(
    identity: Identity = Depends(get_identity),
    remote: RemoteStore = Depends(get_remote_store),
    local: LocalStore = Depends(get_local_store),
    guard: InFlightGuard = Depends(get_guard),
) -> AsyncIterator[ApplicationLifecycleManager]:
    manager = ApplicationLifecycleManager(SessionContext(identity), remote, local, guard)
    try:
        yield manager
    finally:
        manager.close()


_STATUS_CODES: dict[type[ApptrackError], int] = {
    ApplicationNotFoundError: 404,
    ValidationFailedError: 422,
    MutationInFlightError: 409,
    NotAuthenticatedError: 401,
    RemoteUnavailableError: 503,
    SuggestionUnavailableError: 502,
}


def http_error(error: ApptrackError) -> HTTPException:
    """Translate a typed apptrack error into the matching HTTP response."""
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
