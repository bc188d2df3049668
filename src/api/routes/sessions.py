from typing import List

from fastapi import APIRouter, Depends, status

from src.api.error import ClientError, ServerError
from src.app.services.token_codec import AccessClaims
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.app.use_cases.auth import RequestOrigin
from src.app.use_cases.auth.dtos import (
    RevokeSessionResponse,
    RevokeTenantSessionsResponse,
    SessionInfo,
)
from src.app.use_cases.sessions import ManageSessionsUseCase
from src.depends import get_current_user, get_origin, get_unit_of_work, get_user_cache
from src.domain.permissions import SESSIONS_REVOKE_TENANT, has_capability
from src.libs.result import Error

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get("", status_code=status.HTTP_200_OK, response_model=List[SessionInfo])
async def list_sessions(
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    List Active Sessions

    Returns the caller's active sessions, newest first. The session the
    request was made from is flagged with is_current.
    """
    use_case = ManageSessionsUseCase(uow)
    result = await use_case.list_active_sessions(
        current_user.user_id, current_user.session_id
    )

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.delete(
    "/{session_id}", status_code=status.HTTP_200_OK, response_model=RevokeSessionResponse
)
async def revoke_session(
    session_id: str,
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    user_cache: IUserCache = Depends(get_user_cache),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Sign Out A Device

    Revokes one of the caller's sessions by id.

    Raises:
        - 404 Not Found: No such session for this user
    """
    use_case = ManageSessionsUseCase(uow, user_cache)
    result = await use_case.revoke_session(
        current_user.user_id, current_user.tenant_id, session_id, origin
    )

    if result.is_err():
        error = result.error
        if error.code == "SESSION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


@router.post(
    "/tenant/revoke",
    status_code=status.HTTP_200_OK,
    response_model=RevokeTenantSessionsResponse,
)
async def revoke_tenant_sessions(
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Revoke Every Session Of The Caller's Organization

    Requires the sessions:revoke_tenant capability (org admins).

    Raises:
        - 403 Forbidden: Missing capability
        - 400 Bad Request: Caller has no tenant (super admin)
    """
    if not has_capability(current_user.role, SESSIONS_REVOKE_TENANT):
        raise ClientError(
            Error("FORBIDDEN", "Not allowed to revoke organization sessions"),
            status_code=status.HTTP_403_FORBIDDEN,
        )

    use_case = ManageSessionsUseCase(uow)
    result = await use_case.revoke_tenant_sessions(
        current_user.tenant_id, current_user.user_id, origin
    )

    if result.is_err():
        error = result.error
        if error.code == "VALIDATION_ERROR":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value
