"""
Admin API Routes - System Administration Endpoints

These endpoints are for internal service integrations (e.g., billing system).
Authentication is via Admin API Key, not user JWTs.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from config import AuthSettings
from src.api.error import ClientError, ServerError
from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import RequestOrigin
from src.app.use_cases.auth.dtos import PruneSessionsResponse, RevokeTenantSessionsResponse
from src.app.use_cases.sessions import ManageSessionsUseCase, PruneSessionsUseCase
from src.depends import get_auth_settings, get_origin, get_unit_of_work

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/tenants/{tenant_id}/revoke-sessions",
    status_code=status.HTTP_200_OK,
    response_model=RevokeTenantSessionsResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def revoke_tenant_sessions(
    tenant_id: UUID,
    uow: UnitOfWork = Depends(get_unit_of_work),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Revoke Tenant Sessions

    Billing system endpoint called when a tenant is suspended; every
    session of every member is revoked.

    Requires: X-Admin-API-Key header

    Raises:
        - 401 Unauthorized: Missing or invalid admin API key
        - 500 Internal Server Error: Server error
    """
    use_case = ManageSessionsUseCase(uow)
    result = await use_case.revoke_tenant_sessions(tenant_id, None, origin)

    if result.is_err():
        error = result.error
        if error.code == "VALIDATION_ERROR":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value


@router.post(
    "/sessions/prune",
    status_code=status.HTTP_200_OK,
    response_model=PruneSessionsResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def prune_sessions(
    retention_days: Optional[int] = Query(None, ge=0),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: AuthSettings = Depends(get_auth_settings),
):
    """
    Prune Expired Sessions

    Deletes session records that expired more than retention_days ago
    (SESSION_RETENTION_DAYS when omitted).

    Requires: X-Admin-API-Key header
    """
    use_case = PruneSessionsUseCase(uow, settings)
    result = await use_case.execute(retention_days)

    if result.is_err():
        error = result.error
        if error.code == "VALIDATION_ERROR":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value
