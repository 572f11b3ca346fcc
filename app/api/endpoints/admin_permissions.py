# app/api/endpoints/admin_permissions.py

from typing import List

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session
from app.core.activities import ROLE_MANAGEMENT
from app.core.errors import http_error
from app.core.rbac import RequirePermission
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.schemas.permission import AdminPermissionAssign, AdminPermissionRead, RightsUpdate
from app.services.permission_service import (
    assign_admin_permissions,
    initialize_admin_permissions,
    list_admin_permissions,
    update_admin_permission,
)

router = APIRouter(prefix="/api/admin-permissions", tags=["Admin Permissions"])


@router.post("/add", response_model=APIResponse[List[AdminPermissionRead]], status_code=status.HTTP_201_CREATED)
async def add_admin_permissions(
    data: AdminPermissionAssign,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(ROLE_MANAGEMENT, "add")),
):
    try:
        rows = await assign_admin_permissions(
            session, data.admin_id, data.has_access_to, actor_id=current_user.id
        )
    except ValueError as e:
        raise http_error(e)
    return ok(rows, "Admin permissions saved")


@router.post("/initialize/{admin_id}", response_model=APIResponse[List[AdminPermissionRead]])
async def initialize_permissions(
    admin_id: int,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(ROLE_MANAGEMENT, "add")),
):
    """Grant full rights on every registered activity."""
    try:
        rows = await initialize_admin_permissions(session, admin_id, actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(rows, f"Initialized {len(rows)} admin permissions")


@router.get("/all", response_model=APIResponse[List[AdminPermissionRead]])
async def all_admin_permissions(
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ROLE_MANAGEMENT, "view")),
):
    return ok(await list_admin_permissions(session))


@router.get("/admin/{admin_id}", response_model=APIResponse[List[AdminPermissionRead]])
async def permissions_for_admin(
    admin_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ROLE_MANAGEMENT, "view")),
):
    return ok(await list_admin_permissions(session, admin_id))


@router.put("/{permission_id}", response_model=APIResponse[AdminPermissionRead])
async def replace_admin_permission(
    permission_id: int,
    data: RightsUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(ROLE_MANAGEMENT, "edit")),
):
    try:
        row = await update_admin_permission(session, permission_id, data.tokens(), actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(row, "Admin permission updated")
