# app/api/endpoints/special_user_permissions.py

from typing import List

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session
from app.core.activities import ROLE_MANAGEMENT
from app.core.errors import http_error
from app.core.rbac import RequirePermission
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.schemas.permission import RightsUpdate, SpecialUserPermissionAssign, SpecialUserPermissionRead
from app.services.permission_service import (
    assign_special_user_permissions,
    list_special_user_permissions,
    update_special_user_permission,
)

router = APIRouter(prefix="/api/special-user-permission", tags=["Special User Permissions"])


@router.post(
    "/create/{user_id}",
    response_model=APIResponse[List[SpecialUserPermissionRead]],
    status_code=status.HTTP_201_CREATED,
)
async def create_special_permissions(
    user_id: int,
    data: SpecialUserPermissionAssign,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(ROLE_MANAGEMENT, "add")),
):
    # A special user's rows are their entire access; department rows are ignored
    try:
        rows = await assign_special_user_permissions(
            session, user_id, data.has_access_to, actor_id=current_user.id
        )
    except ValueError as e:
        raise http_error(e)
    return ok(rows, "Special user permissions saved")


@router.get("/{user_id}", response_model=APIResponse[List[SpecialUserPermissionRead]])
async def special_permissions_for_user(
    user_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ROLE_MANAGEMENT, "view")),
):
    return ok(await list_special_user_permissions(session, user_id))


@router.put("/{permission_id}", response_model=APIResponse[SpecialUserPermissionRead])
async def replace_special_permission(
    permission_id: int,
    data: RightsUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(ROLE_MANAGEMENT, "edit")),
):
    try:
        row = await update_special_user_permission(
            session, permission_id, data.tokens(), actor_id=current_user.id
        )
    except ValueError as e:
        raise http_error(e)
    return ok(row, "Special user permission updated")
