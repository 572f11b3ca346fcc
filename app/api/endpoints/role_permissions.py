# app/api/endpoints/role_permissions.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session
from app.core.activities import ROLE_MANAGEMENT
from app.core.errors import http_error
from app.core.grantee import DepartmentRoleGrantee
from app.core.rbac import RequirePermission
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.schemas.permission import MatrixEntry, RightsUpdate, RolePermissionAssign, RolePermissionRead
from app.services.department_service import get_department
from app.services.permission_resolver import resolve_permissions
from app.services.permission_service import (
    assign_role_permissions,
    get_role_permission,
    list_department_role_permissions,
    list_role_permissions,
    update_role_permission,
)

router = APIRouter(prefix="/api/role-permissions", tags=["Role Permissions"])


# -------------------------------------------------------------------
# ASSIGN
# -------------------------------------------------------------------
@router.post("/add", response_model=APIResponse[List[RolePermissionRead]], status_code=status.HTTP_201_CREATED)
async def add_role_permissions(
    data: RolePermissionAssign,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(ROLE_MANAGEMENT, "add")),
):
    """
    Body: `{dept_id, subrole, hasAccessTo: {activityId: ["view", "add", ...]}}`.
    Each listed activity's rights are replaced; unlisted activities are untouched.
    """
    try:
        rows = await assign_role_permissions(
            session, data.dept_id, data.subrole, data.has_access_to, actor_id=current_user.id
        )
    except ValueError as e:
        raise http_error(e)
    return ok(rows, "Role permissions saved")


# -------------------------------------------------------------------
# READ
# -------------------------------------------------------------------
@router.get("/all", response_model=APIResponse[List[RolePermissionRead]])
async def all_role_permissions(
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ROLE_MANAGEMENT, "view")),
):
    return ok(await list_role_permissions(session))


@router.get("/department/{dept_id}", response_model=APIResponse[List[RolePermissionRead]])
async def department_role_permissions(
    dept_id: int,
    role: Optional[str] = Query(default=None, description="Subrole; omit for every subrole"),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ROLE_MANAGEMENT, "view")),
):
    return ok(await list_department_role_permissions(session, dept_id, role))


@router.get("/matrix/{dept_id}", response_model=APIResponse[List[MatrixEntry]])
async def department_matrix(
    dept_id: int,
    role: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ROLE_MANAGEMENT, "view")),
):
    """Resolved rights for every activity; without `role` the subroles are OR-ed together."""
    if not await get_department(session, dept_id):
        raise HTTPException(status_code=404, detail="Department not found")

    matrix = await resolve_permissions(session, DepartmentRoleGrantee(department_id=dept_id, subrole=role))
    return ok(matrix.as_list())


@router.get("/{permission_id}", response_model=APIResponse[RolePermissionRead])
async def role_permission_detail(
    permission_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ROLE_MANAGEMENT, "view")),
):
    row = await get_role_permission(session, permission_id)
    if not row:
        raise HTTPException(status_code=404, detail="Permission not found")
    return ok(row)


# -------------------------------------------------------------------
# REPLACE
# -------------------------------------------------------------------
@router.put("/{permission_id}", response_model=APIResponse[RolePermissionRead])
async def replace_role_permission(
    permission_id: int,
    data: RightsUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(ROLE_MANAGEMENT, "edit")),
):
    try:
        row = await update_role_permission(session, permission_id, data.tokens(), actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(row, "Role permission updated")
