# app/api/endpoints/admins.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session
from app.core.activities import ADMIN_MANAGEMENT
from app.core.errors import http_error
from app.core.rbac import RequirePermission
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.schemas.user import AdminCreate, UserRead, UserUpdate
from app.services.auth_service import (
    create_user,
    get_user_by_id,
    list_users,
    toggle_user_status,
    update_user,
)

router = APIRouter(prefix="/api/admins", tags=["Admins"])


async def _get_admin(session: AsyncSession, admin_id: int) -> User:
    admin = await get_user_by_id(session, admin_id)
    if not admin or UserRole(admin.role) != UserRole.admin:
        raise HTTPException(status_code=404, detail="Admin not found")
    return admin


# -------------------------------------------------------------------
# REGISTER ADMIN
# -------------------------------------------------------------------
@router.post("/register", response_model=APIResponse[UserRead], status_code=status.HTTP_201_CREATED)
async def register_admin(
    data: AdminCreate,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ADMIN_MANAGEMENT, "add")),
):
    """New admins start with no rights; assign them via /api/admin-permissions."""
    try:
        admin = await create_user(
            session,
            firstname=data.firstname,
            lastname=data.lastname,
            username=data.username,
            email=data.email,
            password=data.password,
            role=UserRole.admin,
            mobile_number=data.mobile_number,
        )
    except ValueError as e:
        raise http_error(e)
    return ok(admin, "Admin registered successfully")


# -------------------------------------------------------------------
# LIST / GET
# -------------------------------------------------------------------
@router.get("/", response_model=APIResponse[List[UserRead]])
async def list_admins(
    is_active: Optional[bool] = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ADMIN_MANAGEMENT, "view")),
):
    return ok(await list_users(session, role=UserRole.admin, is_active=is_active))


@router.get("/{admin_id}", response_model=APIResponse[UserRead])
async def get_admin(
    admin_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ADMIN_MANAGEMENT, "view")),
):
    return ok(await _get_admin(session, admin_id))


# -------------------------------------------------------------------
# UPDATE / TOGGLE STATUS
# -------------------------------------------------------------------
@router.put("/{admin_id}", response_model=APIResponse[UserRead])
async def update_admin(
    admin_id: int,
    data: UserUpdate,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ADMIN_MANAGEMENT, "edit")),
):
    await _get_admin(session, admin_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("role") not in (None, UserRole.admin):
        raise HTTPException(status_code=400, detail="Admins cannot be demoted here")

    try:
        admin = await update_user(session, admin_id, **changes)
    except ValueError as e:
        raise http_error(e)
    return ok(admin, "Admin updated successfully")


@router.patch("/{admin_id}/status", response_model=APIResponse[UserRead])
async def toggle_admin_status(
    admin_id: int,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(ADMIN_MANAGEMENT, "edit")),
):
    await _get_admin(session, admin_id)
    try:
        admin = await toggle_user_status(session, admin_id, actor=current_user)
    except ValueError as e:
        raise http_error(e)
    return ok(admin, f"Admin {'enabled' if admin.is_active else 'disabled'}")
