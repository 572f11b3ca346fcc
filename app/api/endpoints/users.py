# app/api/endpoints/users.py

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session
from app.core.activities import USER_MANAGEMENT
from app.core.errors import http_error
from app.core.rbac import RequirePermission
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.schemas.user import UserCreate, UserRead, UserUpdate
from app.services.auth_service import (
    create_user,
    get_user_by_id,
    list_users,
    toggle_user_status,
    update_user,
)
from app.services.email_service import send_welcome_email

router = APIRouter(prefix="/api/users", tags=["Users"])


async def _get_regular_user(session: AsyncSession, user_id: int) -> User:
    user = await get_user_by_id(session, user_id)
    if not user or UserRole(user.role) != UserRole.user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# -------------------------------------------------------------------
# Create user
# -------------------------------------------------------------------
@router.post("/", response_model=APIResponse[UserRead], status_code=status.HTTP_201_CREATED)
async def create_new_user(
    data: UserCreate,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(USER_MANAGEMENT, "add")),
):
    if data.role != UserRole.user:
        raise HTTPException(status_code=400, detail="Use /api/admins/register to create admin accounts")

    try:
        user = await create_user(
            session,
            firstname=data.firstname,
            lastname=data.lastname,
            username=data.username,
            email=data.email,
            password=data.password,
            role=UserRole.user,
            department_id=data.department_id,
            subrole=data.subrole,
            designation=data.designation,
            is_special=data.is_special,
            mobile_number=data.mobile_number,
        )
    except ValueError as e:
        raise http_error(e)

    background_tasks.add_task(
        send_welcome_email,
        {"name": user.full_name, "email": user.email, "username": user.username, "role": "user"},
    )
    return ok(user, "User created successfully")


# -------------------------------------------------------------------
# List / get
# -------------------------------------------------------------------
@router.get("/", response_model=APIResponse[List[UserRead]])
async def list_all_users(
    department_id: Optional[int] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(USER_MANAGEMENT, "view")),
):
    users = await list_users(session, role=UserRole.user, department_id=department_id, is_active=is_active)
    return ok(users)


@router.get("/{user_id}", response_model=APIResponse[UserRead])
async def get_user(
    user_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(USER_MANAGEMENT, "view")),
):
    return ok(await _get_regular_user(session, user_id))


# -------------------------------------------------------------------
# Update / toggle status
# -------------------------------------------------------------------
@router.put("/{user_id}", response_model=APIResponse[UserRead])
async def update_existing_user(
    user_id: int,
    data: UserUpdate,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(USER_MANAGEMENT, "edit")),
):
    await _get_regular_user(session, user_id)
    if data.role == UserRole.admin:
        raise HTTPException(status_code=400, detail="Users cannot be promoted to admin here")

    try:
        user = await update_user(session, user_id, **data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise http_error(e)
    return ok(user, "User updated successfully")


@router.patch("/{user_id}/status", response_model=APIResponse[UserRead])
async def toggle_status(
    user_id: int,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(USER_MANAGEMENT, "edit")),
):
    await _get_regular_user(session, user_id)
    try:
        user = await toggle_user_status(session, user_id, actor=current_user)
    except ValueError as e:
        raise http_error(e)
    return ok(user, f"User {'enabled' if user.is_active else 'disabled'}")
