# app/api/endpoints/activities.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.core.activities import ACTIVITY_MANAGEMENT
from app.core.errors import http_error
from app.core.rbac import RequirePermission
from app.models.enums import RecordStatus
from app.models.user import User
from app.schemas.activity import ActivityCreate, ActivityRead, ActivityUpdate
from app.schemas.common import APIResponse, ok
from app.services.activity_service import (
    create_activity,
    get_activity,
    get_activity_by_name,
    list_activities,
    toggle_activity_status,
    update_activity,
)

router = APIRouter(prefix="/api/activity", tags=["Activities"])


# ----------------------------------------------------------
# REGISTRY READS (any authenticated user; the UI needs the catalogue)
# ----------------------------------------------------------
@router.get("/all", response_model=APIResponse[List[ActivityRead]])
async def list_all_activities(
    status_filter: Optional[RecordStatus] = Query(default=RecordStatus.active, alias="status"),
    include_all: bool = Query(default=False),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(get_current_user),
):
    return ok(await list_activities(session, status=None if include_all else status_filter))


@router.get("/name/{name}", response_model=APIResponse[ActivityRead])
async def get_activity_named(
    name: str,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(get_current_user),
):
    activity = await get_activity_by_name(session, name)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    return ok(activity)


@router.get("/{activity_id}", response_model=APIResponse[ActivityRead])
async def get_activity_by_id(
    activity_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(get_current_user),
):
    activity = await get_activity(session, activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    return ok(activity)


# ----------------------------------------------------------
# MAINTENANCE
# ----------------------------------------------------------
@router.post("/add", response_model=APIResponse[ActivityRead], status_code=status.HTTP_201_CREATED)
async def add_activity(
    data: ActivityCreate,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ACTIVITY_MANAGEMENT, "add")),
):
    try:
        activity = await create_activity(session, data.name, data.category, data.description)
    except ValueError as e:
        raise http_error(e)
    return ok(activity, "Activity created successfully")


@router.put("/{activity_id}", response_model=APIResponse[ActivityRead])
async def edit_activity(
    activity_id: int,
    data: ActivityUpdate,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ACTIVITY_MANAGEMENT, "edit")),
):
    try:
        activity = await update_activity(session, activity_id, **data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise http_error(e)
    return ok(activity, "Activity updated successfully")


@router.patch("/{activity_id}/status", response_model=APIResponse[ActivityRead])
async def toggle_status(
    activity_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ACTIVITY_MANAGEMENT, "edit")),
):
    """Inactive activities resolve to no access for every grantee."""
    try:
        activity = await toggle_activity_status(session, activity_id)
    except ValueError as e:
        raise http_error(e)
    return ok(activity, f"Activity is now {activity.status.value}")
