# app/api/endpoints/leads.py

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session
from app.core.activities import ARCHIVED_LEADS, LEAD_ASSIGNMENT, LEAD_MANAGEMENT
from app.core.errors import FieldValidationError, http_error
from app.core.rbac import RequirePermission
from app.models.enums import STATUS_GROUP_NAMES, LeadStatus
from app.models.user import User
from app.schemas.common import APIResponse, Page, ok, paginate
from app.schemas.lead import (
    LeadArchive,
    LeadAssign,
    LeadAssignmentHistory,
    LeadAssignmentRead,
    LeadCreate,
    LeadRead,
    LeadStatusUpdate,
    LeadUpdate,
)
from app.services.email_service import send_lead_assignment_email
from app.services.lead_service import (
    archive_lead,
    assign_lead,
    change_lead_status,
    create_lead,
    get_lead,
    get_lead_assignment,
    get_lead_assignment_history,
    list_leads,
    restore_lead,
    update_lead,
)

router = APIRouter(prefix="/api/leads", tags=["Leads"])


def _check_status_group(status_group: Optional[str]):
    if status_group and status_group not in STATUS_GROUP_NAMES:
        raise FieldValidationError.single(
            "status_group",
            f"Unknown status group '{status_group}'. Expected one of: {', '.join(STATUS_GROUP_NAMES)}",
        )


# -------------------------------------------------------------------
# CREATE
# -------------------------------------------------------------------
@router.post("/", response_model=APIResponse[LeadRead], status_code=status.HTTP_201_CREATED)
async def create_new_lead(
    data: LeadCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(LEAD_MANAGEMENT, "add")),
):
    try:
        lead = await create_lead(session, data, actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(lead, "Lead created successfully")


# -------------------------------------------------------------------
# LIST
# -------------------------------------------------------------------
@router.get("/", response_model=APIResponse[Page[LeadRead]])
async def list_all_leads(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status_group: Optional[str] = Query(default=None),
    status_filter: Optional[LeadStatus] = Query(default=None, alias="status"),
    assigned_to: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(LEAD_MANAGEMENT, "view")),
):
    _check_status_group(status_group)
    items, total = await list_leads(
        session,
        page=page,
        limit=limit,
        status_group=status_group,
        status=status_filter,
        assigned_to=assigned_to,
    )
    return ok(paginate(items, total, page, limit))


@router.get("/archived", response_model=APIResponse[Page[LeadRead]])
async def list_archived_leads(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(ARCHIVED_LEADS, "view")),
):
    items, total = await list_leads(session, page=page, limit=limit, archived=True)
    return ok(paginate(items, total, page, limit))


@router.get("/{lead_id}", response_model=APIResponse[LeadRead])
async def get_lead_details(
    lead_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(LEAD_MANAGEMENT, "view")),
):
    try:
        return ok(await get_lead(session, lead_id))
    except ValueError as e:
        raise http_error(e)


# -------------------------------------------------------------------
# UPDATE
# -------------------------------------------------------------------
@router.put("/{lead_id}", response_model=APIResponse[LeadRead])
async def update_existing_lead(
    lead_id: int,
    data: LeadUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(LEAD_MANAGEMENT, "edit")),
):
    try:
        lead = await update_lead(session, lead_id, data.model_dump(exclude_unset=True), actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(lead, "Lead updated successfully")


@router.patch("/{lead_id}/status", response_model=APIResponse[LeadRead])
async def update_lead_status(
    lead_id: int,
    data: LeadStatusUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(LEAD_MANAGEMENT, "edit")),
):
    try:
        lead = await change_lead_status(
            session,
            lead_id,
            data.status,
            actor_id=current_user.id,
            remark=data.remark,
            follow_up_at=data.follow_up_at,
        )
    except ValueError as e:
        raise http_error(e)
    return ok(lead, f"Lead status changed to {lead.status.value}")


@router.patch("/{lead_id}/assign", response_model=APIResponse[LeadRead])
async def assign_lead_to_user(
    lead_id: int,
    data: LeadAssign,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(LEAD_ASSIGNMENT, "edit")),
):
    try:
        lead, assignee = await assign_lead(
            session, lead_id, data.assigned_to, actor_id=current_user.id, remark=data.remark
        )
    except ValueError as e:
        raise http_error(e)

    background_tasks.add_task(
        send_lead_assignment_email,
        {
            "email": assignee.email,
            "name": assignee.full_name,
            "lead_id": lead.id,
            "lead_name": f"{lead.first_name} {lead.last_name}",
            "lead_email": lead.primary_email,
            "lead_phone": lead.contact_numbers[0] if lead.contact_numbers else None,
            "technology": lead.technology,
            "assigned_by": current_user.full_name,
        },
    )
    return ok(lead, f"Lead assigned to {assignee.full_name}")


@router.get("/{lead_id}/assignment", response_model=APIResponse[LeadAssignmentRead])
async def lead_assignment(
    lead_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(LEAD_ASSIGNMENT, "view")),
):
    try:
        return ok(await get_lead_assignment(session, lead_id))
    except ValueError as e:
        raise http_error(e)


@router.get("/{lead_id}/assignment-history", response_model=APIResponse[LeadAssignmentHistory])
async def lead_assignment_history(
    lead_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(LEAD_ASSIGNMENT, "view")),
):
    try:
        return ok(await get_lead_assignment_history(session, lead_id))
    except ValueError as e:
        raise http_error(e)


# -------------------------------------------------------------------
# ARCHIVE / RESTORE
# -------------------------------------------------------------------
@router.patch("/{lead_id}/archive", response_model=APIResponse[LeadRead])
async def archive(
    lead_id: int,
    data: LeadArchive,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(LEAD_MANAGEMENT, "delete")),
):
    try:
        lead = await archive_lead(session, lead_id, data.reason, actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(lead, "Lead archived")


@router.patch("/{lead_id}/restore", response_model=APIResponse[LeadRead])
async def restore(
    lead_id: int,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(ARCHIVED_LEADS, "edit")),
):
    try:
        lead = await restore_lead(session, lead_id, actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(lead, "Lead restored")
