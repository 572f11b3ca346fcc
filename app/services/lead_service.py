# app/services/lead_service.py

from datetime import datetime, timezone

from loguru import logger
from sqlmodel import select
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError
from app.models.enums import LeadStatus, UserRole
from app.models.lead import Lead, LeadAssignment
from app.models.user import User, utcnow
from app.schemas.lead import LeadCreate
from app.services.search_service import index_lead, process_phone_number, status_group_condition


def _utc(value: datetime | None) -> datetime | None:
    # Stored follow-ups are UTC; naive input is taken as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _remark(text: str, actor_id: int | None) -> dict:
    return {
        "text": text.strip(),
        "created_by": actor_id,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


async def _ensure_unique_primary_email(session: AsyncSession, email: str, exclude_id: int | None = None):
    query = select(Lead).where(func.lower(Lead.primary_email) == email.lower())
    if exclude_id is not None:
        query = query.where(Lead.id != exclude_id)
    if (await session.execute(query)).scalar_one_or_none():
        raise ConflictError("A lead with this primary email already exists")


async def _save(session: AsyncSession, lead: Lead) -> Lead:
    lead.updated_at = utcnow()
    session.add(lead)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("A lead with this primary email already exists")
    await session.refresh(lead)
    await index_lead(session, lead)
    return lead


# ============================================================================
# CREATE
# ============================================================================
async def create_lead(session: AsyncSession, data: LeadCreate, actor_id: int | None) -> Lead:
    await _ensure_unique_primary_email(session, data.primary_email)

    lead = Lead(
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        contact_numbers=data.contact_numbers,
        processed_contact_numbers=[process_phone_number(n) for n in data.contact_numbers],
        emails=[str(e).lower() for e in data.emails],
        primary_email=str(data.primary_email).lower(),
        linkedin_id=str(data.linkedin_id) if data.linkedin_id else None,
        technology=data.technology,
        country=data.country.strip(),
        country_code=data.country_code.strip().upper(),
        visa_status=data.visa_status,
        status=data.status,
        lead_source=data.lead_source,
        remarks=[_remark(r, actor_id) for r in data.remarks if r.strip()],
        follow_up_at=_utc(data.follow_up_at),
        created_by=actor_id,
        updated_by=actor_id,
    )
    lead = await _save(session, lead)
    logger.info(f"📇 Lead {lead.id} created by user {actor_id}")
    return lead


# ============================================================================
# READ
# ============================================================================
async def get_lead(session: AsyncSession, lead_id: int) -> Lead:
    lead = await session.get(Lead, lead_id)
    if not lead:
        raise NotFoundError("Lead not found")
    return lead


async def list_leads(
    session: AsyncSession,
    page: int = 1,
    limit: int = 10,
    status_group: str | None = None,
    status: LeadStatus | None = None,
    assigned_to: int | None = None,
    archived: bool = False,
) -> tuple[list[Lead], int]:
    stmt = select(Lead).where(Lead.is_archived.is_(archived))

    if status_group:
        stmt = stmt.where(status_group_condition(status_group))
    if status is not None:
        stmt = stmt.where(Lead.status == status)
    if assigned_to is not None:
        stmt = stmt.where(Lead.assigned_to == assigned_to)

    total = (await session.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    order = Lead.archived_at.desc() if archived else Lead.id.desc()
    result = await session.execute(stmt.order_by(order).offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), total


# ============================================================================
# UPDATE
# ============================================================================
async def update_lead(session: AsyncSession, lead_id: int, changes: dict, actor_id: int | None) -> Lead:
    lead = await get_lead(session, lead_id)
    if lead.is_archived:
        raise ValueError("Archived leads cannot be edited; restore the lead first")

    if changes.get("primary_email"):
        await _ensure_unique_primary_email(session, str(changes["primary_email"]), exclude_id=lead_id)
        lead.primary_email = str(changes["primary_email"]).lower()

    if changes.get("contact_numbers") is not None:
        lead.contact_numbers = changes["contact_numbers"]
        lead.processed_contact_numbers = [process_phone_number(n) for n in changes["contact_numbers"]]
    if changes.get("emails") is not None:
        lead.emails = [str(e).lower() for e in changes["emails"]]
    if "linkedin_id" in changes:
        lead.linkedin_id = str(changes["linkedin_id"]) if changes["linkedin_id"] else None
    if changes.get("country_code"):
        lead.country_code = changes["country_code"].strip().upper()

    if changes.get("follow_up_at") is not None:
        lead.follow_up_at = _utc(changes["follow_up_at"])

    for field in ("first_name", "last_name", "technology", "country", "visa_status", "lead_source"):
        if changes.get(field) is not None:
            setattr(lead, field, changes[field])

    lead.updated_by = actor_id
    return await _save(session, lead)


async def change_lead_status(
    session: AsyncSession,
    lead_id: int,
    status: LeadStatus,
    actor_id: int | None,
    remark: str | None = None,
    follow_up_at: datetime | None = None,
) -> Lead:
    lead = await get_lead(session, lead_id)
    if lead.is_archived:
        raise ValueError("Archived leads cannot change status")

    previous = lead.status
    lead.status = status
    if follow_up_at is not None:
        lead.follow_up_at = _utc(follow_up_at)
    if remark and remark.strip():
        lead.remarks = [*lead.remarks, _remark(remark, actor_id)]
    lead.updated_by = actor_id

    lead = await _save(session, lead)
    logger.info(f"Lead {lead.id} status {getattr(previous, 'value', previous)} -> {status.value}")
    return lead


async def _find_assignment(session: AsyncSession, lead_id: int) -> LeadAssignment | None:
    result = await session.execute(select(LeadAssignment).where(LeadAssignment.lead_id == lead_id))
    return result.scalar_one_or_none()


async def assign_lead(
    session: AsyncSession,
    lead_id: int,
    assignee_id: int,
    actor_id: int | None,
    remark: str | None = None,
) -> tuple[Lead, User]:
    lead = await get_lead(session, lead_id)
    if lead.is_archived:
        raise ValueError("Archived leads cannot be assigned")
    if lead.assigned_to == assignee_id:
        raise ValueError("Lead is already assigned to this user")

    assignee = await session.get(User, assignee_id)
    if not assignee:
        raise NotFoundError("Assignee not found")
    if not assignee.is_active:
        raise ValueError("Cannot assign a lead to a disabled account")
    if UserRole(assignee.role) == UserRole.admin:
        raise ValueError("Leads can only be assigned to users")

    assignment = await _find_assignment(session, lead.id)
    if assignment is None:
        assignment = LeadAssignment(lead_id=lead.id, assigned_to_id=assignee.id, created_by=actor_id)

    previous = lead.assigned_to
    if previous is not None:
        assignment.previous_assigned_id = previous
        assignment.all_previous_assigned_ids = [*assignment.all_previous_assigned_ids, previous]
    assignment.assigned_to_id = assignee.id
    assignment.updated_by = actor_id
    assignment.updated_at = utcnow()
    session.add(assignment)

    lead.assigned_to = assignee.id
    if remark and remark.strip():
        lead.remarks = [*lead.remarks, _remark(remark, actor_id)]
    lead.updated_by = actor_id

    lead = await _save(session, lead)
    logger.info(f"Lead {lead.id} assigned to user {assignee.id} (previously {previous})")
    return lead, assignee


async def _users_by_id(session: AsyncSession, ids) -> dict[int, User]:
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}


async def get_lead_assignment(session: AsyncSession, lead_id: int) -> dict:
    await get_lead(session, lead_id)
    assignment = await _find_assignment(session, lead_id)
    if assignment is None:
        raise NotFoundError("No active assignment found for this lead")

    users = await _users_by_id(
        session, [assignment.assigned_to_id, assignment.previous_assigned_id, assignment.created_by]
    )
    return {
        "id": assignment.id,
        "lead_id": assignment.lead_id,
        "assigned_to": users.get(assignment.assigned_to_id),
        "previous_assigned": users.get(assignment.previous_assigned_id),
        "created_by": users.get(assignment.created_by),
        "created_at": assignment.created_at,
        "updated_at": assignment.updated_at,
    }


async def get_lead_assignment_history(session: AsyncSession, lead_id: int) -> dict:
    """Current assignee and every earlier one, most recent first. Empty for a never-assigned lead."""
    await get_lead(session, lead_id)
    assignment = await _find_assignment(session, lead_id)
    if assignment is None:
        return {"lead_id": lead_id, "current": None, "previous": []}

    earlier = list(reversed(assignment.all_previous_assigned_ids))
    users = await _users_by_id(session, [assignment.assigned_to_id, *earlier])
    return {
        "lead_id": lead_id,
        "current": users.get(assignment.assigned_to_id),
        "previous": [users[i] for i in earlier if i in users],
    }


# ============================================================================
# ARCHIVE / RESTORE
# ============================================================================
async def archive_lead(session: AsyncSession, lead_id: int, reason: str, actor_id: int | None) -> Lead:
    lead = await get_lead(session, lead_id)
    if lead.is_archived:
        raise ValueError("Lead is already archived")

    lead.is_archived = True
    lead.archive_reason = reason.strip()
    lead.archived_at = datetime.now(timezone.utc)
    lead.updated_by = actor_id
    return await _save(session, lead)


async def restore_lead(session: AsyncSession, lead_id: int, actor_id: int | None) -> Lead:
    lead = await get_lead(session, lead_id)
    if not lead.is_archived:
        raise ValueError("Lead is not archived")

    lead.is_archived = False
    lead.archive_reason = None
    lead.archived_at = None
    lead.updated_by = actor_id
    return await _save(session, lead)
