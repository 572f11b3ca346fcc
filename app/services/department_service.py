# app/services/department_service.py

from loguru import logger
from sqlmodel import select
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError
from app.models.department import Department
from app.models.enums import RecordStatus
from app.models.user import User


# ------------------------------------------------------------
# Lookups
# ------------------------------------------------------------
async def get_department(session: AsyncSession, department_id: int) -> Department | None:
    return await session.get(Department, department_id)


async def get_department_by_name(session: AsyncSession, name: str) -> Department | None:
    result = await session.execute(
        select(Department).where(func.lower(Department.department_name) == name.strip().lower())
    )
    return result.scalar_one_or_none()


async def list_departments(session: AsyncSession, include_inactive: bool = False) -> list[Department]:
    """
    Default listing (dropdowns) hides inactive departments. Their permission
    rows stay in place and remain reachable by id.
    """
    query = select(Department)
    if not include_inactive:
        query = query.where(Department.status == RecordStatus.active)
    query = query.order_by(Department.sequence_number, Department.id)

    result = await session.execute(query)
    return list(result.scalars().all())


async def _ensure_single_sales_team(session: AsyncSession, exclude_id: int | None = None):
    query = select(Department).where(Department.is_sales_team.is_(True))
    if exclude_id is not None:
        query = query.where(Department.id != exclude_id)
    result = await session.execute(query)
    existing = result.scalars().first()
    if existing:
        raise ConflictError(
            f"'{existing.department_name}' is already marked as the sales team"
        )


# ------------------------------------------------------------
# Create
# ------------------------------------------------------------
async def create_department(
    session: AsyncSession,
    department_name: str,
    subroles: list[str],
    is_sales_team: bool = False,
) -> Department:
    if await get_department_by_name(session, department_name):
        raise ConflictError(f"Department '{department_name}' already exists")

    if is_sales_team:
        await _ensure_single_sales_team(session)

    max_seq = (await session.execute(select(func.max(Department.sequence_number)))).scalar()

    department = Department(
        department_name=department_name.strip(),
        subroles=list(subroles),
        is_sales_team=is_sales_team,
        sequence_number=(max_seq or 0) + 1,
    )
    session.add(department)
    await session.commit()
    await session.refresh(department)

    logger.info(f"🏢 Department created: {department.department_name} {department.subroles}")
    return department


# ------------------------------------------------------------
# Update
# ------------------------------------------------------------
async def update_department(
    session: AsyncSession,
    department_id: int,
    department_name: str | None = None,
    subroles: list[str] | None = None,
    is_sales_team: bool | None = None,
) -> Department:
    department = await get_department(session, department_id)
    if not department:
        raise NotFoundError("Department not found")

    if department_name and department_name.strip() != department.department_name:
        clash = await get_department_by_name(session, department_name)
        if clash and clash.id != department_id:
            raise ConflictError(f"Department '{department_name}' already exists")
        department.department_name = department_name.strip()

    if subroles is not None:
        removed = set(department.subroles) - set(subroles)
        if removed:
            result = await session.execute(
                select(User.subrole)
                .where(User.department_id == department_id, User.subrole.in_(sorted(removed)))
                .distinct()
            )
            in_use = sorted(result.scalars().all())
            if in_use:
                raise ConflictError(
                    f"Subrole(s) still assigned to users: {', '.join(in_use)}"
                )
        department.subroles = list(subroles)

    if is_sales_team is not None:
        if is_sales_team and not department.is_sales_team:
            await _ensure_single_sales_team(session, exclude_id=department_id)
        department.is_sales_team = is_sales_team

    await session.commit()
    await session.refresh(department)
    return department


async def toggle_department_status(session: AsyncSession, department_id: int) -> Department:
    department = await get_department(session, department_id)
    if not department:
        raise NotFoundError("Department not found")

    department.status = (
        RecordStatus.inactive if department.status == RecordStatus.active else RecordStatus.active
    )
    await session.commit()
    await session.refresh(department)

    logger.info(f"Department '{department.department_name}' is now {department.status.value}")
    return department


async def reorder_departments(session: AsyncSession, order: list[int]) -> list[Department]:
    if len(set(order)) != len(order):
        raise ValueError("Department order contains duplicates")

    result = await session.execute(select(Department).where(Department.id.in_(order)))
    by_id = {d.id: d for d in result.scalars().all()}

    missing = [str(i) for i in order if i not in by_id]
    if missing:
        raise NotFoundError(f"Unknown department id(s): {', '.join(missing)}")

    for position, department_id in enumerate(order, start=1):
        by_id[department_id].sequence_number = position

    await session.commit()
    return await list_departments(session, include_inactive=True)
