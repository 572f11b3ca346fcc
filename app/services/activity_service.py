# app/services/activity_service.py

from loguru import logger
from sqlmodel import select
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.activities import ACTIVITY_REGISTRY
from app.core.errors import ConflictError, NotFoundError
from app.models.activity import Activity
from app.models.enums import RecordStatus


# ============================================================================
# READ
# ============================================================================
async def list_activities(
    session: AsyncSession,
    status: RecordStatus | None = RecordStatus.active,
) -> list[Activity]:
    """Ordered by category then id. `status=None` returns every activity."""
    query = select(Activity)
    if status is not None:
        query = query.where(Activity.status == status)
    query = query.order_by(Activity.category, Activity.id)

    result = await session.execute(query)
    return list(result.scalars().all())


async def get_activity(session: AsyncSession, activity_id: int) -> Activity | None:
    return await session.get(Activity, activity_id)


async def get_activity_by_name(session: AsyncSession, name: str) -> Activity | None:
    result = await session.execute(select(Activity).where(Activity.name == name))
    return result.scalar_one_or_none()


# ============================================================================
# SEED (idempotent)
# ============================================================================
async def seed_activities(session: AsyncSession) -> int:
    result = await session.execute(select(Activity.name))
    existing = set(result.scalars().all())

    created = 0
    for entry in ACTIVITY_REGISTRY:
        if entry["name"] in existing:
            continue
        session.add(Activity(**entry))
        created += 1

    if created:
        await session.commit()
        logger.info(f"🌱 Seeded {created} activities")
    return created


# ============================================================================
# ADMIN MAINTENANCE
# ============================================================================
async def _ensure_unique_name(session: AsyncSession, name: str, exclude_id: int | None = None):
    query = select(Activity).where(func.lower(Activity.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.where(Activity.id != exclude_id)
    result = await session.execute(query)
    if result.scalar_one_or_none():
        raise ConflictError(f"Activity '{name}' already exists")


async def create_activity(
    session: AsyncSession,
    name: str,
    category: str,
    description: str | None = None,
) -> Activity:
    await _ensure_unique_name(session, name)

    activity = Activity(name=name.strip(), category=category.strip(), description=description)
    session.add(activity)
    await session.commit()
    await session.refresh(activity)
    logger.info(f"Activity created: {activity.name} ({activity.category})")
    return activity


async def update_activity(session: AsyncSession, activity_id: int, **changes) -> Activity:
    activity = await get_activity(session, activity_id)
    if not activity:
        raise NotFoundError("Activity not found")

    if changes.get("name"):
        await _ensure_unique_name(session, changes["name"], exclude_id=activity_id)
        activity.name = changes["name"].strip()
    if changes.get("category"):
        activity.category = changes["category"].strip()
    if "description" in changes:
        activity.description = changes["description"]

    await session.commit()
    await session.refresh(activity)
    return activity


async def toggle_activity_status(session: AsyncSession, activity_id: int) -> Activity:
    activity = await get_activity(session, activity_id)
    if not activity:
        raise NotFoundError("Activity not found")

    activity.status = (
        RecordStatus.inactive if activity.status == RecordStatus.active else RecordStatus.active
    )
    await session.commit()
    await session.refresh(activity)
    logger.info(f"Activity '{activity.name}' is now {activity.status.value}")
    return activity
