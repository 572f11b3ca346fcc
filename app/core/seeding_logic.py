from sqlmodel import select
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import Activity
from app.models.enums import UserRole
from app.models.permission import AdminPermission
from app.services.activity_service import seed_activities
from app.services.auth_service import get_user_by_email, create_user
from app.services.permission_resolver import ACTIONS
from app.services.permission_service import assign_admin_permissions
from app.core.database import AsyncSessionLocal
from app.core.config import settings


# ----------------------------------------------------------------
# SEEDING FUNCTIONS
# ----------------------------------------------------------------
async def seed_all(session: AsyncSession | None = None):
    """Master function: activity registry first, then the bootstrap admin."""
    if session is not None:
        await _seed(session)
        return

    async with AsyncSessionLocal() as session:
        try:
            await _seed(session)
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"❌ Seeding Failed: {e}")
            await session.rollback()


async def _seed(session: AsyncSession):
    await seed_activities(session)
    await seed_admin_user(session)
    logger.success("✨ Seeding Complete.")


async def seed_admin_user(session: AsyncSession):
    if not settings.SUPER_ADMIN_EMAIL or not settings.SUPER_ADMIN_PASSWORD:
        logger.warning("Missing Super Admin credentials in settings. Skipping.")
        return None

    admin = await get_user_by_email(session, settings.SUPER_ADMIN_EMAIL)
    if not admin:
        name = (settings.SUPER_ADMIN_NAME or "Super Admin").split(" ", 1)
        admin = await create_user(
            session=session,
            firstname=name[0],
            lastname=name[1] if len(name) > 1 else "Admin",
            username=settings.SUPER_ADMIN_USERNAME or "superadmin",
            email=settings.SUPER_ADMIN_EMAIL,
            password=settings.SUPER_ADMIN_PASSWORD,
            role=UserRole.admin,
        )
        logger.success("👤 Super Admin created.")

    await grant_missing_admin_rights(session, admin.id)
    return admin


async def grant_missing_admin_rights(session: AsyncSession, admin_id: int) -> int:
    """
    Full rights on every activity the admin has no row for yet. Existing
    rows are left alone so a deliberate revoke survives restarts.
    """
    held = select(AdminPermission.activity_id).where(AdminPermission.admin_id == admin_id)
    result = await session.execute(select(Activity.id).where(Activity.id.not_in(held)))
    missing = list(result.scalars().all())

    if missing:
        await assign_admin_permissions(
            session, admin_id, {activity_id: list(ACTIONS) for activity_id in missing}
        )
        logger.info(f"🔐 Granted full rights on {len(missing)} activities to admin {admin_id}")
    return len(missing)
