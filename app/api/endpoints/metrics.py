# app/api/endpoints/metrics.py

import os
import socket
import time

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.api.deps import get_db_session
from app.core.activities import DASHBOARD
from app.core.config import settings
from app.core.database import test_connection
from app.core.rbac import RequirePermission
from app.models.department import Department
from app.models.enums import STATUS_GROUP_NAMES, RecordStatus, UserRole
from app.models.lead import Lead
from app.models.package import Package
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.services.search_service import status_group_condition

router = APIRouter(
    prefix="/api/metrics",
    tags=["System & Metrics"]
)

# Module load time for uptime
START_TIME = time.time()


async def _redis_status() -> str:
    if not settings.REDIS_URL:
        return "Not Configured"

    client = redis.from_url(settings.REDIS_URL, socket_connect_timeout=2)
    try:
        await client.ping()
        return "Connected"
    except redis.RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return "Error"
    finally:
        await client.aclose()


# ===================================================================
# 1. GENERAL SYSTEM HEALTH (public)
# ===================================================================
@router.get("/health")
async def system_health():
    uptime_seconds = int(time.time() - START_TIME)

    try:
        await test_connection()
        db_status = "Connected"
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Health check: database unreachable: {e}")
        db_status = "Error"

    smtp_status = "Not Configured"
    if settings.SMTP_HOST:
        try:
            sock = socket.create_connection((settings.SMTP_HOST, settings.SMTP_PORT), timeout=2)
            sock.close()
            smtp_status = "Connected"
        except OSError:
            smtp_status = "Error"

    return {
        "status": "Online",
        "uptime_seconds": uptime_seconds,
        "database": db_status,
        "smtp_server": smtp_status,
        "redis": await _redis_status(),
        "search": "Elasticsearch" if settings.ELASTICSEARCH_URL else "Database",
        "environment": os.environ.get("ENV", settings.ENV),
    }


# ===================================================================
# 2. DASHBOARD STATS ("Dashboard" view)
# ===================================================================
@router.get("/dashboard-stats", response_model=APIResponse[dict])
async def get_dashboard_stats(
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(DASHBOARD, "view")),
):
    live = Lead.is_archived.is_(False)

    # 1. Leads per status
    status_res = await session.execute(
        select(Lead.status, func.count(Lead.id)).where(live).group_by(Lead.status)
    )
    by_status = {getattr(row[0], "value", row[0]): row[1] for row in status_res.all()}

    # 2. Leads per pipeline group
    by_group = {}
    for group in STATUS_GROUP_NAMES:
        count_res = await session.execute(
            select(func.count(Lead.id)).where(live, status_group_condition(group))
        )
        by_group[group] = count_res.scalar_one()

    unassigned = (
        await session.execute(select(func.count(Lead.id)).where(live, Lead.assigned_to.is_(None)))
    ).scalar_one()
    archived = (
        await session.execute(select(func.count(Lead.id)).where(Lead.is_archived.is_(True)))
    ).scalar_one()

    # 3. Directory counts
    active_users = (
        await session.execute(
            select(func.count(User.id)).where(User.role == UserRole.user, User.is_active.is_(True))
        )
    ).scalar_one()
    active_departments = (
        await session.execute(
            select(func.count(Department.id)).where(Department.status == RecordStatus.active)
        )
    ).scalar_one()
    active_packages = (
        await session.execute(select(func.count(Package.id)).where(Package.status == RecordStatus.active))
    ).scalar_one()

    return ok({
        "leads": {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_group": by_group,
            "unassigned": unassigned,
            "archived": archived,
        },
        "users": {"active": active_users},
        "departments": {"active": active_departments},
        "packages": {"active": active_packages},
    })
