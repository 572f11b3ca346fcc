# app/services/permission_service.py
"""
Permission Store writes and raw reads.

Assignment is an upsert keyed by (grantee, activity) that fully replaces the
four rights. Each tuple is committed on its own; a concurrent insert of the
same tuple surfaces as an IntegrityError and is retried once as an update.
"""

from typing import Mapping, Type

from loguru import logger
from sqlmodel import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import FieldValidationError, NotFoundError
from app.models.activity import Activity
from app.models.department import Department
from app.models.enums import UserRole
from app.models.permission import AdminPermission, RolePermission, SpecialUserPermission
from app.models.user import User, utcnow
from app.services.permission_resolver import ACTIONS, Rights

PermissionRow = RolePermission | AdminPermission | SpecialUserPermission


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------
async def _validate_activity_ids(session: AsyncSession, access_map: Mapping[int, list[str]]):
    ids = list(access_map.keys())
    result = await session.execute(select(Activity.id).where(Activity.id.in_(ids)))
    known = set(result.scalars().all())

    errors = [
        {"field": f"hasAccessTo.{activity_id}", "message": f"Activity {activity_id} does not exist"}
        for activity_id in ids
        if activity_id not in known
    ]
    if errors:
        raise FieldValidationError(errors, message="Unknown activity in hasAccessTo")


def _apply_rights(row: PermissionRow, rights: Rights, actor_id: int | None):
    row.can_view = rights.can_view
    row.can_add = rights.can_add
    row.can_edit = rights.can_edit
    row.can_delete = rights.can_delete
    row.updated_by = actor_id
    row.updated_at = utcnow()


async def _find_row(session: AsyncSession, model: Type[PermissionRow], key: dict) -> PermissionRow | None:
    query = select(model)
    for column, value in key.items():
        query = query.where(getattr(model, column) == value)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def _upsert_rights(
    session: AsyncSession,
    model: Type[PermissionRow],
    key: dict,
    rights: Rights,
    actor_id: int | None,
) -> PermissionRow:
    row = await _find_row(session, model, key)

    if row is not None:
        _apply_rights(row, rights, actor_id)
        await session.commit()
        return row

    row = model(**key, **rights.as_dict(), created_by=actor_id, updated_by=actor_id)
    session.add(row)
    try:
        await session.commit()
    except IntegrityError:
        # Same tuple inserted concurrently: last write wins as an update
        await session.rollback()
        row = await _find_row(session, model, key)
        if row is None:
            raise
        _apply_rights(row, rights, actor_id)
        await session.commit()

    await session.refresh(row)
    return row


async def _assign_many(
    session: AsyncSession,
    model: Type[PermissionRow],
    base_key: dict,
    access_map: Mapping[int, list[str]],
    actor_id: int | None,
) -> list[PermissionRow]:
    await _validate_activity_ids(session, access_map)

    rows = []
    for activity_id, tokens in access_map.items():
        rights = Rights.from_tokens(tokens)
        rows.append(
            await _upsert_rights(session, model, {**base_key, "activity_id": activity_id}, rights, actor_id)
        )

    # A retried insert rolls back the session, which expires rows committed earlier in this batch
    for row in rows:
        await session.refresh(row)

    logger.info(f"🔐 {model.__tablename__}: assigned {len(rows)} activity rights for {base_key}")
    return rows


async def _update_row(
    session: AsyncSession,
    model: Type[PermissionRow],
    row_id: int,
    tokens: list[str],
    actor_id: int | None,
) -> PermissionRow:
    row = await session.get(model, row_id)
    if not row:
        raise NotFoundError("Permission not found")

    _apply_rights(row, Rights.from_tokens(tokens), actor_id)
    await session.commit()
    await session.refresh(row)
    logger.info(f"🔐 {model.__tablename__}#{row_id} replaced with {tokens or 'no access'}")
    return row


# ============================================================================
# ROLE PERMISSIONS (department + subrole)
# ============================================================================
async def assign_role_permissions(
    session: AsyncSession,
    dept_id: int,
    subrole: str,
    access_map: Mapping[int, list[str]],
    actor_id: int | None = None,
) -> list[RolePermission]:
    department = await session.get(Department, dept_id)
    if not department:
        raise NotFoundError("Department not found")

    if subrole not in department.subroles:
        raise FieldValidationError.single(
            "subrole",
            f"Subrole '{subrole}' is not defined for department '{department.department_name}'",
        )

    return await _assign_many(
        session, RolePermission, {"dept_id": dept_id, "subrole": subrole}, access_map, actor_id
    )


async def list_role_permissions(session: AsyncSession) -> list[RolePermission]:
    result = await session.execute(
        select(RolePermission).order_by(RolePermission.dept_id, RolePermission.subrole, RolePermission.activity_id)
    )
    return list(result.scalars().all())


async def get_role_permission(session: AsyncSession, permission_id: int) -> RolePermission | None:
    return await session.get(RolePermission, permission_id)


async def list_department_role_permissions(
    session: AsyncSession,
    dept_id: int,
    subrole: str | None = None,
) -> list[RolePermission]:
    query = select(RolePermission).where(RolePermission.dept_id == dept_id)
    if subrole:
        query = query.where(RolePermission.subrole == subrole)
    result = await session.execute(query.order_by(RolePermission.subrole, RolePermission.activity_id))
    return list(result.scalars().all())


async def update_role_permission(
    session: AsyncSession, permission_id: int, tokens: list[str], actor_id: int | None = None
) -> RolePermission:
    return await _update_row(session, RolePermission, permission_id, tokens, actor_id)


# ============================================================================
# ADMIN PERMISSIONS
# ============================================================================
async def _require_admin(session: AsyncSession, admin_id: int) -> User:
    admin = await session.get(User, admin_id)
    if not admin:
        raise NotFoundError("Admin not found")
    if UserRole(admin.role) != UserRole.admin:
        raise ValueError("Admin permissions can only be assigned to admin accounts")
    return admin


async def assign_admin_permissions(
    session: AsyncSession,
    admin_id: int,
    access_map: Mapping[int, list[str]],
    actor_id: int | None = None,
) -> list[AdminPermission]:
    await _require_admin(session, admin_id)
    return await _assign_many(session, AdminPermission, {"admin_id": admin_id}, access_map, actor_id)


async def initialize_admin_permissions(
    session: AsyncSession, admin_id: int, actor_id: int | None = None
) -> list[AdminPermission]:
    """Grant every right on every registered activity."""
    await _require_admin(session, admin_id)

    result = await session.execute(select(Activity.id).order_by(Activity.id))
    access_map = {activity_id: list(ACTIONS) for activity_id in result.scalars().all()}
    if not access_map:
        return []
    return await _assign_many(session, AdminPermission, {"admin_id": admin_id}, access_map, actor_id)


async def list_admin_permissions(session: AsyncSession, admin_id: int | None = None) -> list[AdminPermission]:
    query = select(AdminPermission)
    if admin_id is not None:
        query = query.where(AdminPermission.admin_id == admin_id)
    result = await session.execute(query.order_by(AdminPermission.admin_id, AdminPermission.activity_id))
    return list(result.scalars().all())


async def update_admin_permission(
    session: AsyncSession, permission_id: int, tokens: list[str], actor_id: int | None = None
) -> AdminPermission:
    return await _update_row(session, AdminPermission, permission_id, tokens, actor_id)


# ============================================================================
# SPECIAL USER PERMISSIONS
# ============================================================================
async def assign_special_user_permissions(
    session: AsyncSession,
    user_id: int,
    access_map: Mapping[int, list[str]],
    actor_id: int | None = None,
) -> list[SpecialUserPermission]:
    user = await session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not user.is_special:
        raise ValueError("Special permissions can only be assigned to special users")

    return await _assign_many(session, SpecialUserPermission, {"user_id": user_id}, access_map, actor_id)


async def list_special_user_permissions(session: AsyncSession, user_id: int) -> list[SpecialUserPermission]:
    result = await session.execute(
        select(SpecialUserPermission)
        .where(SpecialUserPermission.user_id == user_id)
        .order_by(SpecialUserPermission.activity_id)
    )
    return list(result.scalars().all())


async def update_special_user_permission(
    session: AsyncSession, permission_id: int, tokens: list[str], actor_id: int | None = None
) -> SpecialUserPermission:
    return await _update_row(session, SpecialUserPermission, permission_id, tokens, actor_id)
