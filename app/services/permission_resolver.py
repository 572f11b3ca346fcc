# app/services/permission_resolver.py
"""
Permission Resolver and the pure Enforcement Gate decision.

`resolve_permissions` turns a grantee into a `PermissionMatrix` holding a
rights record for every activity in the registry. Lookups on the matrix are
total: an activity with no permission row, an inactive activity, or a name
that does not exist all resolve to `DENY_ALL`. Nothing here ever returns
None for a rights lookup.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping

from loguru import logger
from sqlmodel import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.grantee import (
    AdminGrantee,
    DepartmentRoleGrantee,
    Grantee,
    SpecialUserGrantee,
)
from app.models.activity import Activity
from app.models.department import Department
from app.models.enums import RecordStatus, UserRole
from app.models.permission import AdminPermission, RolePermission, SpecialUserPermission
from app.models.user import User
from app.services.activity_service import list_activities

ACTIONS = ("view", "add", "edit", "delete")


# ------------------------------------------------------------
# Rights record
# ------------------------------------------------------------
@dataclass(frozen=True)
class Rights:
    can_view: bool = False
    can_add: bool = False
    can_edit: bool = False
    can_delete: bool = False

    def allows(self, action: str) -> bool:
        if action not in ACTIONS:
            return False
        return getattr(self, f"can_{action}")

    @classmethod
    def from_tokens(cls, tokens: Iterable[str]) -> "Rights":
        tokens = set(tokens)
        unknown = tokens.difference(ACTIONS)
        if unknown:
            raise ValueError(f"Unknown permission token(s): {', '.join(sorted(unknown))}")
        return cls(**{f"can_{action}": action in tokens for action in ACTIONS})

    @classmethod
    def from_row(cls, row) -> "Rights":
        return cls(
            can_view=bool(row.can_view),
            can_add=bool(row.can_add),
            can_edit=bool(row.can_edit),
            can_delete=bool(row.can_delete),
        )

    def to_tokens(self) -> list[str]:
        return [action for action in ACTIONS if self.allows(action)]

    def union(self, other: "Rights") -> "Rights":
        return Rights(
            can_view=self.can_view or other.can_view,
            can_add=self.can_add or other.can_add,
            can_edit=self.can_edit or other.can_edit,
            can_delete=self.can_delete or other.can_delete,
        )

    def as_dict(self) -> dict:
        return {
            "can_view": self.can_view,
            "can_add": self.can_add,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
        }


DENY_ALL = Rights()


# ------------------------------------------------------------
# Matrix
# ------------------------------------------------------------
class PermissionMatrix:
    """activity -> Rights for one grantee, total over the registry."""

    def __init__(self, activities: Iterable[Activity], granted: Mapping[int, Rights]):
        self._activities: list[Activity] = list(activities)
        self._by_id: dict[int, Rights] = {}
        self._id_by_name: dict[str, int] = {}

        for activity in self._activities:
            if activity.status == RecordStatus.active:
                rights = granted.get(activity.id, DENY_ALL)
            else:
                rights = DENY_ALL
            self._by_id[activity.id] = rights
            self._id_by_name[activity.name] = activity.id

    @classmethod
    def deny_all(cls, activities: Iterable[Activity] = ()) -> "PermissionMatrix":
        return cls(activities, {})

    def rights_for(self, activity_id: int) -> Rights:
        return self._by_id.get(activity_id, DENY_ALL)

    def rights_for_name(self, activity_name: str) -> Rights:
        activity_id = self._id_by_name.get(activity_name)
        if activity_id is None:
            return DENY_ALL
        return self.rights_for(activity_id)

    def check(self, activity_name: str, action: str) -> bool:
        return self.rights_for_name(activity_name).allows(action)

    def granted_activities(self) -> list[str]:
        return [name for name, aid in self._id_by_name.items() if self._by_id[aid].to_tokens()]

    def as_list(self) -> list[dict]:
        return [
            {
                "activity_id": activity.id,
                "activity_name": activity.name,
                "category": activity.category,
                **self.rights_for(activity.id).as_dict(),
            }
            for activity in self._activities
        ]

    def __len__(self) -> int:
        return len(self._by_id)


def check_permission(matrix: PermissionMatrix | None, activity_name: str, action: str) -> bool:
    """Gate decision. No matrix (not resolved yet, or failed) means deny."""
    if matrix is None:
        return False
    return matrix.check(activity_name, action)


# ------------------------------------------------------------
# Row loading per grantee kind
# ------------------------------------------------------------
async def _admin_rights(session: AsyncSession, grantee: AdminGrantee) -> dict[int, Rights]:
    admin = await session.get(User, grantee.admin_id)
    if not admin or UserRole(admin.role) != UserRole.admin:
        return {}

    result = await session.execute(
        select(AdminPermission).where(AdminPermission.admin_id == grantee.admin_id)
    )
    return {row.activity_id: Rights.from_row(row) for row in result.scalars().all()}


async def _special_user_rights(session: AsyncSession, grantee: SpecialUserGrantee) -> dict[int, Rights]:
    user = await session.get(User, grantee.user_id)
    if not user or not user.is_special:
        return {}

    result = await session.execute(
        select(SpecialUserPermission).where(SpecialUserPermission.user_id == grantee.user_id)
    )
    return {row.activity_id: Rights.from_row(row) for row in result.scalars().all()}


async def _department_rights(session: AsyncSession, grantee: DepartmentRoleGrantee) -> dict[int, Rights]:
    department = await session.get(Department, grantee.department_id)
    if not department:
        return {}

    query = select(RolePermission).where(RolePermission.dept_id == grantee.department_id)
    if grantee.subrole is not None:
        query = query.where(RolePermission.subrole == grantee.subrole)

    result = await session.execute(query)

    # Without a subrole filter, rights are OR-ed across subroles
    rights: dict[int, Rights] = {}
    for row in result.scalars().all():
        rights[row.activity_id] = rights.get(row.activity_id, DENY_ALL).union(Rights.from_row(row))
    return rights


async def _load_rights(session: AsyncSession, grantee: Grantee) -> dict[int, Rights]:
    if isinstance(grantee, AdminGrantee):
        return await _admin_rights(session, grantee)
    if isinstance(grantee, SpecialUserGrantee):
        return await _special_user_rights(session, grantee)
    if isinstance(grantee, DepartmentRoleGrantee):
        return await _department_rights(session, grantee)
    raise TypeError(f"Unsupported grantee type: {type(grantee).__name__}")


# ------------------------------------------------------------
# Resolver
# ------------------------------------------------------------
async def resolve_permissions(session: AsyncSession, grantee: Grantee) -> PermissionMatrix:
    """
    Fresh read per call. Database failures degrade to an all-deny matrix
    instead of propagating.
    """
    try:
        activities = await list_activities(session, status=None)
        granted = await _load_rights(session, grantee)
    except SQLAlchemyError:
        logger.exception(f"Permission resolution failed for {grantee}; denying all")
        return PermissionMatrix.deny_all()

    return PermissionMatrix(activities, granted)
