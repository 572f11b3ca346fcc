# app/core/grantee.py
"""
Grantee identity: who a permission lookup is for.

Built once per request by `classify_grantee` at the authentication boundary.
Everything downstream dispatches on the type instead of re-reading
`role` / `is_special` flags.
"""

from dataclasses import dataclass
from typing import Optional, Union

from app.models.enums import UserRole


class GranteeError(ValueError):
    """The caller cannot be mapped to any grantee."""


class ConflictingGranteeError(GranteeError):
    """The caller claims both admin and special-user classification."""


@dataclass(frozen=True)
class AdminGrantee:
    admin_id: int
    kind = "admin"


@dataclass(frozen=True)
class SpecialUserGrantee:
    user_id: int
    kind = "special_user"


@dataclass(frozen=True)
class DepartmentRoleGrantee:
    department_id: int
    # None only for admin-side review: union across all subroles
    subrole: Optional[str] = None
    kind = "department_role"


Grantee = Union[AdminGrantee, SpecialUserGrantee, DepartmentRoleGrantee]


def classify_grantee(user) -> Grantee:
    """
    Map an authenticated user onto exactly one grantee kind.

    Raises ConflictingGranteeError for admin + special, GranteeError for a
    regular user with no department or subrole.
    """
    is_admin = UserRole(user.role) == UserRole.admin

    if is_admin and user.is_special:
        raise ConflictingGranteeError(
            f"User {user.id} is flagged as both admin and special user"
        )

    if is_admin:
        return AdminGrantee(admin_id=user.id)

    if user.is_special:
        return SpecialUserGrantee(user_id=user.id)

    if user.department_id is None or not user.subrole:
        raise GranteeError(f"User {user.id} has no department/subrole assignment")

    return DepartmentRoleGrantee(department_id=user.department_id, subrole=user.subrole)
