# app/models/permission.py
"""
Permission Store tables.

All three tables share the same rights shape and differ only in the grantee
key. At most one row exists per (grantee, activity); a missing row means no
access. Rows are never deleted: assigning all-false rights is the revoke.
"""

from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, UniqueConstraint
from datetime import datetime
from typing import Optional

from app.models.user import utcnow


class RightsColumns(SQLModel):
    can_view: bool = Field(default=False, nullable=False)
    can_add: bool = Field(default=False, nullable=False)
    can_edit: bool = Field(default=False, nullable=False)
    can_delete: bool = Field(default=False, nullable=False)

    created_by: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    updated_by: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), nullable=False)


class RolePermission(RightsColumns, table=True):
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("dept_id", "subrole", "activity_id", name="uq_role_permission_tuple"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    dept_id: int = Field(foreign_key="departments.id", index=True, nullable=False)
    subrole: str = Field(max_length=100, nullable=False)
    activity_id: int = Field(foreign_key="activities.id", nullable=False)


class AdminPermission(RightsColumns, table=True):
    __tablename__ = "admin_permissions"
    __table_args__ = (
        UniqueConstraint("admin_id", "activity_id", name="uq_admin_permission_tuple"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    admin_id: int = Field(foreign_key="users.id", index=True, nullable=False)
    activity_id: int = Field(foreign_key="activities.id", nullable=False)


class SpecialUserPermission(RightsColumns, table=True):
    __tablename__ = "special_user_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "activity_id", name="uq_special_user_permission_tuple"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True, nullable=False)
    activity_id: int = Field(foreign_key="activities.id", nullable=False)
