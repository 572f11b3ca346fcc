# app/schemas/permission.py

from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

PermissionToken = Literal["view", "add", "edit", "delete"]

# activityId -> tokens, e.g. {"7": ["view", "add"]}
AccessMap = Dict[int, List[PermissionToken]]


# -------------------------------------------------------------------
# ASSIGN (upsert per tuple, full replacement of the four rights)
# -------------------------------------------------------------------
class RolePermissionAssign(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dept_id: int
    subrole: str = Field(min_length=1)
    has_access_to: AccessMap = Field(alias="hasAccessTo", min_length=1)


class AdminPermissionAssign(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    admin_id: int
    has_access_to: AccessMap = Field(alias="hasAccessTo", min_length=1)


class SpecialUserPermissionAssign(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_access_to: AccessMap = Field(alias="hasAccessTo", min_length=1)


class RightsUpdate(BaseModel):
    """
    Replaces a row's rights. Either all four booleans or a `hasAccessTo`
    token list must be sent; partial updates are rejected.
    """

    model_config = ConfigDict(populate_by_name=True)

    can_view: Optional[bool] = None
    can_add: Optional[bool] = None
    can_edit: Optional[bool] = None
    can_delete: Optional[bool] = None
    has_access_to: Optional[List[PermissionToken]] = Field(default=None, alias="hasAccessTo")

    @model_validator(mode="after")
    def require_full_rights(self):
        flags = (self.can_view, self.can_add, self.can_edit, self.can_delete)
        if self.has_access_to is not None:
            if any(flag is not None for flag in flags):
                raise ValueError("Send either hasAccessTo or the four can_* flags, not both")
            return self
        if any(flag is None for flag in flags):
            raise ValueError("All of can_view, can_add, can_edit and can_delete are required")
        return self

    def tokens(self) -> List[str]:
        if self.has_access_to is not None:
            return list(self.has_access_to)
        flags = {
            "view": self.can_view,
            "add": self.can_add,
            "edit": self.can_edit,
            "delete": self.can_delete,
        }
        return [token for token, allowed in flags.items() if allowed]


# -------------------------------------------------------------------
# READ
# -------------------------------------------------------------------
class PermissionRowBase(BaseModel):
    id: int
    activity_id: int
    can_view: bool
    can_add: bool
    can_edit: bool
    can_delete: bool
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RolePermissionRead(PermissionRowBase):
    dept_id: int
    subrole: str


class AdminPermissionRead(PermissionRowBase):
    admin_id: int


class SpecialUserPermissionRead(PermissionRowBase):
    user_id: int


class MatrixEntry(BaseModel):
    activity_id: int
    activity_name: str
    category: str
    can_view: bool
    can_add: bool
    can_edit: bool
    can_delete: bool


class ResolvedPermissions(BaseModel):
    grantee_kind: Optional[str] = None
    permissions: List[MatrixEntry]
