from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, model_validator

from app.models.enums import UserRole


def _reject_admin_special(role, is_special):
    if role == UserRole.admin and is_special:
        raise ValueError("An account cannot be both admin and special user")


# ---------------------------------------------------------
# BASE
# ---------------------------------------------------------
class UserBase(BaseModel):
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    mobile_number: Optional[str] = Field(default=None, max_length=20)


# ---------------------------------------------------------
# CREATE USER (department member)
# ---------------------------------------------------------
class UserCreate(UserBase):
    password: str = Field(min_length=6)
    role: UserRole = UserRole.user
    department_id: int
    subrole: str = Field(min_length=1)
    designation: Optional[str] = None
    is_special: bool = False

    @model_validator(mode="after")
    def check_classification(self):
        _reject_admin_special(self.role, self.is_special)
        return self


# ---------------------------------------------------------
# CREATE ADMIN
# ---------------------------------------------------------
class AdminCreate(UserBase):
    password: str = Field(min_length=6)
    is_special: bool = False

    @model_validator(mode="after")
    def check_classification(self):
        _reject_admin_special(UserRole.admin, self.is_special)
        return self


# ---------------------------------------------------------
# UPDATE USER / ADMIN
# ---------------------------------------------------------
class UserUpdate(BaseModel):
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[EmailStr] = None
    mobile_number: Optional[str] = None
    role: Optional[UserRole] = None
    department_id: Optional[int] = None
    subrole: Optional[str] = None
    designation: Optional[str] = None
    is_special: Optional[bool] = None

    @model_validator(mode="after")
    def check_classification(self):
        _reject_admin_special(self.role, self.is_special)
        return self


# ---------------------------------------------------------
# READ USER (response)
# ---------------------------------------------------------
class UserRead(BaseModel):
    id: int
    firstname: str
    lastname: str
    username: str
    email: EmailStr
    mobile_number: Optional[str] = None
    role: UserRole
    department_id: Optional[int] = None
    subrole: Optional[str] = None
    designation: Optional[str] = None
    is_special: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
