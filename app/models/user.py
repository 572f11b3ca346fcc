# app/models/user.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy import Enum as PGEnum
from datetime import datetime, timezone
from typing import Optional

from app.models.enums import UserRole, enum_values


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """Admins and CRM users share one table; `role` tells them apart."""

    __tablename__ = "users"
    __table_args__ = (
        # An account is never classified as both admin and special user
        CheckConstraint(
            "NOT (role = 'admin' AND is_special)",
            name="ck_users_admin_not_special",
        ),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True)
    )

    firstname: str = Field(sa_column=Column(String(100), nullable=False))
    lastname: str = Field(sa_column=Column(String(100), nullable=False))
    username: str = Field(sa_column=Column(String(100), nullable=False, unique=True, index=True))
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True, index=True))
    mobile_number: Optional[str] = Field(default=None, sa_column=Column(String(20), nullable=True))
    password_hash: str = Field(nullable=False)

    role: UserRole = Field(
        sa_column=Column(
            PGEnum(UserRole, name="user_role", values_callable=enum_values),
            nullable=False,
        )
    )

    # Only non-admin users belong to a department and carry a subrole
    department_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("departments.id"), nullable=True)
    )
    subrole: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    designation: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))

    is_special: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))

    # --- Forgot password: only the latest OTP is stored ---
    otp_code: Optional[str] = Field(
        default=None,
        sa_column=Column(String, nullable=True)
    )
    otp_expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()
