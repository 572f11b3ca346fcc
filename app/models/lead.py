from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as PGEnum
from datetime import datetime
from typing import Optional

from app.models.enums import LeadStatus, VisaStatus, enum_values
from app.models.user import utcnow


class Lead(SQLModel, table=True):
    __tablename__ = "leads"

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True)
    )

    first_name: str = Field(sa_column=Column(String(50), nullable=False))
    last_name: str = Field(sa_column=Column(String(50), nullable=False))

    contact_numbers: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # Digits-only numbers with the country code stripped; used by search
    processed_contact_numbers: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    emails: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    primary_email: str = Field(sa_column=Column(String(255), nullable=False, unique=True, index=True))

    linkedin_id: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    technology: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    country: str = Field(sa_column=Column(String(100), nullable=False, index=True))
    country_code: str = Field(sa_column=Column(String(3), nullable=False))

    visa_status: VisaStatus = Field(
        sa_column=Column(
            PGEnum(VisaStatus, name="visa_status", values_callable=enum_values),
            nullable=False,
        )
    )
    status: LeadStatus = Field(
        default=LeadStatus.open,
        sa_column=Column(
            PGEnum(LeadStatus, name="lead_status", values_callable=enum_values),
            nullable=False,
            index=True,
        )
    )
    lead_source: str = Field(sa_column=Column(String(100), nullable=False))

    # [{"text": ..., "created_by": user_id, "created_at": iso}]
    remarks: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    follow_up_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))

    assigned_to: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id"), nullable=True))
    created_by: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id"), nullable=True))
    updated_by: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id"), nullable=True))

    # Leads are archived, never deleted
    is_archived: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    archive_reason: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    archived_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class LeadAssignment(SQLModel, table=True):
    """Current assignee of a lead plus everyone it was assigned to before."""

    __tablename__ = "lead_assignments"

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True)
    )

    lead_id: int = Field(sa_column=Column(ForeignKey("leads.id"), nullable=False, unique=True, index=True))
    assigned_to_id: int = Field(sa_column=Column(ForeignKey("users.id"), nullable=False))
    previous_assigned_id: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id"), nullable=True))
    # Earlier assignees, oldest first
    all_previous_assigned_ids: list[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    created_by: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id"), nullable=True))
    updated_by: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id"), nullable=True))

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
