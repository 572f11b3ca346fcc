from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy import Enum as PGEnum
from datetime import datetime
from typing import Optional

from app.models.enums import RecordStatus, enum_values
from app.models.user import utcnow


class Activity(SQLModel, table=True):
    """A permissionable unit of functionality, the column key of the rights matrix."""

    __tablename__ = "activities"

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True)
    )
    name: str = Field(sa_column=Column(String(128), nullable=False, unique=True, index=True))
    category: str = Field(sa_column=Column(String(64), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    status: RecordStatus = Field(
        default=RecordStatus.active,
        sa_column=Column(
            PGEnum(RecordStatus, name="activity_status", values_callable=enum_values),
            nullable=False,
        )
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
