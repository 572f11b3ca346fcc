from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy import Enum as PGEnum
from datetime import datetime
from typing import Optional

from app.models.enums import RecordStatus, enum_values
from app.models.user import utcnow


class Department(SQLModel, table=True):
    __tablename__ = "departments"

    # Primary Key must be ONLY inside sa_column
    id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True)
    )

    department_name: str = Field(
        sa_column=Column(String(128), nullable=False, unique=True)
    )

    # Ordered subrole names, e.g. ["Lead", "Rep"]
    subroles: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False)
    )

    is_sales_team: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False)
    )

    status: RecordStatus = Field(
        default=RecordStatus.active,
        sa_column=Column(
            PGEnum(RecordStatus, name="department_status", values_callable=enum_values),
            nullable=False,
        )
    )

    sequence_number: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, nullable=True)
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
