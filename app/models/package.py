from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy import Enum as PGEnum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.models.enums import RecordStatus, enum_values
from app.models.user import utcnow


class Package(SQLModel, table=True):
    __tablename__ = "packages"

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True)
    )

    plan_name: str = Field(sa_column=Column(String(128), nullable=False, unique=True))
    initial_price: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    enrollment_charge: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))
    offer_letter_charge: Decimal = Field(sa_column=Column(Numeric(10, 2), nullable=False))

    # Exactly one of these two is set
    first_year_salary_percentage: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(5, 2), nullable=True))
    first_year_fixed_price: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(10, 2), nullable=True))

    features: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # [{"name": ..., "percentage": ..., "start": iso, "end": iso}]
    discounts: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    discounted_price: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(10, 2), nullable=True))

    status: RecordStatus = Field(
        default=RecordStatus.active,
        sa_column=Column(
            PGEnum(RecordStatus, name="package_status", values_callable=enum_values),
            nullable=False,
        )
    )

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
