from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, model_validator

from app.models.enums import RecordStatus


class DiscountIn(BaseModel):
    name: str = Field(min_length=1)
    percentage: float = Field(ge=0, le=100)
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def check_window(self):
        if self.end <= self.start:
            raise ValueError("Discount end must be after its start")
        return self


class PackageCreate(BaseModel):
    plan_name: str = Field(min_length=2, max_length=128)
    initial_price: float = Field(gt=0)
    enrollment_charge: float = Field(ge=0)
    offer_letter_charge: float = Field(ge=0)
    first_year_salary_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    first_year_fixed_price: Optional[float] = Field(default=None, ge=0)
    features: List[str] = Field(default_factory=list)
    discounts: List[DiscountIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_pricing(self):
        if self.initial_price < self.enrollment_charge:
            raise ValueError("Initial price must be greater than or equal to enrollment charge")
        has_pct = self.first_year_salary_percentage is not None
        has_fixed = self.first_year_fixed_price is not None
        if has_pct == has_fixed:
            raise ValueError(
                "Provide exactly one of first_year_salary_percentage or first_year_fixed_price"
            )
        return self


class PackageUpdate(BaseModel):
    plan_name: Optional[str] = Field(default=None, min_length=2, max_length=128)
    initial_price: Optional[float] = Field(default=None, gt=0)
    enrollment_charge: Optional[float] = Field(default=None, ge=0)
    offer_letter_charge: Optional[float] = Field(default=None, ge=0)
    first_year_salary_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    first_year_fixed_price: Optional[float] = Field(default=None, ge=0)
    features: Optional[List[str]] = None


class DiscountRead(BaseModel):
    name: str
    percentage: float
    start: datetime
    end: datetime


class PackageRead(BaseModel):
    id: int
    plan_name: str
    initial_price: float
    enrollment_charge: float
    offer_letter_charge: float
    first_year_salary_percentage: Optional[float] = None
    first_year_fixed_price: Optional[float] = None
    features: List[str]
    discounts: List[DiscountRead]
    discounted_price: Optional[float] = None
    status: RecordStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SendPackageRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = None
