import re
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, HttpUrl, field_validator

from app.models.enums import LeadStatus, VisaStatus

PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")


def _validate_phones(numbers: List[str]) -> List[str]:
    cleaned = [n.strip() for n in numbers]
    for number in cleaned:
        if not PHONE_RE.match(number):
            raise ValueError(f"Invalid contact number format: {number}")
    return cleaned


def _validate_technology(items: List[str]) -> List[str]:
    cleaned = [t.strip() for t in items]
    if any(not t for t in cleaned):
        raise ValueError("Invalid technology format")
    return cleaned


# -------------------------------------------------------------------
# CREATE
# -------------------------------------------------------------------
class LeadCreate(BaseModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    contact_numbers: List[str] = Field(min_length=1, max_length=2)
    emails: List[EmailStr] = Field(min_length=1, max_length=2)
    primary_email: EmailStr
    linkedin_id: Optional[HttpUrl] = None
    technology: List[str] = Field(min_length=1)
    country: str = Field(min_length=2, max_length=100)
    country_code: str = Field(min_length=2, max_length=3)
    visa_status: VisaStatus
    status: LeadStatus = LeadStatus.open
    lead_source: str = Field(min_length=1)
    remarks: List[str] = Field(default_factory=list)
    follow_up_at: Optional[datetime] = None

    @field_validator("contact_numbers")
    @classmethod
    def check_phones(cls, v):
        return _validate_phones(v)

    @field_validator("technology")
    @classmethod
    def check_technology(cls, v):
        return _validate_technology(v)

    @field_validator("lead_source")
    @classmethod
    def check_lead_source(cls, v):
        if not v.strip():
            raise ValueError("Lead source is required")
        return v.strip()


# -------------------------------------------------------------------
# UPDATE
# -------------------------------------------------------------------
class LeadUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    contact_numbers: Optional[List[str]] = Field(default=None, min_length=1, max_length=2)
    emails: Optional[List[EmailStr]] = Field(default=None, min_length=1, max_length=2)
    primary_email: Optional[EmailStr] = None
    linkedin_id: Optional[HttpUrl] = None
    technology: Optional[List[str]] = Field(default=None, min_length=1)
    country: Optional[str] = Field(default=None, min_length=2, max_length=100)
    country_code: Optional[str] = Field(default=None, min_length=2, max_length=3)
    visa_status: Optional[VisaStatus] = None
    lead_source: Optional[str] = Field(default=None, min_length=1)
    follow_up_at: Optional[datetime] = None

    @field_validator("contact_numbers")
    @classmethod
    def check_phones(cls, v):
        return _validate_phones(v) if v is not None else v

    @field_validator("technology")
    @classmethod
    def check_technology(cls, v):
        return _validate_technology(v) if v is not None else v


class LeadStatusUpdate(BaseModel):
    status: LeadStatus
    remark: Optional[str] = None
    follow_up_at: Optional[datetime] = None


class LeadAssign(BaseModel):
    assigned_to: int
    remark: Optional[str] = None


class LeadArchive(BaseModel):
    reason: str = Field(min_length=1)


class LeadRemark(BaseModel):
    text: str
    created_by: Optional[int] = None
    created_at: Optional[str] = None


# -------------------------------------------------------------------
# READ
# -------------------------------------------------------------------
class LeadRead(BaseModel):
    id: int
    first_name: str
    last_name: str
    contact_numbers: List[str]
    emails: List[str]
    primary_email: str
    linkedin_id: Optional[str] = None
    technology: List[str]
    country: str
    country_code: str
    visa_status: VisaStatus
    status: LeadStatus
    lead_source: str
    remarks: List[LeadRemark] = []
    follow_up_at: Optional[datetime] = None
    assigned_to: Optional[int] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    is_archived: bool = False
    archive_reason: Optional[str] = None
    archived_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# -------------------------------------------------------------------
# Assignment
# -------------------------------------------------------------------
class AssigneeBrief(BaseModel):
    id: int
    firstname: str
    lastname: str
    email: str

    class Config:
        from_attributes = True


class LeadAssignmentRead(BaseModel):
    id: int
    lead_id: int
    assigned_to: Optional[AssigneeBrief] = None
    previous_assigned: Optional[AssigneeBrief] = None
    created_by: Optional[AssigneeBrief] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeadAssignmentHistory(BaseModel):
    lead_id: int
    current: Optional[AssigneeBrief] = None
    # Most recent first
    previous: List[AssigneeBrief] = []


class LeadSearchResult(BaseModel):
    total: int
    page: int
    limit: int
    leads: List[LeadRead]
    # "elasticsearch" or "database"
    source: str
