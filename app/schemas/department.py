from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from app.models.enums import RecordStatus


def _clean_subroles(subroles: List[str]) -> List[str]:
    cleaned: List[str] = []
    for name in subroles:
        name = name.strip()
        if not name:
            raise ValueError("Subrole names cannot be blank")
        if name.lower() in (c.lower() for c in cleaned):
            raise ValueError(f"Duplicate subrole '{name}'")
        cleaned.append(name)
    return cleaned


class DepartmentCreate(BaseModel):
    department_name: str = Field(min_length=2, max_length=128)
    subroles: List[str] = Field(min_length=1)
    is_sales_team: bool = False

    @field_validator("subroles")
    @classmethod
    def validate_subroles(cls, v):
        return _clean_subroles(v)


class DepartmentUpdate(BaseModel):
    department_name: Optional[str] = Field(default=None, min_length=2, max_length=128)
    subroles: Optional[List[str]] = Field(default=None, min_length=1)
    is_sales_team: Optional[bool] = None

    @field_validator("subroles")
    @classmethod
    def validate_subroles(cls, v):
        return _clean_subroles(v) if v is not None else v


class DepartmentReorder(BaseModel):
    # department ids in their new display order
    order: List[int] = Field(min_length=1)


class DepartmentRead(BaseModel):
    id: int
    department_name: str
    subroles: List[str]
    is_sales_team: bool
    status: RecordStatus
    sequence_number: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
