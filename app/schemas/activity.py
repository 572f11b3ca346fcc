from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.models.enums import RecordStatus


class ActivityCreate(BaseModel):
    name: str = Field(min_length=2, max_length=128)
    category: str = Field(min_length=2, max_length=64)
    description: Optional[str] = None


class ActivityUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=128)
    category: Optional[str] = Field(default=None, min_length=2, max_length=64)
    description: Optional[str] = None


class ActivityRead(BaseModel):
    id: int
    name: str
    category: str
    description: Optional[str] = None
    status: RecordStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
