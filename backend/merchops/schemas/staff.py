"""
Staff Schemas
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from merchops.core.status_config import StaffRole


class StaffBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    title: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)


class StaffCreate(StaffBase):
    # Explicit role wins over the title-derived one
    role: Optional[StaffRole] = None


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    title: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    role: Optional[StaffRole] = None
    status: Optional[str] = None


class StaffResponse(StaffBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    role: StaffRole
    status: str
    created_at: datetime
    updated_at: datetime
