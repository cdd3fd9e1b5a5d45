"""
Dashboard filter object shared by every aggregation entry point
"""
from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator


class DashboardFilter(BaseModel):
    """
    Equality/range filters for KPI queries.

    Vendor, merchandiser and merchandising manager match the canonical
    vendor record; client matches the PO; the date range applies to the
    effective cancel date.
    """
    merchandiser: Optional[str] = None
    merchandising_manager: Optional[str] = None
    vendor: Optional[str] = None
    client: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("merchandiser", "merchandising_manager", "vendor", "client", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self

    def without_dates(self) -> "DashboardFilter":
        return self.model_copy(update={"start_date": None, "end_date": None})
