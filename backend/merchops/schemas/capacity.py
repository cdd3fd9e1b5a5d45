"""
Capacity Schemas
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LockResult(BaseModel):
    year: int
    data_rows: int
    summary_rows: int


class ClearResult(BaseModel):
    years: List[int]
    data_rows_deleted: int
    summary_rows_deleted: int


class CapacityImportResult(BaseModel):
    created: int = 0
    skipped_locked: int = 0
    cleared: int = 0
    summaries_rebuilt: int = 0
    errors: List[str] = Field(default_factory=list)


class CapacityDriftRow(BaseModel):
    vendor_code: str
    vendor_id: Optional[int] = None
    year: int
    capacity_confirmed: int
    shipped_value: int
    drift: int
    has_drift: bool


class CapacityDataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vendor_id: Optional[int] = None
    vendor_code: str
    vendor_name: Optional[str] = None
    client: str
    year: int
    month: int
    shipment_confirmed: int
    shipment_unconfirmed: int
    total_shipment: int
    projections: int
    reserved_capacity: int
    factory_overall_capacity: Optional[int] = None
    balance: int
    utilized_capacity_pct: Optional[float] = None
    is_locked: bool
