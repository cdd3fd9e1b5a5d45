"""
Projection Schemas
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from merchops.core.status_config import OrderType


class ActiveProjectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vendor_id: Optional[int] = None
    vendor_code: str
    sku: str
    sku_description: Optional[str] = None
    brand: Optional[str] = None
    collection: Optional[str] = None
    year: int
    month: int
    projection_value: int
    quantity: int
    order_type: str
    match_status: str
    matched_po_number: Optional[str] = None
    matched_at: Optional[datetime] = None
    actual_quantity: Optional[int] = None
    actual_value: Optional[int] = None
    quantity_variance: Optional[int] = None
    value_variance: Optional[int] = None
    variance_pct: Optional[float] = None
    is_manual: bool = False
    comment: Optional[str] = None
    commented_at: Optional[datetime] = None
    commented_by: Optional[str] = None
    last_snapshot_date: Optional[date] = None


class MatchRunResult(BaseModel):
    """Outcome of one automatic matching pass"""
    processed: int = 0
    matched: int = 0
    partial: int = 0
    unmatched: int = 0
    expired: int = 0
    skipped: int = 0
    variances: int = 0  # Matches beyond the variance alert threshold
    errors: List[str] = Field(default_factory=list)


class ProjectionImportResult(BaseModel):
    snapshots_created: int = 0
    snapshots_skipped: int = 0
    active_created: int = 0
    active_replaced: int = 0
    active_removed: int = 0
    errors: List[str] = Field(default_factory=list)


class ManualMatchRequest(BaseModel):
    po_number: str = Field(..., min_length=1)
    matched_by: Optional[str] = None


class RemoveProjectionRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    removed_by: Optional[str] = None


class OrderTypeUpdate(BaseModel):
    order_type: OrderType


class CommentUpdate(BaseModel):
    comment: Optional[str] = None
    commented_by: Optional[str] = None


class ProjectionValidationSummary(BaseModel):
    total_projections: int = 0
    unmatched: int = 0
    matched: int = 0
    partial: int = 0
    expired: int = 0
    overdue: int = 0
    at_risk: int = 0
    with_variance: int = 0
    spo_total: int = 0
    spo_matched: int = 0
    spo_unmatched: int = 0


class ProjectionDue(ActiveProjectionResponse):
    """Projection with its distance to the target month (overdue / SPO views)"""
    days_until: Optional[int] = None
    is_overdue: bool = False
