"""
Analytics Schemas

Money is integer cents, percentages are 0-100 floats (None when the
denominator is empty).
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from merchops.core.status_config import TrendDirection


class YoYValue(BaseModel):
    """A count or cents total with its point-in-time prior-year value"""
    current: int = 0
    prior: int = 0
    change_pct: Optional[float] = None


class DashboardKPIs(BaseModel):
    total_pos: int = 0
    shipped_count: int = 0
    on_time_count: int = 0
    late_count: int = 0
    otd_pct: Optional[float] = None
    original_on_time_count: int = 0
    original_otd_pct: Optional[float] = None
    amnesty_count: int = 0
    avg_days_late: Optional[float] = None
    shipped_value: int = 0
    on_time_value: int = 0
    otd_value_pct: Optional[float] = None
    overdue_unshipped_count: int = 0
    overdue_backlog_value: int = 0
    revised_otd_pct: Optional[float] = None
    at_risk_count: int = 0
    at_risk_value: int = 0
    final_inspections: int = 0
    final_inspection_pass_rate: Optional[float] = None
    errors: List[str] = Field(default_factory=list)


class HeaderKPIs(BaseModel):
    as_of: date
    comparison_date: date  # Same calendar date last year, clamped
    ytd_shipped_sales: YoYValue
    ytd_shipped_orders: YoYValue
    total_pos: YoYValue
    total_skus: YoYValue
    new_skus: YoYValue
    new_sku_sales: YoYValue
    existing_sku_sales: YoYValue
    ytd_projections: YoYValue
    errors: List[str] = Field(default_factory=list)


class StaffKPIs(BaseModel):
    staff_id: int
    name: str
    role: str
    dashboard: DashboardKPIs
    header: HeaderKPIs


class TrendRow(BaseModel):
    key: str
    current_otd_pct: Optional[float] = None
    prior_otd_pct: Optional[float] = None
    current_shipped: int = 0
    prior_shipped: int = 0
    change: Optional[float] = None
    direction: TrendDirection = TrendDirection.STABLE


class TrendReport(BaseModel):
    group_by: str
    window_days: int
    as_of: date
    rows: List[TrendRow] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class VendorOTDRow(BaseModel):
    vendor: str
    year: int
    month: int
    shipped_on_time: int = 0
    total_shipped: int = 0
    otd_pct: Optional[float] = None
    on_time_value: int = 0
    total_value: int = 0
    otd_value_pct: Optional[float] = None
    overdue_unshipped: int = 0
    overdue_backlog_value: int = 0
    revised_otd_pct: Optional[float] = None


class VendorOTDReport(BaseModel):
    year: int
    rows: List[VendorOTDRow] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class MonthlyOTDComparison(BaseModel):
    month: int
    current_shipped: int = 0
    current_on_time: int = 0
    current_pct: Optional[float] = None
    prior_shipped: int = 0
    prior_on_time: int = 0
    prior_pct: Optional[float] = None


class OriginalOTDYoYReport(BaseModel):
    year: int
    as_of: date
    comparison_date: date
    months: List[MonthlyOTDComparison] = Field(default_factory=list)


class SkuSalesRow(BaseModel):
    sku: str
    current_sales: int = 0
    prior_sales: int = 0
    change_pct: Optional[float] = None


class SkuShippingStats(BaseModel):
    sku: str
    as_of: date
    orders: YoYValue
    quantity_ordered: YoYValue
    shipped_orders: YoYValue
    on_time_orders: YoYValue
    otd_pct_current: Optional[float] = None
    otd_pct_prior: Optional[float] = None
