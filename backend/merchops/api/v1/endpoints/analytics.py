"""
Analytics API Endpoints

Read-only KPI, OTD and trend roll-ups. Every endpoint accepts the
dashboard filter query parameters.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from merchops.api.v1.deps import get_dashboard_filter
from merchops.core.status_config import TrendGroup
from merchops.db.session import get_db
from merchops.schemas.analytics import (
    DashboardKPIs,
    HeaderKPIs,
    OriginalOTDYoYReport,
    SkuSalesRow,
    SkuShippingStats,
    StaffKPIs,
    TrendReport,
    VendorOTDReport,
)
from merchops.schemas.filters import DashboardFilter
from merchops.services.analytics.kpi_service import (
    compute_dashboard_kpis,
    compute_header_kpis,
    compute_staff_kpis,
)
from merchops.services.analytics.otd_breakdown import original_otd_yoy, otd_by_vendor
from merchops.services.analytics.sku_analytics import sku_shipping_stats, sku_yoy_sales
from merchops.services.analytics.trend import compute_trends

router = APIRouter()


@router.get("/dashboard", response_model=DashboardKPIs)
async def get_dashboard_kpis(
    flt: DashboardFilter = Depends(get_dashboard_filter),
    db: Session = Depends(get_db),
):
    """OTD, late-day, backlog, at-risk and inspection KPIs for the filter."""
    return compute_dashboard_kpis(db, flt)


@router.get("/header", response_model=HeaderKPIs)
async def get_header_kpis(
    as_of: Optional[date] = None,
    flt: DashboardFilter = Depends(get_dashboard_filter),
    db: Session = Depends(get_db),
):
    """
    YTD header metrics vs the same date last year.

    - **as_of**: reporting date (default: today)
    """
    return compute_header_kpis(db, flt, as_of)


@router.get("/staff/{staff_id}", response_model=StaffKPIs)
async def get_staff_kpis(
    staff_id: int,
    as_of: Optional[date] = None,
    flt: DashboardFilter = Depends(get_dashboard_filter),
    db: Session = Depends(get_db),
):
    """Dashboard and header KPIs scoped by the staff member's role"""
    return compute_staff_kpis(db, staff_id, as_of, flt)


@router.get("/trends", response_model=TrendReport)
async def get_trends(
    group_by: TrendGroup = TrendGroup.VENDOR,
    as_of: Optional[date] = None,
    window_days: Optional[int] = Query(None, ge=7, le=366),
    flt: DashboardFilter = Depends(get_dashboard_filter),
    db: Session = Depends(get_db),
):
    return compute_trends(db, group_by, as_of, flt, window_days)


@router.get("/otd-by-vendor", response_model=VendorOTDReport)
async def get_otd_by_vendor(
    year: int = Query(..., ge=2000, le=2100),
    flt: DashboardFilter = Depends(get_dashboard_filter),
    db: Session = Depends(get_db),
):
    return otd_by_vendor(db, year, flt)


@router.get("/original-otd-yoy", response_model=OriginalOTDYoYReport)
async def get_original_otd_yoy(
    as_of: Optional[date] = None,
    flt: DashboardFilter = Depends(get_dashboard_filter),
    db: Session = Depends(get_db),
):
    return original_otd_yoy(db, as_of, flt)


@router.get("/skus/sales", response_model=List[SkuSalesRow])
async def get_sku_sales(
    as_of: Optional[date] = None,
    limit: int = Query(50, ge=1, le=500),
    flt: DashboardFilter = Depends(get_dashboard_filter),
    db: Session = Depends(get_db),
):
    return sku_yoy_sales(db, as_of, flt, limit)


@router.get("/skus/{sku}", response_model=SkuShippingStats)
async def get_sku_stats(
    sku: str,
    as_of: Optional[date] = None,
    flt: DashboardFilter = Depends(get_dashboard_filter),
    db: Session = Depends(get_db),
):
    return sku_shipping_stats(db, sku, as_of, flt)
