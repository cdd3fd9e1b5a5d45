"""
Trend direction

Compares the OTD rate of a trailing window with the window before it.
A change beyond the threshold (in percentage points) is improving or
declining; anything within it, or missing data on either side, is stable.
"""
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import and_, case, func
from sqlalchemy.orm import Session

from merchops.core.settings import settings
from merchops.core.status_config import TrendDirection, TrendGroup
from merchops.logging_config import get_logger
from merchops.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from merchops.models.vendor import Vendor
from merchops.schemas.analytics import TrendReport, TrendRow
from merchops.schemas.filters import DashboardFilter
from merchops.services.analytics.queries import ON_TIME, shipment_rollup, is_shipped_otd, as_int
from merchops.services.analytics.yoy import pct
from merchops.services.query_filters import reportable_po_filter

logger = get_logger(__name__)


def classify_trend(
    current_pct: Optional[float],
    prior_pct: Optional[float],
    threshold: Optional[float] = None,
) -> TrendDirection:
    threshold = settings.TREND_THRESHOLD_PCT if threshold is None else threshold
    if current_pct is None or prior_pct is None:
        return TrendDirection.STABLE
    change = current_pct - prior_pct
    if change > threshold:
        return TrendDirection.IMPROVING
    if change < -threshold:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def _group_column(group_by: TrendGroup):
    if group_by == TrendGroup.VENDOR:
        return Vendor.name
    if group_by == TrendGroup.MERCHANDISER:
        return Vendor.merchandiser
    return PurchaseOrderLine.sku


def compute_trends(
    db: Session,
    group_by: TrendGroup = TrendGroup.VENDOR,
    as_of: Optional[date] = None,
    flt: Optional[DashboardFilter] = None,
    window_days: Optional[int] = None,
    threshold: Optional[float] = None,
) -> TrendReport:
    """
    OTD trend per vendor, merchandiser or SKU.

    Windows are by delivery (latest HOD): current = (as_of - N, as_of],
    prior = (as_of - 2N, as_of - N].
    """
    as_of = as_of or date.today()
    window_days = window_days or settings.TREND_WINDOW_DAYS
    group_by = TrendGroup(group_by)

    current_start = as_of - timedelta(days=window_days)
    prior_start = current_start - timedelta(days=window_days)

    rollup = shipment_rollup()
    delivered = rollup.c.delivered
    in_current = and_(delivered > current_start, delivered <= as_of)
    in_prior = and_(delivered > prior_start, delivered <= current_start)
    on_time = PurchaseOrder.otd_status == ON_TIME

    def distinct_pos(condition):
        return func.count(func.distinct(case((condition, PurchaseOrder.id))))

    key = _group_column(group_by)
    query = (
        db.query(
            key,
            distinct_pos(in_current),
            distinct_pos(and_(in_current, on_time)),
            distinct_pos(in_prior),
            distinct_pos(and_(in_prior, on_time)),
        )
        .select_from(PurchaseOrder)
        .join(rollup, rollup.c.po_number == PurchaseOrder.po_number)
        .outerjoin(Vendor, Vendor.id == PurchaseOrder.vendor_id)
    )
    if group_by == TrendGroup.SKU:
        query = query.join(PurchaseOrderLine, PurchaseOrderLine.po_number == PurchaseOrder.po_number)

    rows = (
        query.filter(
            is_shipped_otd(),
            delivered > prior_start,
            delivered <= as_of,
            *reportable_po_filter((flt or DashboardFilter()).without_dates()).build(),
        )
        .group_by(key)
        .all()
    )

    report = TrendReport(group_by=group_by.value, window_days=window_days, as_of=as_of)
    unattributed = 0
    for name, cur_shipped, cur_on_time, prior_shipped, prior_on_time in rows:
        if name is None:
            unattributed += as_int(cur_shipped) + as_int(prior_shipped)
            continue
        current_pct = pct(as_int(cur_on_time), as_int(cur_shipped))
        prior_pct = pct(as_int(prior_on_time), as_int(prior_shipped))
        change = round(current_pct - prior_pct, 1) if current_pct is not None and prior_pct is not None else None
        report.rows.append(TrendRow(
            key=name,
            current_otd_pct=current_pct,
            prior_otd_pct=prior_pct,
            current_shipped=as_int(cur_shipped),
            prior_shipped=as_int(prior_shipped),
            change=change,
            direction=classify_trend(current_pct, prior_pct, threshold),
        ))

    if unattributed:
        report.errors.append(f"{unattributed} shipped purchase order(s) have no {group_by.value}")

    report.rows.sort(key=lambda r: r.key)
    return report
