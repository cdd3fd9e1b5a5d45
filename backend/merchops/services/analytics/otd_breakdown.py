"""
OTD breakdowns - by vendor per cancel month, and Original OTD YoY by month
"""
from datetime import date
from typing import Optional

from sqlalchemy import and_, extract
from sqlalchemy.orm import Session

from merchops.models.purchase_order import PurchaseOrder
from merchops.models.vendor import Vendor
from merchops.schemas.analytics import (
    VendorOTDReport, VendorOTDRow, OriginalOTDYoYReport, MonthlyOTDComparison,
)
from merchops.schemas.filters import DashboardFilter
from merchops.services.analytics.queries import (
    ON_TIME, LATE, shipment_rollup, count_if, sum_if, is_shipped_otd, as_int,
)
from merchops.services.analytics.yoy import pct, ytd_window, prior_ytd_window, same_date_prior_year
from merchops.services.query_filters import effective_cancel_column, reportable_po_filter

UNRESOLVED_VENDOR = "(unresolved)"


def otd_by_vendor(
    db: Session,
    year: int,
    flt: Optional[DashboardFilter] = None,
) -> VendorOTDReport:
    """Per vendor and effective-cancel month of ``year``: OTD counts, values and backlog."""
    flt = (flt or DashboardFilter()).without_dates()
    cancel = effective_cancel_column()
    month = extract("month", cancel)

    on_time = PurchaseOrder.otd_status == ON_TIME
    shipped = is_shipped_otd()
    overdue = PurchaseOrder.is_late.is_(True)

    rows = (
        db.query(
            Vendor.name,
            month,
            count_if(on_time),
            count_if(shipped),
            sum_if(on_time, PurchaseOrder.total_value),
            sum_if(shipped, PurchaseOrder.total_value),
            count_if(overdue),
            sum_if(overdue, PurchaseOrder.total_value),
        )
        .select_from(PurchaseOrder)
        .outerjoin(Vendor, Vendor.id == PurchaseOrder.vendor_id)
        .filter(
            cancel >= date(year, 1, 1),
            cancel <= date(year, 12, 31),
            *reportable_po_filter(flt).build(),
        )
        .group_by(Vendor.name, month)
        .order_by(Vendor.name, month)
        .all()
    )

    report = VendorOTDReport(year=year)
    unresolved = 0
    for vendor_name, month_no, on_time_n, shipped_n, on_time_v, shipped_v, overdue_n, overdue_v in rows:
        if vendor_name is None:
            unresolved += as_int(shipped_n) + as_int(overdue_n)
        on_time_n, shipped_n, overdue_n = as_int(on_time_n), as_int(shipped_n), as_int(overdue_n)
        report.rows.append(VendorOTDRow(
            vendor=vendor_name or UNRESOLVED_VENDOR,
            year=year,
            month=int(month_no),
            shipped_on_time=on_time_n,
            total_shipped=shipped_n,
            otd_pct=pct(on_time_n, shipped_n),
            on_time_value=as_int(on_time_v),
            total_value=as_int(shipped_v),
            otd_value_pct=pct(as_int(on_time_v), as_int(shipped_v)),
            overdue_unshipped=overdue_n,
            overdue_backlog_value=as_int(overdue_v),
            revised_otd_pct=pct(on_time_n, shipped_n + overdue_n),
        ))

    if unresolved:
        report.errors.append(f"{unresolved} purchase order(s) in {year} have no canonical vendor")
    return report


def _original_otd_by_month(db: Session, flt: DashboardFilter, start: date, end: date) -> dict:
    rollup = shipment_rollup()
    delivered = rollup.c.delivered
    month = extract("month", delivered)
    original_shipped = PurchaseOrder.original_otd_status.in_([ON_TIME, LATE])

    rows = (
        db.query(
            month,
            count_if(original_shipped),
            count_if(PurchaseOrder.original_otd_status == ON_TIME),
        )
        .select_from(PurchaseOrder)
        .join(rollup, rollup.c.po_number == PurchaseOrder.po_number)
        .filter(
            and_(delivered >= start, delivered <= end),
            *reportable_po_filter(flt).build(),
        )
        .group_by(month)
        .all()
    )
    return {int(m): (as_int(shipped), as_int(on_time)) for m, shipped, on_time in rows}


def original_otd_yoy(
    db: Session,
    as_of: Optional[date] = None,
    flt: Optional[DashboardFilter] = None,
) -> OriginalOTDYoYReport:
    """
    Original OTD (no revisions, no amnesty) per delivery month, this year
    through as_of vs last year through the same date.
    """
    as_of = as_of or date.today()
    flt = (flt or DashboardFilter()).without_dates()

    current = _original_otd_by_month(db, flt, *ytd_window(as_of))
    prior = _original_otd_by_month(db, flt, *prior_ytd_window(as_of))

    report = OriginalOTDYoYReport(
        year=as_of.year, as_of=as_of, comparison_date=same_date_prior_year(as_of)
    )
    for month_no in range(1, as_of.month + 1):
        cur_shipped, cur_on_time = current.get(month_no, (0, 0))
        pri_shipped, pri_on_time = prior.get(month_no, (0, 0))
        report.months.append(MonthlyOTDComparison(
            month=month_no,
            current_shipped=cur_shipped,
            current_on_time=cur_on_time,
            current_pct=pct(cur_on_time, cur_shipped),
            prior_shipped=pri_shipped,
            prior_on_time=pri_on_time,
            prior_pct=pct(pri_on_time, pri_shipped),
        ))
    return report
