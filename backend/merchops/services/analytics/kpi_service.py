"""
KPI Service - dashboard, header and staff KPIs

Dashboard KPIs read the persisted classification columns on po_headers,
so they agree with any SQL a user runs against the same tables. Header
KPIs are point-in-time YoY: this year through ``as_of`` against last
year through the same date.
"""
from datetime import date
from typing import Dict, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from merchops.core.status_config import StaffRole
from merchops.exceptions import NotFoundError
from merchops.logging_config import get_logger
from merchops.models.projection import ActiveProjection
from merchops.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from merchops.models.quality import Inspection
from merchops.models.staff import Staff
from merchops.schemas.analytics import DashboardKPIs, HeaderKPIs, StaffKPIs
from merchops.schemas.filters import DashboardFilter
from merchops.services.analytics.queries import (
    ON_TIME, LATE, shipment_rollup, count_if, sum_if, is_shipped_otd, as_int,
)
from merchops.services.analytics.yoy import (
    pct, yoy, ytd_window, prior_ytd_window, same_date_prior_year,
)
from merchops.services.query_filters import reportable_po_filter, vendor_filter

logger = get_logger(__name__)


# ============================================================================
# Role scoping
# ============================================================================

def role_filter(staff: Staff, base: Optional[DashboardFilter] = None) -> DashboardFilter:
    """
    Filter for a staff member's rollup, derived from the stored role only.

    Org leads see everything, team leads their merchandising manager
    scope, everyone else their merchandiser scope. Date and client
    filters from ``base`` are kept.
    """
    base = base or DashboardFilter()
    scoped = base.model_copy(update={"merchandiser": None, "merchandising_manager": None})

    role = StaffRole(staff.role)
    if role == StaffRole.ORG_LEAD:
        return scoped
    if role == StaffRole.TEAM_LEAD:
        return scoped.model_copy(update={"merchandising_manager": staff.name})
    return scoped.model_copy(update={"merchandiser": staff.name})


# ============================================================================
# Dashboard
# ============================================================================

def compute_dashboard_kpis(db: Session, flt: Optional[DashboardFilter] = None) -> DashboardKPIs:
    """
    OTD, backlog, risk and inspection KPIs for non-excluded POs.

    Rates:
        otd_pct          on-time / shipped (amnesty counts as on-time)
        original_otd_pct on-time vs original cancel / shipped
        revised_otd_pct  on-time / (shipped + overdue unshipped)
    """
    flt = flt or DashboardFilter()
    clauses = reportable_po_filter(flt).build()

    on_time = PurchaseOrder.otd_status == ON_TIME
    late = PurchaseOrder.otd_status == LATE
    shipped = is_shipped_otd()
    overdue = PurchaseOrder.is_late.is_(True)
    at_risk = PurchaseOrder.is_at_risk.is_(True)

    row = db.query(
        func.count(PurchaseOrder.id),
        count_if(shipped),
        count_if(on_time),
        count_if(late),
        count_if(PurchaseOrder.original_otd_status == ON_TIME),
        count_if(PurchaseOrder.original_otd_status.in_([ON_TIME, LATE])),
        count_if(and_(on_time, PurchaseOrder.days_late > 0)),
        func.avg(PurchaseOrder.days_late).filter(late),
        sum_if(shipped, PurchaseOrder.total_value),
        sum_if(on_time, PurchaseOrder.total_value),
        count_if(overdue),
        sum_if(overdue, PurchaseOrder.total_value),
        count_if(at_risk),
        sum_if(at_risk, PurchaseOrder.total_value),
        func.count(PurchaseOrder.id).filter(PurchaseOrder.vendor_id.is_(None)),
        func.count(PurchaseOrder.id).filter(PurchaseOrder.classified_at.is_(None)),
    ).filter(*clauses).one()

    (
        total_pos, shipped_count, on_time_count, late_count,
        original_on_time, original_shipped, amnesty_count, avg_days_late,
        shipped_value, on_time_value, overdue_count, overdue_value,
        at_risk_count, at_risk_value, unresolved, unclassified,
    ) = row

    finals, final_passed = _final_inspection_counts(db, clauses)

    errors = []
    if unresolved:
        errors.append(f"{unresolved} purchase order(s) have no canonical vendor")
    if unclassified:
        errors.append(f"{unclassified} purchase order(s) have not been classified yet")

    shipped_count = as_int(shipped_count)
    on_time_count = as_int(on_time_count)
    overdue_count = as_int(overdue_count)

    return DashboardKPIs(
        total_pos=as_int(total_pos),
        shipped_count=shipped_count,
        on_time_count=on_time_count,
        late_count=as_int(late_count),
        otd_pct=pct(on_time_count, shipped_count),
        original_on_time_count=as_int(original_on_time),
        original_otd_pct=pct(as_int(original_on_time), as_int(original_shipped)),
        amnesty_count=as_int(amnesty_count),
        avg_days_late=round(float(avg_days_late), 1) if avg_days_late is not None else None,
        shipped_value=as_int(shipped_value),
        on_time_value=as_int(on_time_value),
        otd_value_pct=pct(as_int(on_time_value), as_int(shipped_value)),
        overdue_unshipped_count=overdue_count,
        overdue_backlog_value=as_int(overdue_value),
        revised_otd_pct=pct(on_time_count, shipped_count + overdue_count),
        at_risk_count=as_int(at_risk_count),
        at_risk_value=as_int(at_risk_value),
        final_inspections=finals,
        final_inspection_pass_rate=pct(final_passed, finals),
        errors=errors,
    )


def _final_inspection_counts(db: Session, po_clauses) -> tuple:
    is_final = func.lower(Inspection.inspection_type).like("%final%")
    passed = func.lower(func.coalesce(Inspection.result, "")).like("pass%")
    row = (
        db.query(func.count(Inspection.id), count_if(passed))
        .join(PurchaseOrder, PurchaseOrder.po_number == Inspection.po_number)
        .filter(is_final, *po_clauses)
        .one()
    )
    return as_int(row[0]), as_int(row[1])


# ============================================================================
# Header (point-in-time YoY)
# ============================================================================

def _period_totals(db: Session, flt: DashboardFilter, start: date, end: date) -> Dict[str, int]:
    po_clauses = reportable_po_filter(flt, include_dates=False).build()
    rollup = shipment_rollup()
    sailed_in_window = and_(rollup.c.first_sailed >= start, rollup.c.first_sailed <= end)

    # Revenue: header shipped_value once per PO, dated by its first sailing
    shipped_sales, shipped_orders = (
        db.query(func.coalesce(func.sum(PurchaseOrder.shipped_value), 0), func.count(PurchaseOrder.id))
        .join(rollup, rollup.c.po_number == PurchaseOrder.po_number)
        .filter(sailed_in_window, *po_clauses)
        .one()
    )

    ordered_in_window = and_(PurchaseOrder.po_date >= start, PurchaseOrder.po_date <= end)
    total_pos = db.query(func.count(PurchaseOrder.id)).filter(ordered_in_window, *po_clauses).scalar()
    total_skus = (
        db.query(func.count(func.distinct(PurchaseOrderLine.sku)))
        .join(PurchaseOrder, PurchaseOrder.po_number == PurchaseOrderLine.po_number)
        .filter(ordered_in_window, PurchaseOrderLine.sku.isnot(None), *po_clauses)
        .scalar()
    )

    first_ordered = (
        select(
            PurchaseOrderLine.sku.label("sku"),
            func.min(PurchaseOrder.po_date).label("first_po_date"),
        )
        .join(PurchaseOrder, PurchaseOrder.po_number == PurchaseOrderLine.po_number)
        .where(PurchaseOrderLine.sku.isnot(None), *po_clauses)
        .group_by(PurchaseOrderLine.sku)
        .subquery("first_ordered")
    )
    is_new = and_(first_ordered.c.first_po_date >= start, first_ordered.c.first_po_date <= end)
    new_skus = db.query(func.count(first_ordered.c.sku)).filter(is_new).scalar()

    new_sales, existing_sales = (
        db.query(
            sum_if(is_new, PurchaseOrderLine.line_total),
            sum_if(~is_new, PurchaseOrderLine.line_total),
        )
        .select_from(PurchaseOrderLine)
        .join(PurchaseOrder, PurchaseOrder.po_number == PurchaseOrderLine.po_number)
        .join(rollup, rollup.c.po_number == PurchaseOrder.po_number)
        .join(first_ordered, first_ordered.c.sku == PurchaseOrderLine.sku)
        .filter(sailed_in_window, *po_clauses)
        .one()
    )

    projections = (
        db.query(func.coalesce(func.sum(ActiveProjection.projection_value), 0))
        .filter(
            ActiveProjection.year == start.year,
            ActiveProjection.month <= end.month,
            *vendor_filter(ActiveProjection.vendor_id, flt).build(),
        )
        .scalar()
    )

    return {
        "shipped_sales": as_int(shipped_sales),
        "shipped_orders": as_int(shipped_orders),
        "total_pos": as_int(total_pos),
        "total_skus": as_int(total_skus),
        "new_skus": as_int(new_skus),
        "new_sku_sales": as_int(new_sales),
        "existing_sku_sales": as_int(existing_sales),
        "projections": as_int(projections),
    }


def compute_header_kpis(
    db: Session,
    flt: Optional[DashboardFilter] = None,
    as_of: Optional[date] = None,
) -> HeaderKPIs:
    """YTD header metrics with their point-in-time prior-year counterparts."""
    as_of = as_of or date.today()
    flt = (flt or DashboardFilter()).without_dates()

    current = _period_totals(db, flt, *ytd_window(as_of))
    prior = _period_totals(db, flt, *prior_ytd_window(as_of))

    return HeaderKPIs(
        as_of=as_of,
        comparison_date=same_date_prior_year(as_of),
        ytd_shipped_sales=yoy(current["shipped_sales"], prior["shipped_sales"]),
        ytd_shipped_orders=yoy(current["shipped_orders"], prior["shipped_orders"]),
        total_pos=yoy(current["total_pos"], prior["total_pos"]),
        total_skus=yoy(current["total_skus"], prior["total_skus"]),
        new_skus=yoy(current["new_skus"], prior["new_skus"]),
        new_sku_sales=yoy(current["new_sku_sales"], prior["new_sku_sales"]),
        existing_sku_sales=yoy(current["existing_sku_sales"], prior["existing_sku_sales"]),
        ytd_projections=yoy(current["projections"], prior["projections"]),
    )


# ============================================================================
# Staff
# ============================================================================

def compute_staff_kpis(
    db: Session,
    staff_id: int,
    as_of: Optional[date] = None,
    flt: Optional[DashboardFilter] = None,
) -> StaffKPIs:
    """Dashboard and header KPIs scoped by the staff member's role."""
    staff = db.query(Staff).filter(Staff.id == staff_id).first()
    if not staff:
        raise NotFoundError("Staff", staff_id)

    scoped = role_filter(staff, flt)
    logger.debug(
        f"Staff KPIs for {staff.name}",
        extra={"staff_id": staff.id, "role": staff.role},
    )
    return StaffKPIs(
        staff_id=staff.id,
        name=staff.name,
        role=staff.role,
        dashboard=compute_dashboard_kpis(db, scoped),
        header=compute_header_kpis(db, scoped, as_of),
    )
