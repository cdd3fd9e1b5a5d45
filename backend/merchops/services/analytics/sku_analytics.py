"""
SKU analytics - YoY sales per SKU and single-SKU shipping stats
"""
from datetime import date
from typing import List, Optional

from sqlalchemy import and_, case, func
from sqlalchemy.orm import Session

from merchops.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from merchops.schemas.analytics import SkuSalesRow, SkuShippingStats
from merchops.schemas.filters import DashboardFilter
from merchops.services.analytics.queries import ON_TIME, shipment_rollup, sum_if, is_shipped_otd, as_int
from merchops.services.analytics.yoy import change_pct, pct, yoy, ytd_window, prior_ytd_window
from merchops.services.query_filters import reportable_po_filter


def sku_yoy_sales(
    db: Session,
    as_of: Optional[date] = None,
    flt: Optional[DashboardFilter] = None,
    limit: int = 50,
) -> List[SkuSalesRow]:
    """
    Shipped line value per SKU, YTD vs prior YTD (point-in-time).

    A line's value is recognized on its PO's first sailing date.
    """
    as_of = as_of or date.today()
    flt = (flt or DashboardFilter()).without_dates()
    cur_start, cur_end = ytd_window(as_of)
    pri_start, pri_end = prior_ytd_window(as_of)

    rollup = shipment_rollup()
    sailed = rollup.c.first_sailed
    in_current = and_(sailed >= cur_start, sailed <= cur_end)
    in_prior = and_(sailed >= pri_start, sailed <= pri_end)

    current_sales = sum_if(in_current, PurchaseOrderLine.line_total)
    rows = (
        db.query(
            PurchaseOrderLine.sku,
            current_sales,
            sum_if(in_prior, PurchaseOrderLine.line_total),
        )
        .join(PurchaseOrder, PurchaseOrder.po_number == PurchaseOrderLine.po_number)
        .join(rollup, rollup.c.po_number == PurchaseOrder.po_number)
        .filter(
            PurchaseOrderLine.sku.isnot(None),
            sailed >= pri_start,
            sailed <= cur_end,
            *reportable_po_filter(flt).build(),
        )
        .group_by(PurchaseOrderLine.sku)
        .order_by(current_sales.desc(), PurchaseOrderLine.sku)
        .limit(limit)
        .all()
    )
    return [
        SkuSalesRow(
            sku=sku,
            current_sales=as_int(cur),
            prior_sales=as_int(pri),
            change_pct=change_pct(as_int(cur), as_int(pri)),
        )
        for sku, cur, pri in rows
    ]


def _sku_period(db: Session, sku: str, flt: DashboardFilter, start: date, end: date) -> dict:
    clauses = reportable_po_filter(flt).build()
    ordered = and_(PurchaseOrder.po_date >= start, PurchaseOrder.po_date <= end)

    orders, quantity = (
        db.query(
            func.count(func.distinct(PurchaseOrder.id)),
            func.coalesce(func.sum(PurchaseOrderLine.order_quantity), 0),
        )
        .select_from(PurchaseOrderLine)
        .join(PurchaseOrder, PurchaseOrder.po_number == PurchaseOrderLine.po_number)
        .filter(PurchaseOrderLine.sku == sku, ordered, *clauses)
        .one()
    )

    rollup = shipment_rollup()
    delivered = rollup.c.delivered
    shipped, on_time = (
        db.query(
            func.count(func.distinct(PurchaseOrder.id)),
            func.count(func.distinct(case((PurchaseOrder.otd_status == ON_TIME, PurchaseOrder.id)))),
        )
        .select_from(PurchaseOrderLine)
        .join(PurchaseOrder, PurchaseOrder.po_number == PurchaseOrderLine.po_number)
        .join(rollup, rollup.c.po_number == PurchaseOrder.po_number)
        .filter(
            PurchaseOrderLine.sku == sku,
            is_shipped_otd(),
            delivered >= start,
            delivered <= end,
            *clauses,
        )
        .one()
    )
    return {
        "orders": as_int(orders),
        "quantity": as_int(quantity),
        "shipped": as_int(shipped),
        "on_time": as_int(on_time),
    }


def sku_shipping_stats(
    db: Session,
    sku: str,
    as_of: Optional[date] = None,
    flt: Optional[DashboardFilter] = None,
) -> SkuShippingStats:
    as_of = as_of or date.today()
    flt = (flt or DashboardFilter()).without_dates()
    current = _sku_period(db, sku, flt, *ytd_window(as_of))
    prior = _sku_period(db, sku, flt, *prior_ytd_window(as_of))

    return SkuShippingStats(
        sku=sku,
        as_of=as_of,
        orders=yoy(current["orders"], prior["orders"]),
        quantity_ordered=yoy(current["quantity"], prior["quantity"]),
        shipped_orders=yoy(current["shipped"], prior["shipped"]),
        on_time_orders=yoy(current["on_time"], prior["on_time"]),
        otd_pct_current=pct(current["on_time"], current["shipped"]),
        otd_pct_prior=pct(prior["on_time"], prior["shipped"]),
    )
