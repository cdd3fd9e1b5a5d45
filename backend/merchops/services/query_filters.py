"""
Composable query filters

Builds lists of SQLAlchemy clause elements from a DashboardFilter. Only
equality, membership and range predicates are produced and every value
travels as a bound parameter.
"""
from datetime import date
from typing import Any, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.sql.elements import ColumnElement

from merchops.models.purchase_order import PurchaseOrder
from merchops.models.vendor import Vendor
from merchops.schemas.filters import DashboardFilter


class FilterBuilder:
    """
    Accumulates predicates; None/blank values are ignored.

        clauses = (
            FilterBuilder()
            .eq(PurchaseOrder.client, "CB")
            .between(PurchaseOrder.po_date, start, end)
            .build()
        )
        query.filter(*clauses)
    """

    def __init__(self):
        self._clauses: List[ColumnElement] = []

    def eq(self, column, value: Any) -> "FilterBuilder":
        if value is not None and value != "":
            self._clauses.append(column == value)
        return self

    def in_(self, column, values: Optional[Iterable[Any]]) -> "FilterBuilder":
        if values is not None:
            self._clauses.append(column.in_(list(values)))
        return self

    def between(self, column, start: Optional[date] = None, end: Optional[date] = None) -> "FilterBuilder":
        if start is not None:
            self._clauses.append(column >= start)
        if end is not None:
            self._clauses.append(column <= end)
        return self

    def where(self, clause: ColumnElement) -> "FilterBuilder":
        self._clauses.append(clause)
        return self

    def extend(self, other: "FilterBuilder") -> "FilterBuilder":
        self._clauses.extend(other._clauses)
        return self

    def build(self) -> List[ColumnElement]:
        return list(self._clauses)

    def __len__(self) -> int:
        return len(self._clauses)


def effective_cancel_column():
    return func.coalesce(PurchaseOrder.revised_cancel_date, PurchaseOrder.original_cancel_date)


def vendor_scope(flt: DashboardFilter):
    """Subquery of canonical vendor ids matching the vendor-side filters, or None."""
    builder = (
        FilterBuilder()
        .eq(Vendor.name, flt.vendor)
        .eq(Vendor.merchandiser, flt.merchandiser)
        .eq(Vendor.merchandising_manager, flt.merchandising_manager)
    )
    if not len(builder):
        return None
    return select(Vendor.id).where(*builder.build())


def vendor_filter(column, flt: DashboardFilter) -> FilterBuilder:
    """Restrict any vendor_id column to the filter's vendor scope."""
    builder = FilterBuilder()
    scope = vendor_scope(flt)
    if scope is not None:
        builder.where(column.in_(scope))
    return builder


def po_filter(flt: Optional[DashboardFilter], include_dates: bool = True) -> FilterBuilder:
    """
    Predicates on po_headers for a dashboard filter.

    Vendor-side filters become an ``IN (SELECT vendors.id ...)`` so callers
    do not need to join vendors. Dates apply to the effective cancel date.
    """
    flt = flt or DashboardFilter()
    builder = vendor_filter(PurchaseOrder.vendor_id, flt)
    builder.eq(PurchaseOrder.client, flt.client)
    if include_dates:
        builder.between(effective_cancel_column(), flt.start_date, flt.end_date)
    return builder


def reportable_po_filter(flt: Optional[DashboardFilter], include_dates: bool = True) -> FilterBuilder:
    """po_filter plus the exclusion rule (franchise, 8X8, zero value, samples)."""
    return po_filter(flt, include_dates).where(PurchaseOrder.is_excluded.is_(False))
