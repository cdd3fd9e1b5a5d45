"""
Capacity Ledger

Monthly vendor capacity rows (SS551) and their annual summaries, with a
lock/unlock workflow protecting historical years.

Locked rows are never removed by an import: the unlocked-clear is a
single DELETE whose WHERE clause carries ``is_locked = false``, executed in
the caller's transaction, so a lock committed before the clear is always
honored.
"""
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from merchops.core.settings import settings
from merchops.exceptions import CapacityYearLockedError, NotFoundError, ValidationError
from merchops.logging_config import get_logger
from merchops.models.capacity import VendorCapacityData, VendorCapacitySummary
from merchops.models.purchase_order import PurchaseOrder
from merchops.schemas.capacity import CapacityDriftRow, CapacityImportResult, ClearResult, LockResult
from merchops.schemas.imports import CapacityRow
from merchops.services.vendor_resolution import VendorResolver, normalize_vendor_name

logger = get_logger(__name__)

EDITABLE_FIELDS = {
    "shipment_confirmed",
    "shipment_unconfirmed",
    "total_shipment",
    "projections",
    "reserved_capacity",
    "factory_overall_capacity",
    "remarks",
}


# ============================================================================
# Derived fields
# ============================================================================

def compute_balance(reserved_capacity: Optional[int], total_shipment: Optional[int]) -> int:
    return (reserved_capacity or 0) - (total_shipment or 0)


def compute_utilization(total_shipment: Optional[int], factory_overall_capacity: Optional[int]) -> Optional[float]:
    """Shipped share of factory capacity, 0-100. None when capacity is unknown or zero."""
    if not factory_overall_capacity:
        return None
    pct = (total_shipment or 0) / factory_overall_capacity * 100
    return round(min(max(pct, 0.0), 100.0), 2)


def apply_derived_fields(row: VendorCapacityData) -> None:
    if row.total_shipment is None:
        row.total_shipment = (row.shipment_confirmed or 0) + (row.shipment_unconfirmed or 0)
    row.balance = compute_balance(row.reserved_capacity, row.total_shipment)
    row.utilized_capacity_pct = compute_utilization(row.total_shipment, row.factory_overall_capacity)


# ============================================================================
# Lock workflow
# ============================================================================

def _set_year_lock(db: Session, year: int, locked: bool) -> LockResult:
    data_rows = (
        db.query(VendorCapacityData)
        .filter(VendorCapacityData.year == year)
        .update({VendorCapacityData.is_locked: locked}, synchronize_session=False)
    )
    summary_rows = (
        db.query(VendorCapacitySummary)
        .filter(VendorCapacitySummary.year == year)
        .update({VendorCapacitySummary.is_locked: locked}, synchronize_session=False)
    )
    db.flush()
    db.expire_all()

    logger.info(
        f"Capacity year {year} {'locked' if locked else 'unlocked'}",
        extra={"year": year, "data_rows": data_rows, "summary_rows": summary_rows},
    )
    return LockResult(year=year, data_rows=data_rows, summary_rows=summary_rows)


def lock_capacity_year(db: Session, year: int) -> LockResult:
    """Lock every data and summary row of the year. Idempotent."""
    return _set_year_lock(db, year, True)


def unlock_capacity_year(db: Session, year: int) -> LockResult:
    return _set_year_lock(db, year, False)


def get_locked_capacity_years(db: Session) -> List[int]:
    data_years = db.query(VendorCapacityData.year).filter(VendorCapacityData.is_locked.is_(True)).distinct()
    summary_years = db.query(VendorCapacitySummary.year).filter(VendorCapacitySummary.is_locked.is_(True)).distinct()
    return sorted({y for (y,) in data_years} | {y for (y,) in summary_years})


def clear_unlocked_capacity_data(db: Session, years: Iterable[int]) -> int:
    """Delete unlocked monthly rows for the given years; returns rows deleted."""
    years = sorted(set(years))
    if not years:
        return 0
    return (
        db.query(VendorCapacityData)
        .filter(VendorCapacityData.year.in_(years), VendorCapacityData.is_locked.is_(False))
        .delete(synchronize_session=False)
    )


def clear_unlocked_capacity_summary(db: Session, years: Iterable[int]) -> int:
    years = sorted(set(years))
    if not years:
        return 0
    return (
        db.query(VendorCapacitySummary)
        .filter(VendorCapacitySummary.year.in_(years), VendorCapacitySummary.is_locked.is_(False))
        .delete(synchronize_session=False)
    )


def clear_unlocked_capacity(db: Session, years: Iterable[int]) -> ClearResult:
    years = sorted(set(years))
    data_deleted = clear_unlocked_capacity_data(db, years)
    summary_deleted = clear_unlocked_capacity_summary(db, years)
    db.expire_all()
    return ClearResult(years=years, data_rows_deleted=data_deleted, summary_rows_deleted=summary_deleted)


# ============================================================================
# Queries and edits
# ============================================================================

def get_capacity_data(
    db: Session,
    vendor_code: Optional[str] = None,
    year: Optional[int] = None,
    client: Optional[str] = None,
) -> List[VendorCapacityData]:
    query = db.query(VendorCapacityData)
    if vendor_code:
        query = query.filter(VendorCapacityData.vendor_code == vendor_code.strip().upper())
    if year:
        query = query.filter(VendorCapacityData.year == year)
    if client is not None:
        query = query.filter(VendorCapacityData.client == client)
    return query.order_by(
        VendorCapacityData.vendor_code, VendorCapacityData.year, VendorCapacityData.month, VendorCapacityData.client
    ).all()


def get_capacity_summaries(db: Session, year: Optional[int] = None) -> List[VendorCapacitySummary]:
    query = db.query(VendorCapacitySummary)
    if year:
        query = query.filter(VendorCapacitySummary.year == year)
    return query.order_by(VendorCapacitySummary.vendor_code, VendorCapacitySummary.year).all()


def update_capacity_row(db: Session, row_id: int, changes: Dict) -> VendorCapacityData:
    """
    Edit one monthly row and refresh its vendor-year summary.

    Raises:
        NotFoundError: no such row
        CapacityYearLockedError: the row is locked
        ValidationError: a field outside the editable set
    """
    row = db.query(VendorCapacityData).filter(VendorCapacityData.id == row_id).first()
    if not row:
        raise NotFoundError("VendorCapacityData", row_id)
    if row.is_locked:
        raise CapacityYearLockedError(row.year, vendor_code=row.vendor_code)

    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])

    for name, value in changes.items():
        setattr(row, name, value)
    if "total_shipment" not in changes and ({"shipment_confirmed", "shipment_unconfirmed"} & set(changes)):
        row.total_shipment = None
    apply_derived_fields(row)
    db.flush()

    rebuild_summaries(db, [(row.vendor_code, row.year)])
    return row


# ============================================================================
# Summaries
# ============================================================================

def rebuild_summaries(db: Session, keys: Optional[Iterable[Tuple[str, int]]] = None) -> int:
    """
    Recompute annual summaries from monthly rows.

    ``keys`` limits the rebuild to (vendor_code, year) pairs; locked
    summaries are left as they are. Returns the number of summaries written.
    """
    query = db.query(
        VendorCapacityData.vendor_code,
        VendorCapacityData.year,
        func.max(VendorCapacityData.vendor_id),
        func.max(VendorCapacityData.vendor_name),
        func.sum(VendorCapacityData.total_shipment),
        func.sum(VendorCapacityData.projections),
        func.sum(VendorCapacityData.reserved_capacity),
        func.avg(VendorCapacityData.utilized_capacity_pct),
    ).group_by(VendorCapacityData.vendor_code, VendorCapacityData.year)

    wanted = set(keys) if keys is not None else None
    if wanted is not None:
        if not wanted:
            return 0
        query = query.filter(VendorCapacityData.year.in_({year for _, year in wanted}))

    existing = {
        (s.vendor_code, s.year): s
        for s in db.query(VendorCapacitySummary).all()
    }

    written = 0
    now = datetime.utcnow()
    for vendor_code, year, vendor_id, vendor_name, shipped, projected, reserved, avg_util in query.all():
        if wanted is not None and (vendor_code, year) not in wanted:
            continue
        summary = existing.get((vendor_code, year))
        if summary is not None and summary.is_locked:
            continue
        if summary is None:
            summary = VendorCapacitySummary(vendor_code=vendor_code, year=year)
            db.add(summary)
        summary.vendor_id = vendor_id
        summary.vendor_name = vendor_name
        summary.total_shipment_annual = int(shipped or 0)
        summary.total_projection_annual = int(projected or 0)
        summary.total_reserved_capacity_annual = int(reserved or 0)
        summary.avg_utilization_pct = round(float(avg_util), 2) if avg_util is not None else None
        summary.import_date = now
        written += 1

    db.flush()
    return written


# ============================================================================
# Import
# ============================================================================

def import_capacity_rows(db: Session, rows: Iterable[CapacityRow]) -> CapacityImportResult:
    """
    Replace unlocked capacity data for the years present in ``rows``.

    Incoming rows colliding with a locked row are skipped and counted in
    ``skipped_locked``. Duplicate keys inside the file keep the first
    occurrence. Flushes, does not commit.
    """
    rows = list(rows)
    result = CapacityImportResult()
    if not rows:
        return result

    years = sorted({row.year for row in rows})
    locked_keys = {
        (r.vendor_code, r.year, r.month, r.client)
        for r in db.query(VendorCapacityData).filter(
            VendorCapacityData.year.in_(years), VendorCapacityData.is_locked.is_(True)
        )
    }

    cleared = clear_unlocked_capacity(db, years)
    result.cleared = cleared.data_rows_deleted

    resolver = VendorResolver(db)
    seen = set()
    now = datetime.utcnow()
    for index, row in enumerate(rows, start=1):
        vendor_code = normalize_vendor_name(row.vendor_code)
        key = (vendor_code, row.year, row.month, row.client or "")
        if key in locked_keys:
            result.skipped_locked += 1
            continue
        if key in seen:
            result.errors.append(
                f"Row {index}: duplicate capacity row for {vendor_code} {row.year}-{row.month:02d} '{key[3]}'"
            )
            continue
        seen.add(key)

        vendor_id = resolver.resolve_id(vendor_code) or resolver.resolve_id(row.vendor_name)
        data = VendorCapacityData(
            vendor_id=vendor_id,
            vendor_code=vendor_code,
            vendor_name=row.vendor_name,
            client=key[3],
            year=row.year,
            month=row.month,
            shipment_confirmed=row.shipment_confirmed,
            shipment_unconfirmed=row.shipment_unconfirmed,
            total_shipment=row.total_shipment,
            projections=row.projections,
            reserved_capacity=row.reserved_capacity,
            factory_overall_capacity=row.factory_overall_capacity,
            remarks=row.remarks,
            is_locked=False,
            import_date=now,
        )
        apply_derived_fields(data)
        db.add(data)
        result.created += 1

    db.flush()
    # Every vendor-year in the file, including ones now held only by locked months
    keys = set(
        db.query(VendorCapacityData.vendor_code, VendorCapacityData.year)
        .filter(VendorCapacityData.year.in_(years))
        .distinct()
        .all()
    )
    result.summaries_rebuilt = rebuild_summaries(db, {(code, year) for code, year in keys})

    logger.info(
        f"Capacity import: {result.created} rows created, {result.skipped_locked} skipped (locked)",
        extra={"years": years, "cleared": result.cleared, "summaries": result.summaries_rebuilt},
    )
    return result


# ============================================================================
# Reconciliation
# ============================================================================

def shipped_values_by_vendor(db: Session, year: int) -> Dict[int, int]:
    """PO header shipped_value per canonical vendor for POs dated in ``year``."""
    rows = (
        db.query(PurchaseOrder.vendor_id, func.coalesce(func.sum(PurchaseOrder.shipped_value), 0))
        .filter(
            PurchaseOrder.vendor_id.isnot(None),
            PurchaseOrder.po_date >= date(year, 1, 1),
            PurchaseOrder.po_date <= date(year, 12, 31),
        )
        .group_by(PurchaseOrder.vendor_id)
        .all()
    )
    return {vendor_id: int(total) for vendor_id, total in rows}


def reconcile_capacity(db: Session, year: int, tolerance_cents: Optional[int] = None) -> List[CapacityDriftRow]:
    """
    Compare capacity-confirmed shipments with PO shipped value per vendor.

    Report only: nothing is written. Vendor codes that resolve to no
    canonical vendor are compared against zero.
    """
    tolerance = settings.CAPACITY_DRIFT_TOLERANCE_CENTS if tolerance_cents is None else tolerance_cents
    shipped = shipped_values_by_vendor(db, year)
    resolver = VendorResolver(db)

    confirmed: Dict[str, int] = defaultdict(int)
    vendor_ids: Dict[str, Optional[int]] = {}
    rows = (
        db.query(
            VendorCapacityData.vendor_code,
            func.max(VendorCapacityData.vendor_id),
            func.sum(VendorCapacityData.shipment_confirmed),
        )
        .filter(VendorCapacityData.year == year)
        .group_by(VendorCapacityData.vendor_code)
        .all()
    )
    for vendor_code, vendor_id, total in rows:
        confirmed[vendor_code] += int(total or 0)
        vendor_ids[vendor_code] = vendor_id or resolver.resolve_id(vendor_code)

    report = []
    for vendor_code in sorted(confirmed):
        vendor_id = vendor_ids[vendor_code]
        shipped_value = shipped.get(vendor_id, 0) if vendor_id is not None else 0
        drift = confirmed[vendor_code] - shipped_value
        report.append(CapacityDriftRow(
            vendor_code=vendor_code,
            vendor_id=vendor_id,
            year=year,
            capacity_confirmed=confirmed[vendor_code],
            shipped_value=shipped_value,
            drift=drift,
            has_drift=abs(drift) > tolerance,
        ))

    drifting = sum(1 for r in report if r.has_drift)
    if drifting:
        logger.warning(
            f"Capacity drift for {drifting} vendor(s) in {year}",
            extra={"year": year, "tolerance_cents": tolerance},
        )
    return report
