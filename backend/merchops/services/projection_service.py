"""
Projection Service

Snapshot recording, the active-projection rebuild, manual overrides and
the review views (overdue, variance, SPO, summary).

Import flow:
    1. record_snapshots     - append the forecast rows, write-once
    2. rebuild_active_projections - pure: snapshots + prior overrides -> new set
    3. import_projections   - runs 1 and 2 and swaps the active table in the
                              caller's transaction
The automatic matcher is run separately (see projection_matching).
"""
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from merchops.core.settings import settings
from merchops.core.status_config import MatchStatus, OrderType, is_valid_match_transition
from merchops.exceptions import InvalidStateError, NotFoundError
from merchops.logging_config import get_logger
from merchops.models.projection import ActiveProjection, ProjectionSnapshot
from merchops.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from merchops.schemas.imports import ProjectionRow
from merchops.schemas.projection import (
    ActiveProjectionResponse,
    ProjectionDue,
    ProjectionImportResult,
    ProjectionValidationSummary,
)
from merchops.services.projection_matching import compute_variance, exceeds_variance_alert
from merchops.services.query_filters import FilterBuilder
from merchops.services.vendor_resolution import VendorResolver

logger = get_logger(__name__)

ProjectionKey = Tuple[str, str, int, int]

SPO_ORDER_TYPES = (OrderType.MTO.value, OrderType.SPO.value)


def projection_key(row) -> ProjectionKey:
    return (row.vendor_code.strip().upper(), row.sku.strip().upper(), row.year, row.month)


# ============================================================================
# Snapshots
# ============================================================================

def record_snapshots(
    db: Session,
    rows: Iterable[ProjectionRow],
    import_date: date,
    imported_by: Optional[str] = None,
) -> Tuple[List[ProjectionSnapshot], ProjectionImportResult]:
    """
    Append one snapshot per forecast row.

    Snapshots are never updated: a row whose key already exists for this
    import date is skipped, as is a repeat of a key inside the same file.
    Rows without a vendor code are reported and skipped.
    """
    result = ProjectionImportResult()
    rows = list(rows)

    existing = {
        projection_key(s)
        for s in db.query(ProjectionSnapshot).filter(ProjectionSnapshot.import_date == import_date).all()
    }

    created: List[ProjectionSnapshot] = []
    for index, row in enumerate(rows, start=1):
        if not row.vendor_code or not row.vendor_code.strip():
            result.snapshots_skipped += 1
            result.errors.append(f"Row {index} ({row.sku}): missing vendor code")
            continue
        key = projection_key(row)
        if key in existing:
            result.snapshots_skipped += 1
            continue
        existing.add(key)

        snapshot = ProjectionSnapshot(
            vendor_code=key[0],
            sku=key[1],
            sku_description=row.sku_description,
            brand=row.brand,
            collection=row.collection,
            year=row.year,
            month=row.month,
            projection_value=row.projection_value,
            quantity=row.quantity,
            order_type=row.order_type.value,
            import_date=import_date,
            imported_by=imported_by,
        )
        db.add(snapshot)
        created.append(snapshot)

    db.flush()
    result.snapshots_created = len(created)
    return created, result


# ============================================================================
# Active rebuild
# ============================================================================

@dataclass
class ActiveProjectionState:
    """Target state of one active projection row"""
    vendor_code: str
    sku: str
    year: int
    month: int
    snapshot_id: Optional[int] = None
    sku_description: Optional[str] = None
    brand: Optional[str] = None
    collection: Optional[str] = None
    projection_value: int = 0
    quantity: int = 0
    order_type: str = OrderType.REGULAR.value
    last_snapshot_date: Optional[date] = None

    match_status: str = MatchStatus.UNMATCHED.value
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

    @property
    def key(self) -> ProjectionKey:
        return (self.vendor_code, self.sku, self.year, self.month)


_MANUAL_FIELDS = (
    "match_status", "matched_po_number", "matched_at",
    "actual_quantity", "actual_value", "is_manual",
)
_COMMENT_FIELDS = ("comment", "commented_at", "commented_by")


def rebuild_active_projections(snapshots: Iterable, prior_actives: Iterable) -> List[ActiveProjectionState]:
    """
    Derive the active projection set from the snapshot archive.

    For each vendor code the newest import date defines its current
    forecast; keys that only appear in older imports for that vendor drop
    out. Each surviving key takes the values of its newest snapshot.

    From the prior active rows, user comments are always carried over and
    manual match overrides are carried over with variance recomputed against
    the new forecast values. Automatic match results are not carried over;
    the next matching pass recomputes them.

    Args:
        snapshots: ProjectionSnapshot rows (or objects with the same attributes)
        prior_actives: current ActiveProjection rows

    Returns:
        New active set ordered by (year, month, vendor_code, sku)
    """
    snapshots = list(snapshots)
    latest_import: Dict[str, date] = {}
    for snap in snapshots:
        vendor = snap.vendor_code.strip().upper()
        if vendor not in latest_import or snap.import_date > latest_import[vendor]:
            latest_import[vendor] = snap.import_date

    newest: Dict[ProjectionKey, object] = {}
    for snap in snapshots:
        key = projection_key(snap)
        if snap.import_date != latest_import[key[0]]:
            continue
        current = newest.get(key)
        if current is None or (snap.id or 0) > (current.id or 0):
            newest[key] = snap

    prior_by_key = {projection_key(p): p for p in prior_actives}

    rebuilt = []
    for key, snap in newest.items():
        state = ActiveProjectionState(
            vendor_code=key[0],
            sku=key[1],
            year=key[2],
            month=key[3],
            snapshot_id=snap.id,
            sku_description=snap.sku_description,
            brand=snap.brand,
            collection=snap.collection,
            projection_value=snap.projection_value or 0,
            quantity=snap.quantity or 0,
            order_type=snap.order_type or OrderType.REGULAR.value,
            last_snapshot_date=snap.import_date,
        )

        prior = prior_by_key.get(key)
        if prior is not None:
            state = replace(state, **{name: getattr(prior, name) for name in _COMMENT_FIELDS})
            if prior.is_manual:
                state = replace(state, **{name: getattr(prior, name) for name in _MANUAL_FIELDS})
                if state.matched_po_number:
                    variance = compute_variance(
                        state.quantity, state.projection_value,
                        state.actual_quantity or 0, state.actual_value or 0,
                    )
                    state.quantity_variance = variance.quantity_variance
                    state.value_variance = variance.value_variance
                    state.variance_pct = variance.variance_pct
        rebuilt.append(state)

    rebuilt.sort(key=lambda s: (s.year, s.month, s.vendor_code, s.sku))
    return rebuilt


_STATE_FIELDS = [f.name for f in fields(ActiveProjectionState)]


def import_projections(
    db: Session,
    rows: Iterable[ProjectionRow],
    import_date: date,
    imported_by: Optional[str] = None,
) -> ProjectionImportResult:
    """
    Record a forecast import and replace the active projection table.

    Rows are updated in place by key so ids stay stable; keys no longer in
    the forecast are deleted. Flushes, does not commit.
    """
    _, result = record_snapshots(db, rows, import_date, imported_by)

    prior = db.query(ActiveProjection).all()
    snapshots = db.query(ProjectionSnapshot).all()
    states = rebuild_active_projections(snapshots, prior)

    resolver = VendorResolver(db)
    prior_by_key = {projection_key(p): p for p in prior}
    target_keys = set()

    for state in states:
        target_keys.add(state.key)
        row = prior_by_key.get(state.key)
        if row is None:
            row = ActiveProjection()
            db.add(row)
            result.active_created += 1
        else:
            result.active_replaced += 1
        for name in _STATE_FIELDS:
            setattr(row, name, getattr(state, name))
        row.vendor_id = resolver.resolve_id(state.vendor_code)
        if row.vendor_id is None:
            result.errors.append(f"Vendor code {state.vendor_code} does not resolve to a vendor")

    for key, row in prior_by_key.items():
        if key not in target_keys:
            db.delete(row)
            result.active_removed += 1

    db.flush()
    # One message per unresolved code
    result.errors = list(dict.fromkeys(result.errors))

    logger.info(
        f"Projection import {import_date}: {result.snapshots_created} snapshots, "
        f"{result.active_created} new / {result.active_replaced} replaced / "
        f"{result.active_removed} removed active rows",
        extra={"import_date": import_date.isoformat(), "imported_by": imported_by},
    )
    return result


# ============================================================================
# Manual actions
# ============================================================================

def get_projection(db: Session, projection_id: int) -> ActiveProjection:
    projection = db.query(ActiveProjection).filter(ActiveProjection.id == projection_id).first()
    if not projection:
        raise NotFoundError("ActiveProjection", projection_id)
    return projection


def _check_transition(projection: ActiveProjection, new_status: MatchStatus) -> None:
    if not is_valid_match_transition(projection.match_status, new_status):
        raise InvalidStateError(
            f"Cannot change projection {projection.id} from '{projection.match_status}' to '{new_status.value}'",
            current_state=projection.match_status,
            allowed_states=[s.value for s in MatchStatus if is_valid_match_transition(projection.match_status, s)],
        )


def _clear_match_fields(projection: ActiveProjection) -> None:
    projection.matched_po_number = None
    projection.matched_at = None
    projection.actual_quantity = None
    projection.actual_value = None
    projection.quantity_variance = None
    projection.value_variance = None
    projection.variance_pct = None


def mark_projection_removed(
    db: Session,
    projection_id: int,
    reason: str,
    removed_by: Optional[str] = None,
) -> ActiveProjection:
    """Expire a projection the vendor will not order; the matcher leaves it alone afterwards."""
    projection = get_projection(db, projection_id)
    _check_transition(projection, MatchStatus.EXPIRED)

    projection.match_status = MatchStatus.EXPIRED.value
    projection.is_manual = True
    _clear_match_fields(projection)
    projection.comment = f"Removed: {reason}"
    projection.commented_at = datetime.utcnow()
    projection.commented_by = removed_by
    db.flush()

    logger.info(
        f"Projection {projection_id} marked removed",
        extra={"projection_id": projection_id, "removed_by": removed_by},
    )
    return projection


def unmatch_projection(db: Session, projection_id: int) -> ActiveProjection:
    """Clear a match and hand the projection back to the automatic matcher."""
    projection = get_projection(db, projection_id)
    _check_transition(projection, MatchStatus.UNMATCHED)

    projection.match_status = MatchStatus.UNMATCHED.value
    projection.is_manual = False
    _clear_match_fields(projection)
    db.flush()
    return projection


def manual_match_projection(
    db: Session,
    projection_id: int,
    po_number: str,
    matched_by: Optional[str] = None,
) -> ActiveProjection:
    """
    Pin a projection to a PO chosen by a user.

    Actuals come from the PO line carrying the projection's SKU when there
    is one, otherwise from the PO header totals.
    """
    po_number = po_number.strip()
    po = db.query(PurchaseOrder).filter(PurchaseOrder.po_number == po_number).first()
    if not po:
        raise NotFoundError("PurchaseOrder", po_number)
    projection = get_projection(db, projection_id)
    _check_transition(projection, MatchStatus.MATCHED)

    line = (
        db.query(PurchaseOrderLine)
        .filter(
            PurchaseOrderLine.po_number == po_number,
            func.upper(PurchaseOrderLine.sku) == projection.sku.strip().upper(),
        )
        .order_by(PurchaseOrderLine.line_sequence)
        .first()
    )
    if line is not None:
        actual_quantity, actual_value = line.order_quantity or 0, line.line_total or 0
    else:
        actual_quantity, actual_value = po.total_quantity or 0, po.total_value or 0

    variance = compute_variance(projection.quantity, projection.projection_value, actual_quantity, actual_value)
    projection.match_status = MatchStatus.MATCHED.value
    projection.matched_po_number = po_number
    projection.matched_at = datetime.utcnow()
    projection.actual_quantity = actual_quantity
    projection.actual_value = actual_value
    projection.quantity_variance = variance.quantity_variance
    projection.value_variance = variance.value_variance
    projection.variance_pct = variance.variance_pct
    projection.is_manual = True
    db.flush()

    logger.info(
        f"Projection {projection_id} manually matched to PO {po_number}",
        extra={"projection_id": projection_id, "po_number": po_number, "matched_by": matched_by},
    )
    return projection


def update_projection_order_type(db: Session, projection_id: int, order_type: OrderType) -> ActiveProjection:
    projection = get_projection(db, projection_id)
    projection.order_type = OrderType(order_type).value
    db.flush()
    return projection


def comment_projection(
    db: Session,
    projection_id: int,
    comment: Optional[str],
    commented_by: Optional[str] = None,
) -> ActiveProjection:
    """Set or clear the user comment. Comments survive re-imports."""
    projection = get_projection(db, projection_id)
    comment = comment.strip() if comment else None
    projection.comment = comment or None
    projection.commented_at = datetime.utcnow() if comment else None
    projection.commented_by = commented_by if comment else None
    db.flush()
    return projection


# ============================================================================
# Review views
# ============================================================================

def _projection_filter(
    vendor_id: Optional[int] = None,
    brand: Optional[str] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> FilterBuilder:
    return (
        FilterBuilder()
        .eq(ActiveProjection.vendor_id, vendor_id)
        .eq(ActiveProjection.brand, brand)
        .eq(ActiveProjection.year, year)
        .eq(ActiveProjection.month, month)
    )


def _not_spo():
    return ActiveProjection.order_type.notin_(SPO_ORDER_TYPES)


def days_until_target(year: int, month: int, as_of: date) -> int:
    """Days from as_of to the first day of the target month (negative once it has started)."""
    return (date(year, month, 1) - as_of).days


def _with_due(projection: ActiveProjection, as_of: date) -> ProjectionDue:
    base = ActiveProjectionResponse.model_validate(projection).model_dump()
    days_until = None
    is_overdue = False
    if projection.match_status == MatchStatus.UNMATCHED.value:
        days_until = days_until_target(projection.year, projection.month, as_of)
        is_overdue = days_until < 0
    return ProjectionDue(**base, days_until=days_until, is_overdue=is_overdue)


def get_overdue_projections(
    db: Session,
    as_of: Optional[date] = None,
    days_threshold: Optional[int] = None,
    **filters,
) -> List[ProjectionDue]:
    """
    Unmatched regular projections whose target month starts within
    ``days_threshold`` days (or has already started), soonest first.
    """
    as_of = as_of or date.today()
    days_threshold = settings.OVERDUE_PROJECTION_DAYS if days_threshold is None else days_threshold

    rows = (
        db.query(ActiveProjection)
        .filter(
            ActiveProjection.match_status == MatchStatus.UNMATCHED.value,
            _not_spo(),
            *_projection_filter(**filters).build(),
        )
        .all()
    )
    due = [_with_due(p, as_of) for p in rows]
    due = [p for p in due if p.days_until <= days_threshold]
    due.sort(key=lambda p: (p.days_until, p.vendor_code, p.sku))
    return due


def get_projections_with_variance(
    db: Session,
    min_variance_pct: Optional[float] = None,
    **filters,
) -> List[ActiveProjection]:
    """Matched regular projections whose value variance exceeds the threshold, largest first."""
    min_variance_pct = settings.VARIANCE_ALERT_PCT if min_variance_pct is None else min_variance_pct
    return (
        db.query(ActiveProjection)
        .filter(
            ActiveProjection.match_status == MatchStatus.MATCHED.value,
            ActiveProjection.variance_pct.isnot(None),
            func.abs(ActiveProjection.variance_pct) > min_variance_pct,
            _not_spo(),
            *_projection_filter(**filters).build(),
        )
        .order_by(func.abs(ActiveProjection.variance_pct).desc(), ActiveProjection.id)
        .all()
    )


def get_spo_projections(db: Session, as_of: Optional[date] = None, **filters) -> List[ProjectionDue]:
    """MTO/SPO projections, newest target month first."""
    as_of = as_of or date.today()
    rows = (
        db.query(ActiveProjection)
        .filter(
            ActiveProjection.order_type.in_(SPO_ORDER_TYPES),
            *_projection_filter(**filters).build(),
        )
        .order_by(ActiveProjection.year.desc(), ActiveProjection.month.desc(), ActiveProjection.id)
        .all()
    )
    return [_with_due(p, as_of) for p in rows]


def get_projection_validation_summary(
    db: Session,
    as_of: Optional[date] = None,
    **filters,
) -> ProjectionValidationSummary:
    as_of = as_of or date.today()
    clauses = _projection_filter(**filters).build()
    summary = ProjectionValidationSummary()

    status_counts = (
        db.query(ActiveProjection.match_status, func.count(ActiveProjection.id))
        .filter(*clauses)
        .group_by(ActiveProjection.match_status)
        .all()
    )
    for status, count in status_counts:
        summary.total_projections += count
        if status in (MatchStatus.UNMATCHED.value, MatchStatus.MATCHED.value,
                      MatchStatus.PARTIAL.value, MatchStatus.EXPIRED.value):
            setattr(summary, status, count)

    open_regular = (
        db.query(ActiveProjection.year, ActiveProjection.month)
        .filter(
            ActiveProjection.match_status == MatchStatus.UNMATCHED.value,
            _not_spo(),
            *clauses,
        )
        .all()
    )
    for year, month in open_regular:
        days_until = days_until_target(year, month, as_of)
        if days_until < 0:
            summary.overdue += 1
        elif days_until <= settings.OVERDUE_PROJECTION_DAYS:
            summary.at_risk += 1

    variances = (
        db.query(ActiveProjection.variance_pct)
        .filter(
            ActiveProjection.match_status == MatchStatus.MATCHED.value,
            _not_spo(),
            *clauses,
        )
        .all()
    )
    summary.with_variance = sum(1 for (pct,) in variances if exceeds_variance_alert(pct))

    spo = (
        db.query(ActiveProjection.match_status, func.count(ActiveProjection.id))
        .filter(ActiveProjection.order_type.in_(SPO_ORDER_TYPES), *clauses)
        .group_by(ActiveProjection.match_status)
        .all()
    )
    for status, count in spo:
        summary.spo_total += count
        if status in (MatchStatus.MATCHED.value, MatchStatus.PARTIAL.value):
            summary.spo_matched += count
        elif status == MatchStatus.UNMATCHED.value:
            summary.spo_unmatched += count

    return summary
