"""
Import Reconciliation

Merges imported rows into existing entities by natural key without
touching linked child data:

    PurchaseOrder      (po_number)
    PurchaseOrderLine  (po_number, line_sequence)
    Shipment           (po_number, shipment_number)
    Inspection         (sku, inspection_type, inspection_date, po_number)
    QualityTest        (sku, test_type, report_date, po_number)

Every upsert goes through ``upsert_rows``: the existing rows are indexed
under a row lock, incoming rows are split into inserts and updates, and the
writes run in batches of ``IMPORT_BATCH_SIZE``, each inside a savepoint.
A failing batch is rolled back and reported; later batches still run.
Nothing here commits.
"""
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from merchops.core.settings import settings
from merchops.core.status_config import VendorDecisionAction
from merchops.exceptions import ValidationError, VendorDecisionRequired
from merchops.logging_config import get_logger
from merchops.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from merchops.models.quality import Inspection, QualityTest
from merchops.models.shipment import Shipment
from merchops.models.timeline import POTimelineMilestone
from merchops.models.vendor import Vendor, VendorAlias
from merchops.schemas.common import ImportResult
from merchops.schemas.imports import (
    InspectionRow,
    PurchaseOrderRow,
    QualityTestRow,
    ShipmentRow,
    VendorDecision,
)
from merchops.services.classification_service import ClassificationService
from merchops.services.projection_matching import match_projections
from merchops.services.vendor_resolution import VendorResolver, normalize_vendor_name

logger = get_logger(__name__)


# ============================================================================
# Generic batched upsert
# ============================================================================

@dataclass(frozen=True)
class EntitySpec:
    """How one entity is keyed for reconciliation"""
    model: Any
    key_fields: Tuple[str, ...]
    # Non-null key column used to narrow the index query
    index_field: str
    label: str

    def key_of(self, values) -> Tuple:
        if isinstance(values, dict):
            return tuple(values.get(name) for name in self.key_fields)
        return tuple(getattr(values, name) for name in self.key_fields)


PURCHASE_ORDERS = EntitySpec(PurchaseOrder, ("po_number",), "po_number", "purchase order")
PO_LINES = EntitySpec(PurchaseOrderLine, ("po_number", "line_sequence"), "po_number", "PO line")
SHIPMENTS = EntitySpec(Shipment, ("po_number", "shipment_number"), "po_number", "shipment")
INSPECTIONS = EntitySpec(
    Inspection, ("sku", "inspection_type", "inspection_date", "po_number"), "inspection_type", "inspection"
)
QUALITY_TESTS = EntitySpec(
    QualityTest, ("sku", "test_type", "report_date", "po_number"), "test_type", "quality test"
)


def _chunks(items: Sequence, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def index_existing(db: Session, spec: EntitySpec, keys: Iterable[Tuple], batch_size: int) -> Dict[Tuple, Any]:
    """
    Existing rows for the given natural keys, locked FOR UPDATE.

    Keys may contain None (e.g. an inspection without a PO number); the
    query narrows by ``index_field`` and the exact match happens here.
    """
    keys = set(keys)
    index_values = sorted(
        {key[spec.key_fields.index(spec.index_field)] for key in keys} - {None}, key=str
    )
    column = getattr(spec.model, spec.index_field)

    index: Dict[Tuple, Any] = {}
    for chunk in _chunks(index_values, batch_size):
        rows = db.query(spec.model).filter(column.in_(chunk)).with_for_update().all()
        for row in rows:
            key = spec.key_of(row)
            if key in keys:
                index[key] = row
    return index


def upsert_rows(
    db: Session,
    spec: EntitySpec,
    records: Iterable[Dict[str, Any]],
    batch_size: Optional[int] = None,
) -> ImportResult:
    """
    Insert-or-update ``records`` (column dicts) by natural key.

    Duplicate keys in the input collapse to the last occurrence. The
    outcome is the same as one unbatched upsert, except that a batch that
    fails leaves its rows untouched and adds one entry to ``errors``.
    """
    batch_size = batch_size or settings.IMPORT_BATCH_SIZE
    result = ImportResult()

    latest: Dict[Tuple, Dict[str, Any]] = {}
    for record in records:
        latest[spec.key_of(record)] = record
    if not latest:
        return result

    existing = index_existing(db, spec, latest.keys(), batch_size)
    to_insert = [record for key, record in latest.items() if key not in existing]
    to_update = [(existing[key], record) for key, record in latest.items() if key in existing]

    operations: List[Tuple[Any, Dict[str, Any]]] = [(None, r) for r in to_insert] + to_update
    for number, batch in enumerate(_chunks(operations, batch_size), start=1):
        created = updated = 0
        try:
            with db.begin_nested():
                for target, record in batch:
                    if target is None:
                        db.add(spec.model(**record))
                        created += 1
                    else:
                        for name, value in record.items():
                            setattr(target, name, value)
                        updated += 1
                db.flush()
        except (SQLAlchemyError, TypeError, ValueError) as e:
            first = _describe(spec, batch[0][1])
            logger.error(
                f"{spec.label.capitalize()} batch {number} failed: {e}",
                extra={"entity": spec.label, "batch": number, "batch_rows": len(batch), "first_record_in_batch": first},
            )
            result.errors.append(
                f"{spec.label.capitalize()} batch {number} ({len(batch)} rows, first in batch {first}) "
                f"failed: {e.__class__.__name__}"
            )
            continue
        result.created += created
        result.updated += updated

    return result


def _describe(spec: EntitySpec, record: Dict[str, Any]) -> str:
    return "/".join("" if v is None else str(v) for v in spec.key_of(record))


# ============================================================================
# Vendor decision gate
# ============================================================================

def pending_vendor_decisions(
    resolver: VendorResolver,
    rows: Iterable[PurchaseOrderRow],
    decisions: Iterable[VendorDecision] = (),
) -> List[Dict[str, Any]]:
    """Unknown vendor names in ``rows`` that have no decision yet, with suggestions."""
    decided = {normalize_vendor_name(d.vendor_name) for d in decisions}
    counts: Counter = Counter()
    raw_names: Dict[str, str] = {}
    for row in rows:
        name = normalize_vendor_name(row.vendor_name)
        if not name or resolver.resolve_id(name) is not None or name in decided:
            continue
        counts[name] += 1
        raw_names.setdefault(name, row.vendor_name.strip())

    return [
        {
            "vendor_name": raw_names[name],
            "row_count": counts[name],
            "actions": [a.value for a in VendorDecisionAction],
            "suggestions": resolver.suggest(name),
        }
        for name in sorted(counts)
    ]


def apply_vendor_decisions(
    db: Session,
    resolver: VendorResolver,
    decisions: Iterable[VendorDecision],
) -> set:
    """
    Create vendors / aliases for the decisions. Returns the normalized
    names whose rows must be skipped.
    """
    decisions = list(decisions)
    for decision in decisions:
        if decision.action == VendorDecisionAction.MAP:
            if decision.target_vendor_id is None:
                raise ValidationError(
                    f"Decision for '{decision.vendor_name}' maps to no vendor", field="target_vendor_id"
                )
            if db.query(Vendor).filter(Vendor.id == decision.target_vendor_id).first() is None:
                raise ValidationError(
                    f"Vendor {decision.target_vendor_id} does not exist",
                    field="target_vendor_id",
                    value=decision.target_vendor_id,
                )

    skipped = set()
    for decision in decisions:
        name = normalize_vendor_name(decision.vendor_name)
        if resolver.resolve_id(name) is not None:
            continue
        if decision.action == VendorDecisionAction.SKIP:
            skipped.add(name)
        elif decision.action == VendorDecisionAction.CREATE:
            vendor = Vendor(
                name=" ".join(decision.vendor_name.split()),
                vendor_code=decision.vendor_code.strip().upper() if decision.vendor_code else None,
            )
            db.add(vendor)
            db.flush()
            resolver.register(vendor)
            logger.info(f"Created vendor {vendor.name} from import decision", extra={"vendor_id": vendor.id})
        else:
            target = db.query(Vendor).filter(Vendor.id == decision.target_vendor_id).first()
            db.add(VendorAlias(alias=name, vendor_id=target.id))
            db.flush()
            resolver.register_alias(name, target)
            logger.info(
                f"Mapped vendor name '{decision.vendor_name}' to {target.name}",
                extra={"vendor_id": target.id},
            )
    return skipped


# ============================================================================
# Entity imports
# ============================================================================

def import_purchase_orders(
    db: Session,
    rows: Iterable[PurchaseOrderRow],
    vendor_decisions: Iterable[VendorDecision] = (),
    batch_size: Optional[int] = None,
) -> ImportResult:
    """
    Upsert PO headers and their line items (OS340).

    Raises VendorDecisionRequired, before writing anything, when a row
    names a vendor that resolves to no canonical vendor and no decision
    was supplied for it. Existing shipments, lines absent from the file
    and classification fields are left as they are.
    """
    rows = list(rows)
    vendor_decisions = list(vendor_decisions)
    resolver = VendorResolver(db)

    pending = pending_vendor_decisions(resolver, rows, vendor_decisions)
    if pending:
        logger.warning(
            f"PO import blocked on {len(pending)} unknown vendor(s)",
            extra={"vendors": [p["vendor_name"] for p in pending]},
        )
        raise VendorDecisionRequired(pending)

    skipped_vendors = apply_vendor_decisions(db, resolver, vendor_decisions)

    result = ImportResult()
    headers: List[Dict[str, Any]] = []
    lines: List[Dict[str, Any]] = []
    for row in rows:
        vendor_key = normalize_vendor_name(row.vendor_name)
        if vendor_key in skipped_vendors:
            result.skipped += 1
            continue

        record = row.model_dump(exclude={"lines"})
        record["vendor_name"] = " ".join(row.vendor_name.split()) if row.vendor_name else None
        record["vendor_id"] = resolver.resolve_id(vendor_key) if vendor_key else None
        headers.append(record)

        for line in row.lines:
            values = line.model_dump()
            if values["line_total"] is None:
                values["line_total"] = (line.order_quantity or 0) * (line.unit_price or 0)
            values["sku"] = values["sku"].strip() if values["sku"] else None
            values["po_number"] = row.po_number
            lines.append(values)

    result.merge(upsert_rows(db, PURCHASE_ORDERS, headers, batch_size))

    line_result = ImportResult()
    if lines:
        stored = _existing_po_numbers(db, {line["po_number"] for line in lines})
        orphaned = [line for line in lines if line["po_number"] not in stored]
        for po_number in sorted({line["po_number"] for line in orphaned}):
            result.errors.append(f"Lines for PO {po_number} not written: header was not saved")
        line_result = upsert_rows(db, PO_LINES, [line for line in lines if line["po_number"] in stored], batch_size)
        result.errors.extend(line_result.errors)

    logger.info(
        f"PO import: {result.created} created, {result.updated} updated, {result.skipped} skipped",
        extra={
            "lines_created": line_result.created,
            "lines_updated": line_result.updated,
            "errors": len(result.errors),
        },
    )
    return result


def _existing_po_numbers(db: Session, po_numbers: Iterable[str]) -> set:
    po_numbers = sorted(set(po_numbers))
    found = set()
    for chunk in _chunks(po_numbers, settings.IMPORT_BATCH_SIZE):
        found.update(
            n for (n,) in db.query(PurchaseOrder.po_number).filter(PurchaseOrder.po_number.in_(chunk))
        )
    return found


def import_shipments(db: Session, rows: Iterable[ShipmentRow], batch_size: Optional[int] = None) -> ImportResult:
    """Upsert split shipments (OS650). Rows for unknown POs are skipped and reported."""
    rows = list(rows)
    known = _existing_po_numbers(db, {row.po_number.strip() for row in rows})

    result = ImportResult()
    records = []
    for index, row in enumerate(rows, start=1):
        po_number = row.po_number.strip()
        if po_number not in known:
            result.skipped += 1
            result.errors.append(f"Row {index}: PO {po_number} not found for shipment {row.shipment_number}")
            continue
        record = row.model_dump()
        record["po_number"] = po_number
        records.append(record)

    result.merge(upsert_rows(db, SHIPMENTS, records, batch_size))
    logger.info(
        f"Shipment import: {result.created} created, {result.updated} updated, {result.skipped} skipped",
        extra={"errors": len(result.errors)},
    )
    return result


def _quality_record(row) -> Dict[str, Any]:
    record = row.model_dump()
    for name in ("po_number", "sku"):
        if record.get(name) is not None:
            record[name] = record[name].strip() or None
    return record


def import_inspections(db: Session, rows: Iterable[InspectionRow], batch_size: Optional[int] = None) -> ImportResult:
    result = upsert_rows(db, INSPECTIONS, [_quality_record(r) for r in rows], batch_size)
    logger.info(f"Inspection import: {result.created} created, {result.updated} updated")
    return result


def import_quality_tests(db: Session, rows: Iterable[QualityTestRow], batch_size: Optional[int] = None) -> ImportResult:
    result = upsert_rows(db, QUALITY_TESTS, [_quality_record(r) for r in rows], batch_size)
    logger.info(f"Quality test import: {result.created} created, {result.updated} updated")
    return result


# ============================================================================
# Administrative
# ============================================================================

def clear_all_purchase_orders(db: Session) -> Dict[str, int]:
    """
    Delete every PO with its lines, shipments and milestones.

    Only for full-refresh imports. Inspections and quality tests are kept;
    they reference POs by number only.
    """
    counts = {
        "milestones": db.query(POTimelineMilestone).delete(synchronize_session=False),
        "shipments": db.query(Shipment).delete(synchronize_session=False),
        "lines": db.query(PurchaseOrderLine).delete(synchronize_session=False),
        "purchase_orders": db.query(PurchaseOrder).delete(synchronize_session=False),
    }
    db.expire_all()
    logger.warning("Cleared all purchase orders", extra=counts)
    return counts


def refresh_after_import(db: Session, as_of: Optional[date] = None) -> Dict[str, Any]:
    """Reclassify POs and rerun projection matching; the usual post-import step."""
    classification = ClassificationService(db).refresh(as_of=as_of)
    matching = match_projections(db, as_of=as_of)
    return {
        "classified": classification.pos_classified,
        "at_risk": classification.at_risk,
        "matching": matching.model_dump(),
        "errors": classification.errors + matching.errors,
    }
