"""
Test data factories for the MerchOps engine.

Provides functions to create test entities with sensible defaults.

Usage:
    from tests.factories import create_test_vendor, create_test_po

    def test_something(db_session):
        vendor = create_test_vendor(db_session, name="Acme Home")
        po = create_test_po(db_session, vendor=vendor, lines=[("SKU-1", 100, 500)])
"""
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session


# =============================================================================
# SEQUENCE MANAGEMENT
# =============================================================================

_sequences: Dict[str, int] = {}


def reset_sequences():
    """Reset all sequences. Call between tests for predictable numbers."""
    global _sequences
    _sequences = {}


def _next(name: str) -> int:
    """Get next sequence number for a given entity type."""
    _sequences[name] = _sequences.get(name, 0) + 1
    return _sequences[name]


# =============================================================================
# VENDOR / STAFF
# =============================================================================

def create_test_vendor(
    db: Session,
    name: Optional[str] = None,
    **overrides
) -> "Vendor":
    """
    Create a canonical vendor.

    Args:
        db: Database session
        name: Vendor name (auto-generated if not provided)
        **overrides: Additional field overrides (vendor_code, merchandiser, ...)

    Returns:
        Created Vendor instance
    """
    from merchops.models.vendor import Vendor

    seq = _next("vendor")
    vendor = Vendor(
        name=name or f"Test Vendor {seq}",
        vendor_code=overrides.pop("vendor_code", f"V{seq:04d}"),
        merchandiser=overrides.pop("merchandiser", None),
        merchandising_manager=overrides.pop("merchandising_manager", None),
        **overrides
    )
    db.add(vendor)
    db.flush()
    return vendor


def create_test_staff(
    db: Session,
    name: Optional[str] = None,
    role: str = "individual",
    **overrides
) -> "Staff":
    from merchops.models.staff import Staff

    seq = _next("staff")
    staff = Staff(
        name=name or f"Staff {seq}",
        title=overrides.pop("title", "Merchandiser"),
        role=role,
        **overrides
    )
    db.add(staff)
    db.flush()
    return staff


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

def create_test_po(
    db: Session,
    vendor=None,
    po_number: Optional[str] = None,
    lines: Sequence[Tuple[str, int, int]] = (),
    **overrides
) -> "PurchaseOrder":
    """
    Create a PO header with optional line items.

    Args:
        db: Database session
        vendor: Vendor the PO is resolved to (None = unresolved)
        po_number: PO number (auto-generated if not provided)
        lines: (sku, order_quantity, line_total_cents) per line
        **overrides: Header field overrides

    Returns:
        Created PurchaseOrder instance
    """
    from merchops.models.purchase_order import PurchaseOrder, PurchaseOrderLine

    seq = _next("po")
    number = po_number or f"PO{seq:05d}"
    po_date = overrides.pop("po_date", date(2025, 1, 15))

    total_quantity = sum(qty for _, qty, _ in lines)
    total_value = sum(value for _, _, value in lines)

    po = PurchaseOrder(
        po_number=number,
        vendor_id=vendor.id if vendor is not None else None,
        vendor_name=overrides.pop("vendor_name", vendor.name if vendor is not None else None),
        client=overrides.pop("client", "CB"),
        po_date=po_date,
        original_ship_date=overrides.pop("original_ship_date", po_date + timedelta(days=60)),
        original_cancel_date=overrides.pop("original_cancel_date", po_date + timedelta(days=75)),
        total_quantity=overrides.pop("total_quantity", total_quantity or 100),
        total_value=overrides.pop("total_value", total_value or 100000),
        **overrides
    )
    db.add(po)
    db.flush()

    for sequence, (sku, qty, value) in enumerate(lines, start=1):
        db.add(PurchaseOrderLine(
            po_number=number,
            line_sequence=sequence,
            sku=sku,
            order_quantity=qty,
            unit_price=value // qty if qty else 0,
            line_total=value,
        ))
    db.flush()
    return po


def create_test_shipment(
    db: Session,
    po,
    shipment_number: Optional[int] = None,
    **overrides
) -> "Shipment":
    from merchops.models.shipment import Shipment

    existing = len(po.shipments) if po.shipments is not None else 0
    shipment = Shipment(
        po_number=po.po_number,
        shipment_number=shipment_number or existing + 1,
        delivery_to_consolidator=overrides.pop("delivery_to_consolidator", None),
        actual_sailing_date=overrides.pop("actual_sailing_date", None),
        qty_shipped=overrides.pop("qty_shipped", 0),
        shipped_value=overrides.pop("shipped_value", 0),
        **overrides
    )
    db.add(shipment)
    db.flush()
    db.refresh(po)
    return shipment


def create_test_inspection(db: Session, po, inspection_type: str = "Final Inspection", **overrides) -> "Inspection":
    from merchops.models.quality import Inspection

    inspection = Inspection(
        po_number=po.po_number,
        sku=overrides.pop("sku", None),
        inspection_type=inspection_type,
        inspection_date=overrides.pop("inspection_date", date(2025, 3, 1)),
        result=overrides.pop("result", "Passed"),
        **overrides
    )
    db.add(inspection)
    db.flush()
    return inspection


def create_test_milestone(db: Session, po, milestone: str = "Final Inspection", **overrides) -> "POTimelineMilestone":
    from merchops.models.timeline import POTimelineMilestone

    row = POTimelineMilestone(
        po_number=po.po_number,
        milestone=milestone,
        sort_order=overrides.pop("sort_order", _next("milestone")),
        **overrides
    )
    db.add(row)
    db.flush()
    return row


# =============================================================================
# PROJECTIONS / CAPACITY
# =============================================================================

def create_test_projection(
    db: Session,
    vendor=None,
    sku: Optional[str] = None,
    year: int = 2025,
    month: int = 3,
    **overrides
) -> "ActiveProjection":
    """
    Create an active projection row directly (bypassing snapshot import).

    Args:
        db: Database session
        vendor: Vendor whose code the projection carries
        sku: Projected SKU (auto-generated if not provided)
        year / month: Target month
        **overrides: quantity, projection_value, order_type, collection, ...
    """
    from merchops.models.projection import ActiveProjection

    seq = _next("projection")
    projection = ActiveProjection(
        vendor_code=overrides.pop("vendor_code", vendor.vendor_code if vendor is not None else None),
        vendor_id=overrides.pop("vendor_id", vendor.id if vendor is not None else None),
        sku=sku or f"SKU-{seq:04d}",
        year=year,
        month=month,
        quantity=overrides.pop("quantity", 100),
        projection_value=overrides.pop("projection_value", 50000),
        order_type=overrides.pop("order_type", "regular"),
        **overrides
    )
    db.add(projection)
    db.flush()
    return projection


def create_test_capacity_row(
    db: Session,
    vendor_code: str = "V0001",
    year: int = 2024,
    month: int = 1,
    **overrides
) -> "VendorCapacityData":
    from merchops.models.capacity import VendorCapacityData

    row = VendorCapacityData(
        vendor_code=vendor_code,
        year=year,
        month=month,
        client=overrides.pop("client", ""),
        shipment_confirmed=overrides.pop("shipment_confirmed", 10000),
        total_shipment=overrides.pop("total_shipment", 10000),
        reserved_capacity=overrides.pop("reserved_capacity", 20000),
        is_locked=overrides.pop("is_locked", False),
        **overrides
    )
    db.add(row)
    db.flush()
    return row


def projection_rows(specs: List[dict]) -> List["ProjectionRow"]:
    """Build ProjectionRow payloads from plain dicts."""
    from merchops.schemas.imports import ProjectionRow

    return [ProjectionRow(**spec) for spec in specs]
