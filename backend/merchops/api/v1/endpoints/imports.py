"""
Import API Endpoints

Each endpoint upserts one entity and runs the post-import refresh
(classification + projection matching) before committing. An unknown
vendor in a PO import answers 409 with the decision set; nothing is
written until the request is repeated with a decision for every name.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from merchops.db.session import get_db
from merchops.exceptions import BusinessRuleError
from merchops.logging_config import get_logger
from merchops.schemas.common import ImportResult
from merchops.schemas.imports import (
    InspectionRow,
    PurchaseOrderImport,
    QualityTestRow,
    ShipmentRow,
)
from merchops.services import import_reconciliation

router = APIRouter()
logger = get_logger(__name__)


def _finish(db: Session, result: ImportResult) -> ImportResult:
    refresh = import_reconciliation.refresh_after_import(db)
    result.errors.extend(refresh["errors"])
    db.commit()
    return result


@router.post("/purchase-orders", response_model=ImportResult)
async def import_purchase_orders(payload: PurchaseOrderImport, db: Session = Depends(get_db)):
    result = import_reconciliation.import_purchase_orders(db, payload.rows, payload.vendor_decisions)
    return _finish(db, result)


@router.post("/shipments", response_model=ImportResult)
async def import_shipments(rows: List[ShipmentRow], db: Session = Depends(get_db)):
    result = import_reconciliation.import_shipments(db, rows)
    return _finish(db, result)


@router.post("/inspections", response_model=ImportResult)
async def import_inspections(rows: List[InspectionRow], db: Session = Depends(get_db)):
    result = import_reconciliation.import_inspections(db, rows)
    return _finish(db, result)


@router.post("/quality-tests", response_model=ImportResult)
async def import_quality_tests(rows: List[QualityTestRow], db: Session = Depends(get_db)):
    result = import_reconciliation.import_quality_tests(db, rows)
    return _finish(db, result)


@router.post("/refresh")
async def refresh(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Reclassify all POs and rerun projection matching"""
    summary = import_reconciliation.refresh_after_import(db)
    db.commit()
    return summary


@router.delete("/purchase-orders")
async def clear_purchase_orders(confirm: bool = False, db: Session = Depends(get_db)) -> Dict[str, int]:
    """
    Delete all POs with their lines, shipments and milestones.

    Full-refresh imports only; requires ``confirm=true``.
    """
    if not confirm:
        raise BusinessRuleError("Pass confirm=true to clear all purchase orders", rule="confirm_required")
    counts = import_reconciliation.clear_all_purchase_orders(db)
    db.commit()
    logger.warning("All purchase orders cleared via API", extra=counts)
    return counts
