"""
Capacity API Endpoints
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from merchops.db.session import get_db
from merchops.schemas.capacity import (
    CapacityDataResponse,
    CapacityDriftRow,
    CapacityImportResult,
    LockResult,
)
from merchops.schemas.imports import CapacityRow
from merchops.services import capacity_service

router = APIRouter()


@router.get("/", response_model=List[CapacityDataResponse])
async def list_capacity(
    vendor_code: Optional[str] = None,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    client: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return capacity_service.get_capacity_data(db, vendor_code, year, client)


@router.get("/locked-years", response_model=List[int])
async def list_locked_years(db: Session = Depends(get_db)):
    return capacity_service.get_locked_capacity_years(db)


@router.post("/import", response_model=CapacityImportResult)
async def import_capacity(rows: List[CapacityRow], db: Session = Depends(get_db)):
    """
    Replace unlocked capacity data for the years in the payload.

    Rows colliding with locked rows are skipped and counted.
    """
    result = capacity_service.import_capacity_rows(db, rows)
    db.commit()
    return result


@router.post("/years/{year}/lock", response_model=LockResult)
async def lock_year(year: int, db: Session = Depends(get_db)):
    result = capacity_service.lock_capacity_year(db, year)
    db.commit()
    return result


@router.post("/years/{year}/unlock", response_model=LockResult)
async def unlock_year(year: int, db: Session = Depends(get_db)):
    result = capacity_service.unlock_capacity_year(db, year)
    db.commit()
    return result


@router.get("/years/{year}/reconcile", response_model=List[CapacityDriftRow])
async def reconcile_year(
    year: int,
    tolerance_cents: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    """Capacity-confirmed vs PO shipped value per vendor. Report only."""
    return capacity_service.reconcile_capacity(db, year, tolerance_cents)


@router.patch("/{row_id}", response_model=CapacityDataResponse)
async def update_capacity(
    row_id: int,
    changes: Dict[str, Any],
    db: Session = Depends(get_db),
):
    """Edit one monthly row. Locked rows are rejected with 422."""
    row = capacity_service.update_capacity_row(db, row_id, changes)
    db.commit()
    db.refresh(row)
    return row
