"""
Projections API Endpoints

Forecast import, matching runs, manual overrides and review views.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from merchops.db.session import get_db
from merchops.schemas.imports import ProjectionImport
from merchops.schemas.projection import (
    ActiveProjectionResponse,
    CommentUpdate,
    ManualMatchRequest,
    MatchRunResult,
    OrderTypeUpdate,
    ProjectionDue,
    ProjectionImportResult,
    ProjectionValidationSummary,
    RemoveProjectionRequest,
)
from merchops.services import projection_service
from merchops.services.projection_matching import match_projections

router = APIRouter()


def _view_filters(
    vendor_id: Optional[int] = None,
    brand: Optional[str] = None,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
) -> dict:
    return {"vendor_id": vendor_id, "brand": brand, "year": year, "month": month}


# ============================================================================
# Import and matching
# ============================================================================

@router.post("/import", response_model=ProjectionImportResult)
async def import_projections(
    payload: ProjectionImport,
    run_matching: bool = True,
    db: Session = Depends(get_db),
):
    """
    Record a forecast import and rebuild the active projections.

    - **run_matching**: run the matcher on the rebuilt set (default: true)
    """
    result = projection_service.import_projections(
        db, payload.rows, payload.import_date, payload.imported_by
    )
    if run_matching:
        match = match_projections(db)
        result.errors.extend(match.errors)
    db.commit()
    return result


@router.post("/match", response_model=MatchRunResult)
async def run_matching(
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """Run one automatic matching pass over all non-manual projections"""
    result = match_projections(db, as_of)
    db.commit()
    return result


# ============================================================================
# Views
# ============================================================================

@router.get("/overdue", response_model=List[ProjectionDue])
async def list_overdue_projections(
    as_of: Optional[date] = None,
    days_threshold: Optional[int] = Query(None, ge=0, le=365),
    filters: dict = Depends(_view_filters),
    db: Session = Depends(get_db),
):
    return projection_service.get_overdue_projections(db, as_of, days_threshold, **filters)


@router.get("/variance", response_model=List[ActiveProjectionResponse])
async def list_projections_with_variance(
    min_variance_pct: Optional[float] = Query(None, ge=0),
    filters: dict = Depends(_view_filters),
    db: Session = Depends(get_db),
):
    return projection_service.get_projections_with_variance(db, min_variance_pct, **filters)


@router.get("/spo", response_model=List[ProjectionDue])
async def list_spo_projections(
    as_of: Optional[date] = None,
    filters: dict = Depends(_view_filters),
    db: Session = Depends(get_db),
):
    return projection_service.get_spo_projections(db, as_of, **filters)


@router.get("/summary", response_model=ProjectionValidationSummary)
async def get_validation_summary(
    as_of: Optional[date] = None,
    filters: dict = Depends(_view_filters),
    db: Session = Depends(get_db),
):
    return projection_service.get_projection_validation_summary(db, as_of, **filters)


@router.get("/{projection_id}", response_model=ActiveProjectionResponse)
async def get_projection(projection_id: int, db: Session = Depends(get_db)):
    return projection_service.get_projection(db, projection_id)


# ============================================================================
# Manual overrides
# ============================================================================

@router.post("/{projection_id}/match", response_model=ActiveProjectionResponse)
async def manual_match(
    projection_id: int,
    request: ManualMatchRequest,
    db: Session = Depends(get_db),
):
    """Pin a projection to a PO; the automatic matcher will not change it"""
    projection = projection_service.manual_match_projection(
        db, projection_id, request.po_number, request.matched_by
    )
    db.commit()
    db.refresh(projection)
    return projection


@router.post("/{projection_id}/unmatch", response_model=ActiveProjectionResponse)
async def unmatch(projection_id: int, db: Session = Depends(get_db)):
    projection = projection_service.unmatch_projection(db, projection_id)
    db.commit()
    db.refresh(projection)
    return projection


@router.post("/{projection_id}/remove", response_model=ActiveProjectionResponse)
async def remove(
    projection_id: int,
    request: RemoveProjectionRequest,
    db: Session = Depends(get_db),
):
    projection = projection_service.mark_projection_removed(
        db, projection_id, request.reason, request.removed_by
    )
    db.commit()
    db.refresh(projection)
    return projection


@router.patch("/{projection_id}/order-type", response_model=ActiveProjectionResponse)
async def update_order_type(
    projection_id: int,
    request: OrderTypeUpdate,
    db: Session = Depends(get_db),
):
    projection = projection_service.update_projection_order_type(db, projection_id, request.order_type)
    db.commit()
    db.refresh(projection)
    return projection


@router.put("/{projection_id}/comment", response_model=ActiveProjectionResponse)
async def update_comment(
    projection_id: int,
    request: CommentUpdate,
    db: Session = Depends(get_db),
):
    projection = projection_service.comment_projection(
        db, projection_id, request.comment, request.commented_by
    )
    db.commit()
    db.refresh(projection)
    return projection
