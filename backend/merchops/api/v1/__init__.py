"""
API v1 Router - MerchOps Engine
"""
from fastapi import APIRouter
from merchops.api.v1.endpoints import (
    analytics,
    projections,
    capacity,
    imports,
    staff,
)

router = APIRouter()

# KPI, OTD and trend roll-ups
router.include_router(
    analytics.router,
    prefix="/analytics",
    tags=["analytics"]
)

# Forecasts and matching
router.include_router(
    projections.router,
    prefix="/projections",
    tags=["projections"]
)

# Vendor capacity ledger
router.include_router(
    capacity.router,
    prefix="/capacity",
    tags=["capacity"]
)

# Bulk imports
router.include_router(
    imports.router,
    prefix="/imports",
    tags=["imports"]
)

# Staff and roles
router.include_router(
    staff.router,
    prefix="/staff",
    tags=["staff"]
)
