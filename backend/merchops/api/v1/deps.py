"""
Shared API dependencies
"""
from datetime import date
from typing import Optional

import pydantic
from fastapi import Query

from merchops.exceptions import ValidationError
from merchops.schemas.filters import DashboardFilter


def get_dashboard_filter(
    merchandiser: Optional[str] = Query(None),
    merchandising_manager: Optional[str] = Query(None),
    vendor: Optional[str] = Query(None),
    client: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None, description="Effective cancel date from"),
    end_date: Optional[date] = Query(None, description="Effective cancel date to"),
) -> DashboardFilter:
    """Build a DashboardFilter from query parameters."""
    try:
        return DashboardFilter(
            merchandiser=merchandiser,
            merchandising_manager=merchandising_manager,
            vendor=vendor,
            client=client,
            start_date=start_date,
            end_date=end_date,
        )
    except pydantic.ValidationError as e:
        raise ValidationError(e.errors()[0]["msg"], field="start_date")
