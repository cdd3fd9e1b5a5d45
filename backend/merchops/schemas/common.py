"""
Common API Response Schemas

Standardized error body and the result object every bulk write returns.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Request validation failed (400/422)
        - NOT_FOUND: Resource not found (404)
        - CONFLICT: Resource conflict (409)
        - VENDOR_DECISION_REQUIRED: Import names unknown vendors (409)
        - BUSINESS_RULE_ERROR: Business rule violation (422)
        - CAPACITY_YEAR_LOCKED: Capacity year is locked (422)
        - DATABASE_ERROR: Database operation failed (500)
        - INTERNAL_ERROR: Unexpected internal error (500)
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="When the error occurred (UTC)")


class ImportResult(BaseModel):
    """
    Outcome of a bulk upsert.

    Per-row problems land in ``errors``; they never abort the run.
    """
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return self.created + self.updated + self.skipped

    def merge(self, other: "ImportResult") -> "ImportResult":
        self.created += other.created
        self.updated += other.updated
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        return self
