"""
MerchOps Engine - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across services and the API layer.

Usage:
    from merchops.exceptions import NotFoundError, ValidationError

    raise NotFoundError("ActiveProjection", projection_id)
    raise ValidationError("Year must be between 2000 and 2100", field="year", value=year)

Per-row import problems are NOT raised; they are collected into the
result object's ``errors`` list. Exceptions are reserved for request-level
failures and the unknown-vendor decision gate.
"""
from typing import Any, Dict, List, Optional


class MerchOpsException(Exception):
    """
    Base exception for all MerchOps engine errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "MERCHOPS_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(MerchOpsException):
    """Raised when input validation fails."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


class InvalidStateError(MerchOpsException):
    """Raised when an operation is invalid for the current state."""

    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(
        self,
        message: str = "Operation not allowed in current state",
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if current_state:
            details["current_state"] = current_state
        if allowed_states:
            details["allowed_states"] = allowed_states
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(MerchOpsException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(MerchOpsException):
    """Raised when there's a resource conflict."""

    error_code = "CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class VendorDecisionRequired(ConflictError):
    """
    Raised when an import names vendors that resolve to no canonical vendor.

    The import writes nothing until the caller re-submits with a decision
    (create / map / skip) for every name in ``decisions``.
    """

    error_code = "VENDOR_DECISION_REQUIRED"

    def __init__(
        self,
        decisions: List[Dict[str, Any]],
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["unknown_vendors"] = decisions
        names = ", ".join(d["vendor_name"] for d in decisions)
        super().__init__(
            f"{len(decisions)} unknown vendor(s) need a decision: {names}",
            details=details,
        )
        self.decisions = decisions


# ===================
# 422 Unprocessable Entity Errors
# ===================


class BusinessRuleError(MerchOpsException):
    """Raised when a business rule is violated."""

    error_code = "BUSINESS_RULE_ERROR"
    status_code = 422

    def __init__(
        self,
        message: str = "Business rule violation",
        *,
        rule: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if rule:
            details["rule"] = rule
        super().__init__(message, details=details)


class CapacityYearLockedError(BusinessRuleError):
    """Raised when an edit targets a capacity row in a locked year."""

    error_code = "CAPACITY_YEAR_LOCKED"

    def __init__(
        self,
        year: int,
        *,
        vendor_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["year"] = year
        if vendor_code:
            details["vendor_code"] = vendor_code
        super().__init__(f"Capacity year {year} is locked", details=details)

