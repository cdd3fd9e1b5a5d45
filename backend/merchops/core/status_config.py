"""Status Configuration and Transition Rules

Valid status values for projections, delivery classification, timeline
milestones and staff roles. Persisted columns store the enum ``.value``
so ad-hoc SQL sees plain strings.
"""
from enum import Enum
from typing import Dict, List, Set


# =============================================================================
# Projection Match Status
# =============================================================================

class MatchStatus(str, Enum):
    """Match state of an active projection"""
    UNMATCHED = "unmatched"
    MATCHED = "matched"
    PARTIAL = "partial"  # Collection-level match for SPO projections
    EXPIRED = "expired"  # Order window elapsed, or removed by a user


# Manual actions allowed from each state (automatic passes recompute freely)
MATCH_STATUS_TRANSITIONS: Dict[str, Set[str]] = {
    MatchStatus.UNMATCHED: {MatchStatus.MATCHED, MatchStatus.EXPIRED},
    MatchStatus.MATCHED: {MatchStatus.UNMATCHED, MatchStatus.MATCHED, MatchStatus.EXPIRED},
    MatchStatus.PARTIAL: {MatchStatus.UNMATCHED, MatchStatus.MATCHED, MatchStatus.EXPIRED},
    MatchStatus.EXPIRED: {MatchStatus.UNMATCHED, MatchStatus.MATCHED},
}


def is_valid_match_transition(current_status: str, new_status: str) -> bool:
    """Check if a manual match status change is allowed"""
    return new_status in MATCH_STATUS_TRANSITIONS.get(current_status, set())


class OrderType(str, Enum):
    """Projection order type, drives the order window"""
    REGULAR = "regular"
    MTO = "mto"
    SPO = "spo"


# =============================================================================
# Delivery Classification
# =============================================================================

class OTDStatus(str, Enum):
    """On-time delivery classification of a purchase order"""
    ON_TIME = "on_time"
    LATE = "late"
    UNKNOWN = "unknown"  # Not delivered, or dates missing


class MilestoneStatus(str, Enum):
    """Per-milestone timeline state"""
    PENDING = "pending"
    AT_RISK = "at-risk"
    OVERDUE = "overdue"
    LATE = "late"
    COMPLETE = "complete"


class AtRiskReason(str, Enum):
    """Reasons an open purchase order is flagged at risk"""
    FAILED_FINAL_INSPECTION = "failed_final_inspection"
    INLINE_INSPECTION_NOT_BOOKED = "inline_inspection_not_booked"
    FINAL_INSPECTION_NOT_BOOKED = "final_inspection_not_booked"
    PTS_NOT_SUBMITTED = "pts_not_submitted"
    QA_TEST_NOT_PASSED = "qa_test_not_passed"
    NO_SHIPMENT_RECORDED = "no_shipment_recorded"


SHIPPED_STATUS = "Shipped"

FAILED_INSPECTION_RESULTS: Set[str] = {"failed", "failed - critical failure"}


# =============================================================================
# Staff Roles
# =============================================================================

class StaffRole(str, Enum):
    """Scope of a staff member's KPI rollup"""
    ORG_LEAD = "org_lead"  # Sees everything
    TEAM_LEAD = "team_lead"  # Filtered by merchandising_manager
    INDIVIDUAL = "individual"  # Filtered by merchandiser


# Title keywords checked in order; first hit wins
STAFF_TITLE_KEYWORDS: List[tuple] = [
    (("gmm", "general merchandise manager", "general merchandising manager", "director", "vp"), StaffRole.ORG_LEAD),
    (("merchandising manager", "merchandise manager", "manager", "lead"), StaffRole.TEAM_LEAD),
]


# =============================================================================
# Analytics
# =============================================================================

class TrendDirection(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class TrendGroup(str, Enum):
    """Dimension a trend report is grouped by"""
    VENDOR = "vendor"
    MERCHANDISER = "merchandiser"
    SKU = "sku"


# =============================================================================
# Import Reconciliation
# =============================================================================

class VendorDecisionAction(str, Enum):
    """Human decision for an import row naming an unknown vendor"""
    CREATE = "create"
    MAP = "map"
    SKIP = "skip"
