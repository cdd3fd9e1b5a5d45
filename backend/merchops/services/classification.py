"""
Classification Rules

Pure, deterministic delivery-performance rules for purchase orders,
shipments and timeline milestones. Nothing here touches the database:
every function takes plain values or objects exposing the model
attributes (ORM rows, SimpleNamespace, ...) and returns a value.

Missing or malformed dates never raise. They degrade the result to
``unknown`` (OTD) or ``pending`` (milestones).
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple, Any

from merchops.core.settings import settings
from merchops.core.status_config import (
    OTDStatus,
    MilestoneStatus,
    AtRiskReason,
    OrderType,
    SHIPPED_STATUS,
    FAILED_INSPECTION_RESULTS,
)


# Source extracts use all of these
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%d-%b-%Y",
    "%d-%b-%y",
    "%Y/%m/%d",
    "%Y%m%d",
    "%b %d, %Y",
)

CLOSED_PO_STATUSES = {"CLOSED", "SHIPPED", "CANCELLED"}


# ============================================================================
# Result types
# ============================================================================

@dataclass
class OTDResult:
    """Outcome of an OTD classification"""
    status: OTDStatus
    days_late: Optional[int] = None  # delivery - cancel, negative means early
    amnesty_applied: bool = False

    @property
    def is_on_time(self) -> bool:
        return self.status == OTDStatus.ON_TIME


@dataclass
class AtRiskResult:
    is_at_risk: bool
    reasons: List[AtRiskReason] = field(default_factory=list)
    days_until_hod: Optional[int] = None


@dataclass
class MilestoneResult:
    status: MilestoneStatus
    days_late: Optional[int] = None
    days_overdue: Optional[int] = None
    days_until: Optional[int] = None


# ============================================================================
# Dates
# ============================================================================

def parse_date(value: Any) -> Optional[date]:
    """
    Normalize a source date value.

    Accepts date, datetime, Excel-style ISO timestamps and the string
    formats seen in the extracts. Anything else (including blanks,
    "N/A" and impossible dates) returns None, never a sentinel.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    # "2024-06-01T00:00:00" / "2024-06-01 00:00:00"
    if len(text) > 10 and text[4:5] == "-" and text[10:11] in ("T", " "):
        text = text[:10]

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def days_between(later: date, earlier: date) -> int:
    """Whole days from ``earlier`` to ``later`` (negative if reversed)."""
    return (later - earlier).days


# ============================================================================
# Purchase order rules
# ============================================================================

def _starts_with_marker(text: Optional[str], marker: str) -> bool:
    """Program marker match: ``SMP ...`` / ``8X8 ...``, case-insensitive."""
    if not text or not marker:
        return False
    normalized = text.strip().upper()
    marker = marker.upper()
    return normalized == marker or normalized.startswith(marker + " ")


def is_sample_order(po) -> bool:
    if getattr(po, "is_sample", False):
        return True
    return _starts_with_marker(getattr(po, "program_description", None), settings.SAMPLE_PROGRAM_PREFIX)


def is_excluded(po) -> bool:
    """
    True if the PO must stay out of every OTD denominator.

    Franchise orders (PO number prefix), 8X8 program orders, zero-value
    orders and samples are excluded.
    """
    po_number = (getattr(po, "po_number", None) or "").strip()
    if po_number.startswith(settings.FRANCHISE_PO_PREFIX):
        return True
    if _starts_with_marker(getattr(po, "program_description", None), settings.PROGRAM_8X8_PREFIX):
        return True
    total_value = getattr(po, "total_value", None)
    if total_value is None or total_value <= 0:
        return True
    return is_sample_order(po)


def effective_cancel_date(po) -> Optional[date]:
    return getattr(po, "revised_cancel_date", None) or getattr(po, "original_cancel_date", None)


def hod_target_date(po) -> Optional[date]:
    """Planned hand-over date: revised ship date, else original."""
    return getattr(po, "revised_ship_date", None) or getattr(po, "original_ship_date", None)


def has_amnesty(revised_by: Optional[str]) -> bool:
    """Only client and forwarder revisions earn amnesty. Vendor revisions never do."""
    if not revised_by:
        return False
    return revised_by.strip().upper() in set(settings.AMNESTY_REVISERS)


def delivery_date(shipments: Iterable[Any]) -> Optional[date]:
    """
    Delivery date of a PO: the latest HOD across its split shipments.

    A PO counts as delivered when its last split reaches the consolidator.
    Shipments without a delivery date are ignored.
    """
    dates = [s.delivery_to_consolidator for s in shipments if getattr(s, "delivery_to_consolidator", None)]
    return max(dates) if dates else None


def first_sailing_date(shipments: Iterable[Any]) -> Optional[date]:
    """MIN(actual_sailing_date) across shipments, the revenue recognition date."""
    dates = [s.actual_sailing_date for s in shipments if getattr(s, "actual_sailing_date", None)]
    return min(dates) if dates else None


def _compare(delivered: Optional[date], deadline: Optional[date]) -> OTDResult:
    if delivered is None or deadline is None:
        return OTDResult(status=OTDStatus.UNKNOWN)
    days_late = days_between(delivered, deadline)
    status = OTDStatus.ON_TIME if days_late <= 0 else OTDStatus.LATE
    return OTDResult(status=status, days_late=days_late)


def classify_otd(po, delivered: Optional[date]) -> OTDResult:
    """
    OTD status against the effective cancel date, with amnesty.

    A late delivery on a PO whose cancel date was revised by the client
    or forwarder is reclassified on-time. ``days_late`` still reports the
    real gap so the amnesty stays visible.
    """
    result = _compare(delivered, effective_cancel_date(po))
    if result.status == OTDStatus.LATE and has_amnesty(getattr(po, "revised_by", None)):
        result.status = OTDStatus.ON_TIME
        result.amnesty_applied = True
    return result


def classify_original_otd(po, delivered: Optional[date]) -> OTDResult:
    """Strict OTD: original cancel date only, revisions and amnesty ignored."""
    return _compare(delivered, getattr(po, "original_cancel_date", None))


def is_shipped(po) -> bool:
    return (getattr(po, "shipment_status", None) or "").strip().lower() == SHIPPED_STATUS.lower()


def is_open_po(po) -> bool:
    if is_shipped(po):
        return False
    return (getattr(po, "status", None) or "").strip().upper() not in CLOSED_PO_STATUSES


def is_late_po(po, as_of: date) -> bool:
    """Unshipped PO past its effective cancel date."""
    cancel = effective_cancel_date(po)
    if cancel is None:
        return False
    return as_of > cancel and not is_shipped(po)


def evaluate_at_risk(
    po,
    shipments: Iterable[Any],
    inspections: Iterable[Any],
    quality_tests: Iterable[Any],
    as_of: date,
) -> AtRiskResult:
    """
    At-risk flags for an open PO whose HOD is still ahead.

    Evaluated independently of OTD status. Rules:
      - failed final inspection on record (any time before shipping)
      - inline inspection not booked, HOD within INLINE_INSPECTION_RISK_DAYS
      - final inspection not booked, HOD within FINAL_INSPECTION_RISK_DAYS
      - PTS not submitted, HOD within PTS_RISK_DAYS
      - no passing quality test for the PO's SKUs, HOD within QA_TEST_RISK_DAYS
      - no HOD/ETD recorded on any shipment, HOD within AT_RISK_WINDOW_DAYS
    """
    if not is_open_po(po):
        return AtRiskResult(is_at_risk=False)

    shipments = list(shipments)
    inspections = list(inspections)
    reasons: List[AtRiskReason] = []

    for insp in inspections:
        insp_type = (getattr(insp, "inspection_type", None) or "").lower()
        result = (getattr(insp, "result", None) or "").strip().lower()
        if "final" in insp_type and result in FAILED_INSPECTION_RESULTS:
            reasons.append(AtRiskReason.FAILED_FINAL_INSPECTION)
            break

    hod = hod_target_date(po)
    days_until_hod = days_between(hod, as_of) if hod else None

    if days_until_hod is not None and days_until_hod > 0:
        types = [(getattr(i, "inspection_type", None) or "").lower() for i in inspections]
        inline_booked = any("inline" in t for t in types)
        final_booked = any("final" in t for t in types)
        pts_submitted = bool(getattr(po, "pts_number", None)) or any(
            getattr(s, "pts_number", None) for s in shipments
        )
        qa_passed = any(
            (getattr(t, "result", None) or "").strip().lower().startswith("pass")
            for t in quality_tests
        )
        movement_recorded = any(
            getattr(s, "delivery_to_consolidator", None) or getattr(s, "actual_sailing_date", None)
            for s in shipments
        )

        if days_until_hod <= settings.INLINE_INSPECTION_RISK_DAYS and not inline_booked:
            reasons.append(AtRiskReason.INLINE_INSPECTION_NOT_BOOKED)
        if days_until_hod <= settings.FINAL_INSPECTION_RISK_DAYS and not final_booked:
            reasons.append(AtRiskReason.FINAL_INSPECTION_NOT_BOOKED)
        if days_until_hod <= settings.PTS_RISK_DAYS and not pts_submitted:
            reasons.append(AtRiskReason.PTS_NOT_SUBMITTED)
        if days_until_hod <= settings.QA_TEST_RISK_DAYS and not qa_passed:
            reasons.append(AtRiskReason.QA_TEST_NOT_PASSED)
        if days_until_hod <= settings.AT_RISK_WINDOW_DAYS and not movement_recorded:
            reasons.append(AtRiskReason.NO_SHIPMENT_RECORDED)

    return AtRiskResult(is_at_risk=bool(reasons), reasons=reasons, days_until_hod=days_until_hod)


# ============================================================================
# Timeline milestones
# ============================================================================

def milestone_status(
    planned: Optional[date],
    revised: Optional[date],
    actual: Optional[date],
    as_of: date,
) -> MilestoneResult:
    """
    Per-milestone state machine.

    target = revised date if set, else planned date.
      actual set, actual <= target (or no target) -> complete
      actual set, actual > target                -> late (days_late)
      target in the past                          -> overdue (days_overdue)
      target within MILESTONE_AT_RISK_DAYS       -> at-risk (days_until)
      otherwise                                   -> pending
    """
    target = revised or planned

    if actual is not None:
        if target is not None and actual > target:
            return MilestoneResult(MilestoneStatus.LATE, days_late=days_between(actual, target))
        return MilestoneResult(MilestoneStatus.COMPLETE)

    if target is None:
        return MilestoneResult(MilestoneStatus.PENDING)

    if target < as_of:
        return MilestoneResult(MilestoneStatus.OVERDUE, days_overdue=days_between(as_of, target))

    days_until = days_between(target, as_of)
    if days_until <= settings.MILESTONE_AT_RISK_DAYS:
        return MilestoneResult(MilestoneStatus.AT_RISK, days_until=days_until)
    return MilestoneResult(MilestoneStatus.PENDING, days_until=days_until)


# ============================================================================
# Projection order windows
# ============================================================================

def order_window_days(order_type: Optional[str]) -> int:
    if (order_type or OrderType.REGULAR.value).lower() in (OrderType.SPO.value, OrderType.MTO.value):
        return settings.SPO_ORDER_WINDOW_DAYS
    return settings.REGULAR_ORDER_WINDOW_DAYS


def order_window(year: int, month: int, order_type: Optional[str]) -> Tuple[date, date]:
    """
    Dates a PO may be placed to satisfy a projection for (year, month).

    Opens ``window days`` before the first of the target month and closes
    on its last day.
    """
    month_start = date(year, month, 1)
    start = month_start - timedelta(days=order_window_days(order_type))
    end = date(year, month, last_day_of_month(year, month))
    return start, end


def target_month_midpoint(year: int, month: int) -> date:
    return date(year, month, (last_day_of_month(year, month) + 1) // 2)


def is_window_elapsed(year: int, month: int, order_type: Optional[str], as_of: date) -> bool:
    return as_of > order_window(year, month, order_type)[1]
