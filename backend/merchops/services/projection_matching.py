"""
Projection Matching Engine

Associates each active projection with at most one actual order and
computes the variance between forecast and order.

Per projection, in a fixed order (year, month, vendor code, SKU, id):

1. SKU-level: a PO line with the same SKU (case-insensitive) whose PO is
   dated inside the projection's order window and whose PO vendor resolves
   to the projection's canonical vendor -> ``matched``.
2. SKU is the SPO sentinel: a PO of the same vendor whose collection
   (explicit, or parsed from an "MTO <collection>" program) matches,
   inside the window, closest by date -> ``partial``.
3. Window fully elapsed -> ``expired``.
4. Otherwise ``unmatched``.

Candidates are ranked by distance from the target-month midpoint, then PO
number, then line sequence. Each line (or PO, for collection matches) is
claimed by at most one projection per pass. Manually matched or removed
projections are left untouched and keep their claims, so running the
matcher twice over the same data gives the same result.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from merchops.core.settings import settings
from merchops.core.status_config import MatchStatus
from merchops.logging_config import get_logger
from merchops.models.projection import ActiveProjection
from merchops.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from merchops.schemas.projection import MatchRunResult
from merchops.services import classification as rules
from merchops.services.vendor_resolution import VendorResolver

logger = get_logger(__name__)


# ============================================================================
# MTO collection parsing
# ============================================================================

KNOWN_MTO_COLLECTIONS = [
    "ambroise", "forte", "hoxton", "pm symmetric", "vera", "aviator",
    "lowe", "emile", "laura/tiff", "laura", "tiff", "blume", "soma", "edendale",
]

_MONTH_RE = re.compile(
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec|january|february|march|"
    r"april|june|july|august|september|october|november|december)\b"
)
_YEAR_RE = re.compile(r"\b(20\d{2})\b")
_AFTER_MTO_RE = re.compile(r"mto[\s:_-]+([a-z\s/]+)")


def extract_mto_collection(program_description: Optional[str]) -> Optional[str]:
    """
    Collection named by an MTO program description, lower-cased.

    "MTO HOXTON FEB 2026" -> "hoxton". Known collections win; otherwise
    the words after "MTO" up to a month name or year.
    """
    if not program_description:
        return None
    text = program_description.lower()
    if "mto" not in text:
        return None

    for collection in KNOWN_MTO_COLLECTIONS:
        if collection in text:
            return collection

    match = _AFTER_MTO_RE.search(text)
    if not match:
        return None
    extracted = match.group(1).strip()

    month = _MONTH_RE.search(extracted)
    if month and month.start() > 0:
        extracted = extracted[:month.start()].strip()
    year = _YEAR_RE.search(extracted)
    if year and year.start() > 0:
        extracted = extracted[:year.start()].strip()

    extracted = extracted.rstrip(" ,").strip()
    return extracted or None


def normalize_collection(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return " ".join(value.lower().split()) or None


def po_collection(po) -> Optional[str]:
    return normalize_collection(getattr(po, "collection", None)) or extract_mto_collection(
        getattr(po, "program_description", None)
    )


# ============================================================================
# Variance
# ============================================================================

@dataclass
class Variance:
    quantity_variance: int
    value_variance: int
    variance_pct: Optional[float]


def compute_variance(projected_qty: int, projected_value: int, actual_qty: int, actual_value: int) -> Variance:
    """actual - projected; pct is value variance over projected value (None if 0)."""
    value_variance = (actual_value or 0) - (projected_value or 0)
    variance_pct = None
    if projected_value:
        variance_pct = round(value_variance / projected_value * 100, 1)
    return Variance(
        quantity_variance=(actual_qty or 0) - (projected_qty or 0),
        value_variance=value_variance,
        variance_pct=variance_pct,
    )


def exceeds_variance_alert(variance_pct: Optional[float], threshold: Optional[float] = None) -> bool:
    threshold = settings.VARIANCE_ALERT_PCT if threshold is None else threshold
    return variance_pct is not None and abs(variance_pct) > threshold


# ============================================================================
# Candidates
# ============================================================================

@dataclass(frozen=True)
class LineCandidate:
    po_number: str
    po_date: date
    vendor_id: int
    line_sequence: int
    sku: str
    quantity: int
    value: int


@dataclass(frozen=True)
class OrderCandidate:
    po_number: str
    po_date: date
    vendor_id: int
    collection: str
    quantity: int
    value: int


def _rank(candidate_date: date, po_number: str, line_sequence: int, midpoint: date) -> Tuple[int, str, int]:
    return abs((candidate_date - midpoint).days), po_number, line_sequence


class ProjectionMatcher:
    """One automatic matching pass over active projections."""

    def __init__(self, db: Session, as_of: Optional[date] = None):
        self.db = db
        self.as_of = as_of or date.today()
        self.sentinel = settings.SPO_SENTINEL_SKU.upper()

    def run(self) -> MatchRunResult:
        """
        Match every non-manual projection. Flushes, does not commit.
        """
        result = MatchRunResult()
        resolver = VendorResolver(self.db)

        projections = (
            self.db.query(ActiveProjection)
            .order_by(
                ActiveProjection.year,
                ActiveProjection.month,
                ActiveProjection.vendor_code,
                ActiveProjection.sku,
                ActiveProjection.id,
            )
            .all()
        )
        manual = [p for p in projections if p.is_manual]
        automatic = [p for p in projections if not p.is_manual]

        lines_by_key, orders_by_key = self._load_candidates(automatic, resolver)
        claimed_lines, claimed_orders = self._manual_claims(manual)

        now = datetime.utcnow()
        for projection in automatic:
            result.processed += 1
            reason = self._skip_reason(projection, resolver)
            if reason:
                result.skipped += 1
                result.errors.append(
                    f"Projection {projection.id} ({projection.vendor_code or '-'}/{projection.sku} "
                    f"{projection.year}-{projection.month:02d}) skipped: {reason}"
                )
                continue

            projection.vendor_id = resolver.resolve_id(projection.vendor_code)
            status = self._match_one(
                projection, lines_by_key, orders_by_key, claimed_lines, claimed_orders, now
            )

            if status == MatchStatus.MATCHED:
                result.matched += 1
            elif status == MatchStatus.PARTIAL:
                result.partial += 1
            elif status == MatchStatus.EXPIRED:
                result.expired += 1
            else:
                result.unmatched += 1
            if status in (MatchStatus.MATCHED, MatchStatus.PARTIAL) and exceeds_variance_alert(projection.variance_pct):
                result.variances += 1

        self.db.flush()
        logger.info(
            f"Projection matching: {result.matched} matched, {result.partial} partial, "
            f"{result.expired} expired, {result.unmatched} unmatched",
            extra={
                "as_of": self.as_of.isoformat(),
                "skipped": result.skipped,
                "variances": result.variances,
                "manual": len(manual),
            },
        )
        return result

    # ------------------------------------------------------------------
    # Pass setup
    # ------------------------------------------------------------------

    def _skip_reason(self, projection: ActiveProjection, resolver: VendorResolver) -> Optional[str]:
        if projection.quantity is None or projection.quantity <= 0:
            return "non-positive quantity"
        if not projection.vendor_code:
            return "missing vendor code"
        if resolver.resolve_id(projection.vendor_code) is None:
            return f"vendor code {projection.vendor_code} does not resolve to a vendor"
        return None

    def _load_candidates(self, projections: List[ActiveProjection], resolver: VendorResolver):
        lines_by_key: Dict[Tuple[int, str], List[LineCandidate]] = {}
        orders_by_key: Dict[Tuple[int, str], List[OrderCandidate]] = {}

        vendor_ids = {resolver.resolve_id(p.vendor_code) for p in projections} - {None}
        if not vendor_ids:
            return lines_by_key, orders_by_key

        windows = [rules.order_window(p.year, p.month, p.order_type) for p in projections]
        earliest = min(w[0] for w in windows)
        latest = max(w[1] for w in windows)

        pos = (
            self.db.query(PurchaseOrder)
            .filter(
                PurchaseOrder.vendor_id.in_(vendor_ids),
                PurchaseOrder.po_date >= earliest,
                PurchaseOrder.po_date <= latest,
            )
            .all()
        )
        by_number = {po.po_number: po for po in pos if not rules.is_excluded(po)}

        if by_number:
            lines = (
                self.db.query(PurchaseOrderLine)
                .filter(
                    PurchaseOrderLine.po_number.in_(list(by_number)),
                    PurchaseOrderLine.sku.isnot(None),
                )
                .all()
            )
            for line in lines:
                po = by_number[line.po_number]
                key = (po.vendor_id, line.sku.strip().upper())
                lines_by_key.setdefault(key, []).append(LineCandidate(
                    po_number=po.po_number,
                    po_date=po.po_date,
                    vendor_id=po.vendor_id,
                    line_sequence=line.line_sequence,
                    sku=line.sku,
                    quantity=line.order_quantity or 0,
                    value=line.line_total or 0,
                ))

        for po in by_number.values():
            collection = po_collection(po)
            if collection:
                orders_by_key.setdefault((po.vendor_id, collection), []).append(OrderCandidate(
                    po_number=po.po_number,
                    po_date=po.po_date,
                    vendor_id=po.vendor_id,
                    collection=collection,
                    quantity=po.total_quantity or 0,
                    value=po.total_value or 0,
                ))

        return lines_by_key, orders_by_key

    def _manual_claims(self, manual: List[ActiveProjection]):
        claimed_lines: Set[Tuple[str, str]] = set()
        claimed_orders: Set[str] = set()
        for projection in manual:
            if projection.matched_po_number and projection.match_status in (
                MatchStatus.MATCHED.value, MatchStatus.PARTIAL.value
            ):
                if projection.sku.upper() == self.sentinel:
                    claimed_orders.add(projection.matched_po_number)
                else:
                    claimed_lines.add((projection.matched_po_number, projection.sku.strip().upper()))
        return claimed_lines, claimed_orders

    # ------------------------------------------------------------------
    # Per projection
    # ------------------------------------------------------------------

    def _match_one(self, projection, lines_by_key, orders_by_key, claimed_lines, claimed_orders, now) -> MatchStatus:
        start, end = rules.order_window(projection.year, projection.month, projection.order_type)
        midpoint = rules.target_month_midpoint(projection.year, projection.month)
        sku_key = projection.sku.strip().upper()
        vendor_id = projection.vendor_id

        candidates = [
            c for c in lines_by_key.get((vendor_id, sku_key), [])
            if start <= c.po_date <= end
            and (c.po_number, c.line_sequence) not in claimed_lines
            and (c.po_number, sku_key) not in claimed_lines
        ]
        if candidates:
            best = min(candidates, key=lambda c: _rank(c.po_date, c.po_number, c.line_sequence, midpoint))
            claimed_lines.add((best.po_number, best.line_sequence))
            self._apply_match(projection, MatchStatus.MATCHED, best.po_number, best.quantity, best.value, now)
            return MatchStatus.MATCHED

        if sku_key == self.sentinel:
            collection = normalize_collection(projection.collection)
            orders = [
                o for o in orders_by_key.get((vendor_id, collection), [])
                if start <= o.po_date <= end and o.po_number not in claimed_orders
            ] if collection else []
            if orders:
                best = min(orders, key=lambda o: _rank(o.po_date, o.po_number, 0, midpoint))
                claimed_orders.add(best.po_number)
                self._apply_match(projection, MatchStatus.PARTIAL, best.po_number, best.quantity, best.value, now)
                return MatchStatus.PARTIAL

        status = MatchStatus.EXPIRED if self.as_of > end else MatchStatus.UNMATCHED
        self._clear_match(projection, status)
        return status

    def _apply_match(self, projection, status: MatchStatus, po_number: str, quantity: int, value: int, now) -> None:
        variance = compute_variance(projection.quantity, projection.projection_value, quantity, value)
        if projection.matched_po_number != po_number or projection.match_status != status.value:
            projection.matched_at = now
        projection.match_status = status.value
        projection.matched_po_number = po_number
        projection.actual_quantity = quantity
        projection.actual_value = value
        projection.quantity_variance = variance.quantity_variance
        projection.value_variance = variance.value_variance
        projection.variance_pct = variance.variance_pct

    @staticmethod
    def _clear_match(projection, status: MatchStatus) -> None:
        projection.match_status = status.value
        projection.matched_po_number = None
        projection.matched_at = None
        projection.actual_quantity = None
        projection.actual_value = None
        projection.quantity_variance = None
        projection.value_variance = None
        projection.variance_pct = None


def match_projections(db: Session, as_of: Optional[date] = None) -> MatchRunResult:
    """Convenience wrapper used by the API and the refresh script."""
    return ProjectionMatcher(db, as_of).run()
