"""
Classification Service

Runs the pure classification rules over stored purchase orders and
timeline milestones and persists the results, so dashboards and ad-hoc
SQL read the same values. Run after every import.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from merchops.logging_config import get_logger
from merchops.models.purchase_order import PurchaseOrder
from merchops.models.quality import Inspection, QualityTest
from merchops.models.timeline import POTimelineMilestone
from merchops.services import classification as rules

logger = get_logger(__name__)


@dataclass
class ClassificationRefreshResult:
    pos_classified: int = 0
    excluded: int = 0
    on_time: int = 0
    late: int = 0
    at_risk: int = 0
    milestones_updated: int = 0
    errors: List[str] = field(default_factory=list)


class ClassificationService:
    """Persists OTD, at-risk and milestone classification."""

    def __init__(self, db: Session):
        self.db = db

    def refresh(
        self,
        as_of: Optional[date] = None,
        po_numbers: Optional[Iterable[str]] = None,
    ) -> ClassificationRefreshResult:
        """
        Recompute classification for all POs (or the given PO numbers).

        Flushes but does not commit; the caller owns the transaction.
        """
        as_of = as_of or date.today()
        result = ClassificationRefreshResult()

        query = self.db.query(PurchaseOrder).options(
            selectinload(PurchaseOrder.shipments),
            selectinload(PurchaseOrder.lines),
        )
        if po_numbers is not None:
            po_numbers = list(po_numbers)
            if not po_numbers:
                return result
            query = query.filter(PurchaseOrder.po_number.in_(po_numbers))
        pos = query.all()

        scoped = [po.po_number for po in pos]
        inspections = self._inspections_by_po(scoped)
        tests_by_sku, tests_by_po = self._quality_tests(pos)

        now = datetime.utcnow()
        for po in pos:
            try:
                self._classify_po(po, inspections, tests_by_sku, tests_by_po, as_of)
            except (TypeError, ValueError) as e:
                result.errors.append(f"PO {po.po_number}: {e}")
                continue
            po.classified_at = now
            result.pos_classified += 1
            if po.is_excluded:
                result.excluded += 1
            elif po.otd_status == "on_time":
                result.on_time += 1
            elif po.otd_status == "late":
                result.late += 1
            if po.is_at_risk:
                result.at_risk += 1

        result.milestones_updated = self._refresh_milestones(scoped, as_of)
        self.db.flush()

        logger.info(
            f"Classified {result.pos_classified} POs ({result.late} late, {result.at_risk} at risk)",
            extra={
                "as_of": as_of.isoformat(),
                "excluded": result.excluded,
                "milestones": result.milestones_updated,
                "errors": len(result.errors),
            },
        )
        return result

    def _classify_po(self, po, inspections, tests_by_sku, tests_by_po, as_of: date) -> None:
        po.is_excluded = rules.is_excluded(po)

        delivered = rules.delivery_date(po.shipments)
        otd = rules.classify_otd(po, delivered)
        original = rules.classify_original_otd(po, delivered)
        po.otd_status = otd.status.value
        po.original_otd_status = original.status.value
        po.days_late = otd.days_late
        po.is_late = rules.is_late_po(po, as_of)

        if po.is_excluded:
            po.is_at_risk = False
            po.at_risk_reasons = None
            return

        skus = {line.sku for line in po.lines if line.sku}
        tests = list(tests_by_po.get(po.po_number, []))
        for sku in skus:
            tests.extend(tests_by_sku.get(sku, []))

        risk = rules.evaluate_at_risk(
            po, po.shipments, inspections.get(po.po_number, []), tests, as_of
        )
        po.is_at_risk = risk.is_at_risk
        po.at_risk_reasons = [r.value for r in risk.reasons] or None

    def _inspections_by_po(self, po_numbers: List[str]) -> Dict[str, List[Inspection]]:
        grouped: Dict[str, List[Inspection]] = defaultdict(list)
        if not po_numbers:
            return grouped
        rows = self.db.query(Inspection).filter(Inspection.po_number.in_(po_numbers)).all()
        for row in rows:
            grouped[row.po_number].append(row)
        return grouped

    def _quality_tests(self, pos: List[PurchaseOrder]):
        by_sku: Dict[str, List[QualityTest]] = defaultdict(list)
        by_po: Dict[str, List[QualityTest]] = defaultdict(list)
        skus = {line.sku for po in pos for line in po.lines if line.sku}
        po_numbers = [po.po_number for po in pos]
        if not skus and not po_numbers:
            return by_sku, by_po

        rows = self.db.query(QualityTest).filter(
            (QualityTest.sku.in_(skus)) | (QualityTest.po_number.in_(po_numbers))
        ).all()
        for row in rows:
            if row.po_number:
                by_po[row.po_number].append(row)
            elif row.sku:
                by_sku[row.sku].append(row)
        return by_sku, by_po

    def _refresh_milestones(self, po_numbers: List[str], as_of: date) -> int:
        if not po_numbers:
            return 0
        milestones = (
            self.db.query(POTimelineMilestone)
            .filter(POTimelineMilestone.po_number.in_(po_numbers))
            .all()
        )
        for milestone in milestones:
            state = rules.milestone_status(
                milestone.planned_date, milestone.revised_date, milestone.actual_date, as_of
            )
            milestone.status = state.status.value
            milestone.days_late = state.days_late
            milestone.days_overdue = state.days_overdue
            milestone.days_until = state.days_until
        return len(milestones)
