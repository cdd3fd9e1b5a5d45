"""
PO timeline milestones (lab dip, inline, final, sailing, ...)
"""
from sqlalchemy import Column, Integer, String, DateTime, Date, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from merchops.db.base import Base


class POTimelineMilestone(Base):
    __tablename__ = "po_timeline_milestones"
    __table_args__ = (
        UniqueConstraint("po_number", "milestone", name="uq_po_milestone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(
        String(64), ForeignKey("po_headers.po_number", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    milestone = Column(String(64), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    planned_date = Column(Date, nullable=True)
    revised_date = Column(Date, nullable=True)
    actual_date = Column(Date, nullable=True)

    # Persisted state, see classification.milestone_status
    status = Column(String(20), default="pending", nullable=False)
    days_late = Column(Integer, nullable=True)
    days_overdue = Column(Integer, nullable=True)
    days_until = Column(Integer, nullable=True)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    purchase_order = relationship("PurchaseOrder", backref="milestones")

    def __repr__(self):
        return f"<POTimelineMilestone {self.po_number} {self.milestone}: {self.status}>"
