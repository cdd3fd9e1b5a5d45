"""
Quality models - inspections and lab tests

Both are keyed by a composite natural key so re-imports update rows in
place and linked records keep their foreign keys.
"""
from sqlalchemy import Column, Integer, String, DateTime, Date, Text, UniqueConstraint
from datetime import datetime

from merchops.db.base import Base


class Inspection(Base):
    __tablename__ = "inspections"
    __table_args__ = (
        UniqueConstraint(
            "sku", "inspection_type", "inspection_date", "po_number",
            name="uq_inspection_natural_key",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(String(64), nullable=True, index=True)
    sku = Column(String(64), nullable=True, index=True)
    vendor_name = Column(String(255), nullable=True)
    inspection_type = Column(String(64), nullable=False)  # "Inline Inspection", "Final Inspection"
    inspection_date = Column(Date, nullable=True)
    result = Column(String(64), nullable=True)  # "Passed", "Failed", "Failed - Critical Failure"
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Inspection {self.inspection_type} {self.po_number}/{self.sku}: {self.result}>"


class QualityTest(Base):
    __tablename__ = "quality_tests"
    __table_args__ = (
        UniqueConstraint(
            "sku", "test_type", "report_date", "po_number",
            name="uq_quality_test_natural_key",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(String(64), nullable=True, index=True)
    sku = Column(String(64), nullable=True, index=True)
    test_type = Column(String(64), nullable=False)
    report_date = Column(Date, nullable=True)
    report_number = Column(String(64), nullable=True)
    result = Column(String(64), nullable=True)
    expiry_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<QualityTest {self.test_type} {self.po_number}/{self.sku}: {self.result}>"
