"""
Projection models

ProjectionSnapshot is the append-only archive of every forecast import.
ActiveProjection is the working copy rebuilt from the newest snapshot per
(vendor_code, sku, year, month); the matcher writes its match fields.
"""
from sqlalchemy import (
    Column, Integer, BigInteger, Float, String, DateTime, Date, Text, Boolean,
    ForeignKey, UniqueConstraint,
)
from datetime import datetime

from merchops.db.base import Base


class ProjectionSnapshot(Base):
    """Immutable forecast row. Never updated after insert."""
    __tablename__ = "projection_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "vendor_code", "sku", "year", "month", "import_date",
            name="uq_projection_snapshot",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    vendor_code = Column(String(64), nullable=False, index=True)
    sku = Column(String(64), nullable=False, index=True)
    sku_description = Column(Text, nullable=True)
    brand = Column(String(64), nullable=True)
    collection = Column(String(100), nullable=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)  # 1-12
    projection_value = Column(BigInteger, default=0, nullable=False)  # cents
    quantity = Column(Integer, default=0, nullable=False)
    order_type = Column(String(20), default="regular", nullable=False)  # regular, mto, spo

    import_date = Column(Date, nullable=False, index=True)  # From the source file name
    imported_by = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<ProjectionSnapshot {self.vendor_code}/{self.sku} {self.year}-{self.month:02d} @{self.import_date}>"


class ActiveProjection(Base):
    """Working projection row, one per (vendor_code, sku, year, month)"""
    __tablename__ = "active_projections"
    __table_args__ = (
        UniqueConstraint("vendor_code", "sku", "year", "month", name="uq_active_projection"),
    )

    id = Column(Integer, primary_key=True, index=True)
    snapshot_id = Column(Integer, ForeignKey("projection_snapshots.id"), nullable=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True, index=True)
    vendor_code = Column(String(64), nullable=False, index=True)
    sku = Column(String(64), nullable=False, index=True)
    sku_description = Column(Text, nullable=True)
    brand = Column(String(64), nullable=True)
    collection = Column(String(100), nullable=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    projection_value = Column(BigInteger, default=0, nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    order_type = Column(String(20), default="regular", nullable=False)

    # Matching
    match_status = Column(String(20), default="unmatched", nullable=False, index=True)
    matched_po_number = Column(String(64), nullable=True, index=True)
    matched_at = Column(DateTime, nullable=True)
    actual_quantity = Column(Integer, nullable=True)
    actual_value = Column(BigInteger, nullable=True)
    quantity_variance = Column(Integer, nullable=True)
    value_variance = Column(BigInteger, nullable=True)
    variance_pct = Column(Float, nullable=True)
    # Set by manual match/unmatch/remove; the automatic matcher leaves these rows alone
    is_manual = Column(Boolean, default=False, nullable=False)

    # User notes
    comment = Column(Text, nullable=True)
    commented_at = Column(DateTime, nullable=True)
    commented_by = Column(String(255), nullable=True)

    last_snapshot_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<ActiveProjection {self.vendor_code}/{self.sku} {self.year}-{self.month:02d}: {self.match_status}>"
