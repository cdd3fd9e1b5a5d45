"""
Vendor capacity models

Locked rows (is_locked = true) survive every import-driven clear.
"""
from sqlalchemy import (
    Column, Integer, BigInteger, Float, String, DateTime, Text, Boolean,
    ForeignKey, UniqueConstraint,
)
from datetime import datetime

from merchops.db.base import Base


class VendorCapacityData(Base):
    """Monthly capacity row per vendor and client"""
    __tablename__ = "vendor_capacity_data"
    __table_args__ = (
        UniqueConstraint("vendor_code", "year", "month", "client", name="uq_capacity_vendor_month_client"),
    )

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True, index=True)
    vendor_code = Column(String(64), nullable=False, index=True)
    vendor_name = Column(String(255), nullable=True)
    client = Column(String(64), nullable=False, default="")
    year = Column(Integer, nullable=False, index=True)
    month = Column(Integer, nullable=False)

    # Values in cents
    shipment_confirmed = Column(BigInteger, default=0, nullable=False)
    shipment_unconfirmed = Column(BigInteger, default=0, nullable=False)
    total_shipment = Column(BigInteger, default=0, nullable=False)
    projections = Column(BigInteger, default=0, nullable=False)
    reserved_capacity = Column(BigInteger, default=0, nullable=False)
    factory_overall_capacity = Column(BigInteger, nullable=True)

    # Derived
    balance = Column(BigInteger, default=0, nullable=False)
    utilized_capacity_pct = Column(Float, nullable=True)

    remarks = Column(Text, nullable=True)
    is_locked = Column(Boolean, default=False, nullable=False, index=True)

    import_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<VendorCapacityData {self.vendor_code} {self.year}-{self.month:02d} {self.client}>"


class VendorCapacitySummary(Base):
    """Annual capacity totals per vendor"""
    __tablename__ = "vendor_capacity_summary"
    __table_args__ = (
        UniqueConstraint("vendor_code", "year", name="uq_capacity_summary_vendor_year"),
    )

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True, index=True)
    vendor_code = Column(String(64), nullable=False, index=True)
    vendor_name = Column(String(255), nullable=True)
    year = Column(Integer, nullable=False, index=True)

    total_shipment_annual = Column(BigInteger, default=0, nullable=False)
    total_projection_annual = Column(BigInteger, default=0, nullable=False)
    total_reserved_capacity_annual = Column(BigInteger, default=0, nullable=False)
    avg_utilization_pct = Column(Float, nullable=True)

    is_locked = Column(Boolean, default=False, nullable=False, index=True)

    import_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<VendorCapacitySummary {self.vendor_code} {self.year}>"
