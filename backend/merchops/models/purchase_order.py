"""
Purchase Order models - headers and line items

Monetary columns are integer cents.
"""
from sqlalchemy import (
    Column, Integer, BigInteger, String, DateTime, Text, Date, Boolean, JSON,
    ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from merchops.db.base import Base


class PurchaseOrder(Base):
    """Purchase Order header model"""
    __tablename__ = "po_headers"

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(String(64), unique=True, nullable=False, index=True)

    # Raw vendor name from the extract, plus the resolved canonical vendor
    vendor_name = Column(String(255), nullable=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True, index=True)

    client = Column(String(64), nullable=True, index=True)
    program_description = Column(String(255), nullable=True)
    collection = Column(String(100), nullable=True)
    brand = Column(String(64), nullable=True)

    # Dates
    po_date = Column(Date, nullable=True, index=True)
    original_ship_date = Column(Date, nullable=True)
    revised_ship_date = Column(Date, nullable=True)
    original_cancel_date = Column(Date, nullable=True)
    revised_cancel_date = Column(Date, nullable=True)
    revised_by = Column(String(64), nullable=True)  # CLIENT, FORWARDER, VENDOR, ...
    revised_reason = Column(Text, nullable=True)

    # Quantities / money (cents)
    total_quantity = Column(Integer, default=0, nullable=False)
    balance_quantity = Column(Integer, default=0, nullable=False)
    total_value = Column(BigInteger, default=0, nullable=False)
    shipped_value = Column(BigInteger, default=0, nullable=False)

    status = Column(String(50), nullable=True)
    shipment_status = Column(String(50), nullable=True)  # "Shipped", "Partially Shipped", ...
    pts_number = Column(String(64), nullable=True)
    is_sample = Column(Boolean, default=False, nullable=False)

    # Persisted classification (refreshed after every import)
    is_excluded = Column(Boolean, default=False, nullable=False, index=True)
    otd_status = Column(String(20), default="unknown", nullable=False)
    original_otd_status = Column(String(20), default="unknown", nullable=False)
    days_late = Column(Integer, nullable=True)
    is_late = Column(Boolean, default=False, nullable=False)
    is_at_risk = Column(Boolean, default=False, nullable=False)
    at_risk_reasons = Column(JSON, nullable=True)
    classified_at = Column(DateTime, nullable=True)

    # Audit
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    vendor = relationship("Vendor", backref="purchase_orders")
    lines = relationship(
        "PurchaseOrderLine", back_populates="purchase_order",
        cascade="all, delete-orphan", order_by="PurchaseOrderLine.line_sequence",
    )
    shipments = relationship(
        "Shipment", back_populates="purchase_order",
        cascade="all, delete-orphan", order_by="Shipment.shipment_number",
    )

    @property
    def effective_cancel_date(self):
        return self.revised_cancel_date or self.original_cancel_date

    def __repr__(self):
        return f"<PurchaseOrder {self.po_number}: {self.shipment_status}>"


class PurchaseOrderLine(Base):
    """Purchase Order line item model"""
    __tablename__ = "po_line_items"
    __table_args__ = (
        UniqueConstraint("po_number", "line_sequence", name="uq_po_line_sequence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(
        String(64), ForeignKey("po_headers.po_number", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    line_sequence = Column(Integer, nullable=False, default=1)

    sku = Column(String(64), nullable=True, index=True)
    sku_description = Column(Text, nullable=True)
    order_quantity = Column(Integer, default=0, nullable=False)
    unit_price = Column(BigInteger, default=0, nullable=False)  # cents
    line_total = Column(BigInteger, default=0, nullable=False)  # cents

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    purchase_order = relationship("PurchaseOrder", back_populates="lines")

    def __repr__(self):
        return f"<PurchaseOrderLine {self.po_number}#{self.line_sequence}: {self.sku}>"
