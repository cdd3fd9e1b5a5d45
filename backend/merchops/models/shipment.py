"""
Shipment model - one row per split shipment of a purchase order
"""
from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Date, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from merchops.db.base import Base


class Shipment(Base):
    __tablename__ = "shipments"
    __table_args__ = (
        UniqueConstraint("po_number", "shipment_number", name="uq_shipment_po_sequence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(
        String(64), ForeignKey("po_headers.po_number", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    shipment_number = Column(Integer, nullable=False, default=1)

    delivery_to_consolidator = Column(Date, nullable=True)  # HOD actual
    actual_sailing_date = Column(Date, nullable=True)  # ETD actual
    qty_shipped = Column(Integer, default=0, nullable=False)
    shipped_value = Column(BigInteger, default=0, nullable=False)  # cents
    pts_number = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    purchase_order = relationship("PurchaseOrder", back_populates="shipments")

    def __repr__(self):
        return f"<Shipment {self.po_number}/{self.shipment_number}>"
