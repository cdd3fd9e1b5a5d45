"""
Vendor models - canonical vendors and import-name aliases
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from merchops.db.base import Base


class Vendor(Base):
    """Canonical vendor. Imports resolve raw vendor names to this row."""
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)

    # Code used by capacity and projection extracts (e.g. "V1234")
    vendor_code = Column(String(64), unique=True, nullable=True, index=True)

    # Ownership, drives role-scoped KPI rollups
    merchandiser = Column(String(255), nullable=True, index=True)
    merchandising_manager = Column(String(255), nullable=True, index=True)

    status = Column(String(20), default="active", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    aliases = relationship("VendorAlias", back_populates="vendor", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Vendor {self.name} ({self.vendor_code})>"


class VendorAlias(Base):
    """Alternate spelling of a vendor name seen in import files"""
    __tablename__ = "vendor_aliases"

    id = Column(Integer, primary_key=True, index=True)
    alias = Column(String(255), unique=True, nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    vendor = relationship("Vendor", back_populates="aliases")

    def __repr__(self):
        return f"<VendorAlias {self.alias} -> {self.vendor_id}>"
