"""
Staff model
"""
from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime

from merchops.db.base import Base


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)

    # StaffRole value, resolved from title on create/update only
    role = Column(String(20), default="individual", nullable=False)

    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Staff {self.name} ({self.role})>"
