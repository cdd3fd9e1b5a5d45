"""
Staff API Endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from merchops.core.status_config import StaffRole
from merchops.db.session import get_db
from merchops.schemas.staff import StaffCreate, StaffResponse, StaffUpdate
from merchops.services import staff_service

router = APIRouter()


@router.get("/", response_model=List[StaffResponse])
async def list_staff(role: Optional[StaffRole] = None, db: Session = Depends(get_db)):
    return staff_service.list_staff(db, role)


@router.post("/", response_model=StaffResponse, status_code=201)
async def create_staff(data: StaffCreate, db: Session = Depends(get_db)):
    """Create a staff member; the role is derived from the title unless given"""
    staff = staff_service.create_staff(db, data)
    db.commit()
    db.refresh(staff)
    return staff


@router.patch("/{staff_id}", response_model=StaffResponse)
async def update_staff(staff_id: int, data: StaffUpdate, db: Session = Depends(get_db)):
    staff = staff_service.update_staff(db, staff_id, data)
    db.commit()
    db.refresh(staff)
    return staff
