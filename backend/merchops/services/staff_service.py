"""
Staff Service

Staff records carry an explicit role. The role is derived from the job
title once, when the record is created or its title changes; KPI rollups
read the stored role and never look at the title.
"""
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from merchops.core.status_config import STAFF_TITLE_KEYWORDS, StaffRole
from merchops.exceptions import ConflictError, NotFoundError
from merchops.logging_config import get_logger
from merchops.models.staff import Staff
from merchops.schemas.staff import StaffCreate, StaffUpdate

logger = get_logger(__name__)


def resolve_staff_role(title: Optional[str]) -> StaffRole:
    """
    Map a free-text job title to a role.

    Keywords are matched as whole words, org-lead keywords first, so
    "GMM" and "VP Merchandising" are org leads, "Merchandising Manager" is
    a team lead and "Senior Merchandiser" an individual.
    """
    if not title:
        return StaffRole.INDIVIDUAL
    text = " ".join(title.lower().split())
    for keywords, role in STAFF_TITLE_KEYWORDS:
        for keyword in keywords:
            if re.search(rf"\b{re.escape(keyword)}\b", text):
                return role
    return StaffRole.INDIVIDUAL


def get_staff(db: Session, staff_id: int) -> Staff:
    staff = db.query(Staff).filter(Staff.id == staff_id).first()
    if not staff:
        raise NotFoundError("Staff", staff_id)
    return staff


def list_staff(db: Session, role: Optional[StaffRole] = None) -> List[Staff]:
    query = db.query(Staff)
    if role is not None:
        query = query.filter(Staff.role == StaffRole(role).value)
    return query.order_by(Staff.name).all()


def create_staff(db: Session, data: StaffCreate) -> Staff:
    name = data.name.strip()
    if db.query(Staff).filter(Staff.name == name).first():
        raise ConflictError(f"Staff member '{name}' already exists", details={"name": name})

    role = data.role or resolve_staff_role(data.title)
    staff = Staff(name=name, title=data.title, email=data.email, role=role.value)
    db.add(staff)
    db.flush()

    logger.info(f"Created staff {name} as {role.value}", extra={"staff_id": staff.id, "title": data.title})
    return staff


def update_staff(db: Session, staff_id: int, data: StaffUpdate) -> Staff:
    staff = get_staff(db, staff_id)
    changes = data.model_dump(exclude_unset=True)

    if "name" in changes and changes["name"]:
        name = changes["name"].strip()
        clash = db.query(Staff).filter(Staff.name == name, Staff.id != staff_id).first()
        if clash:
            raise ConflictError(f"Staff member '{name}' already exists", details={"name": name})
        staff.name = name
    if "email" in changes:
        staff.email = changes["email"]
    if changes.get("status"):
        staff.status = changes["status"]

    if "title" in changes:
        staff.title = changes["title"]
        if changes.get("role") is None:
            staff.role = resolve_staff_role(staff.title).value
    if changes.get("role") is not None:
        staff.role = StaffRole(changes["role"]).value

    db.flush()
    return staff


def normalize_staff_roles(db: Session) -> int:
    """
    Re-derive every role from its title. One-off backfill for rows created
    before roles were stored; returns the number of rows changed.
    """
    changed = 0
    for staff in db.query(Staff).all():
        role = resolve_staff_role(staff.title).value
        if staff.role != role:
            staff.role = role
            changed += 1
    db.flush()
    if changed:
        logger.info(f"Normalized {changed} staff role(s)")
    return changed
