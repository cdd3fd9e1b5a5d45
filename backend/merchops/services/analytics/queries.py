"""
Shared aggregation building blocks
"""
from sqlalchemy import case, func, select

from merchops.core.status_config import OTDStatus
from merchops.models.purchase_order import PurchaseOrder
from merchops.models.shipment import Shipment

ON_TIME = OTDStatus.ON_TIME.value
LATE = OTDStatus.LATE.value


def shipment_rollup():
    """
    One row per PO: latest HOD (delivery) and first ETD (revenue date).

    Joining this instead of ``shipments`` keeps split shipments from
    multiplying PO header values.
    """
    return (
        select(
            Shipment.po_number.label("po_number"),
            func.max(Shipment.delivery_to_consolidator).label("delivered"),
            func.min(Shipment.actual_sailing_date).label("first_sailed"),
        )
        .group_by(Shipment.po_number)
        .subquery("shipment_rollup")
    )


def count_if(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def sum_if(condition, column):
    return func.coalesce(func.sum(case((condition, column), else_=0)), 0)


def is_shipped_otd():
    return PurchaseOrder.otd_status.in_([ON_TIME, LATE])


def as_int(value) -> int:
    return int(value or 0)
