"""Database models"""
from merchops.models.vendor import Vendor, VendorAlias
from merchops.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from merchops.models.shipment import Shipment
from merchops.models.quality import Inspection, QualityTest
from merchops.models.projection import ProjectionSnapshot, ActiveProjection
from merchops.models.capacity import VendorCapacityData, VendorCapacitySummary
from merchops.models.staff import Staff
from merchops.models.timeline import POTimelineMilestone

__all__ = [
    # Vendors
    "Vendor",
    "VendorAlias",
    # Orders
    "PurchaseOrder",
    "PurchaseOrderLine",
    "Shipment",
    "POTimelineMilestone",
    # Quality
    "Inspection",
    "QualityTest",
    # Projections
    "ProjectionSnapshot",
    "ActiveProjection",
    # Capacity
    "VendorCapacityData",
    "VendorCapacitySummary",
    # People
    "Staff",
]
