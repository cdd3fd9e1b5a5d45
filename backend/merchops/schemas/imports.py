"""
Normalized import row schemas

The upstream pipeline parses the business extracts (OS340, OS630, OS650,
projection and capacity files) and hands the engine these rows. Dates go
through ``parse_date`` so unparseable text becomes None instead of failing
the row; money is integer cents.
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from merchops.core.status_config import OrderType, VendorDecisionAction
from merchops.services.classification import parse_date


class _DateNormalizingRow(BaseModel):
    """Base row: coerces every date-typed field through parse_date."""

    @field_validator("*", mode="before")
    @classmethod
    def normalize_dates(cls, v, info):
        field = cls.model_fields.get(info.field_name)
        if field is not None and field.annotation in (date, Optional[date]):
            return parse_date(v)
        return v


class POLineRow(BaseModel):
    line_sequence: int = 1
    sku: Optional[str] = None
    sku_description: Optional[str] = None
    order_quantity: int = 0
    unit_price: int = 0
    line_total: Optional[int] = None


class PurchaseOrderRow(_DateNormalizingRow):
    """One PO header (OS340) with optional line items"""
    po_number: str = Field(..., min_length=1)
    vendor_name: Optional[str] = None
    client: Optional[str] = None
    program_description: Optional[str] = None
    collection: Optional[str] = None
    brand: Optional[str] = None
    po_date: Optional[date] = None
    original_ship_date: Optional[date] = None
    revised_ship_date: Optional[date] = None
    original_cancel_date: Optional[date] = None
    revised_cancel_date: Optional[date] = None
    revised_by: Optional[str] = None
    revised_reason: Optional[str] = None
    total_quantity: int = 0
    balance_quantity: int = 0
    total_value: int = 0
    shipped_value: int = 0
    status: Optional[str] = None
    shipment_status: Optional[str] = None
    pts_number: Optional[str] = None
    is_sample: bool = False
    lines: List[POLineRow] = Field(default_factory=list)

    @field_validator("po_number")
    @classmethod
    def strip_po_number(cls, v: str) -> str:
        return v.strip()


class ShipmentRow(_DateNormalizingRow):
    """One split shipment (OS650)"""
    po_number: str = Field(..., min_length=1)
    shipment_number: int = 1
    delivery_to_consolidator: Optional[date] = None
    actual_sailing_date: Optional[date] = None
    qty_shipped: int = 0
    shipped_value: int = 0
    pts_number: Optional[str] = None


class InspectionRow(_DateNormalizingRow):
    """One inspection (OS630)"""
    po_number: Optional[str] = None
    sku: Optional[str] = None
    vendor_name: Optional[str] = None
    inspection_type: str = Field(..., min_length=1)
    inspection_date: Optional[date] = None
    result: Optional[str] = None
    notes: Optional[str] = None


class QualityTestRow(_DateNormalizingRow):
    """One lab test report (OS630)"""
    po_number: Optional[str] = None
    sku: Optional[str] = None
    test_type: str = Field(..., min_length=1)
    report_date: Optional[date] = None
    report_number: Optional[str] = None
    result: Optional[str] = None
    expiry_date: Optional[date] = None
    notes: Optional[str] = None


class ProjectionRow(BaseModel):
    """One forecast cell: vendor x SKU x month"""
    vendor_code: Optional[str] = None
    sku: str = Field(..., min_length=1)
    sku_description: Optional[str] = None
    brand: Optional[str] = None
    collection: Optional[str] = None
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    projection_value: int = 0
    quantity: int = 0
    order_type: OrderType = OrderType.REGULAR


class CapacityRow(BaseModel):
    """One SS551 capacity row: vendor x client x month"""
    vendor_code: str = Field(..., min_length=1)
    vendor_name: Optional[str] = None
    client: str = ""
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    shipment_confirmed: int = 0
    shipment_unconfirmed: int = 0
    total_shipment: Optional[int] = None
    projections: int = 0
    reserved_capacity: int = 0
    factory_overall_capacity: Optional[int] = None
    remarks: Optional[str] = None


class VendorDecision(BaseModel):
    """Resolution of one unknown vendor name"""
    vendor_name: str
    action: VendorDecisionAction
    target_vendor_id: Optional[int] = None  # required for MAP
    vendor_code: Optional[str] = None  # optional for CREATE


class PurchaseOrderImport(BaseModel):
    rows: List[PurchaseOrderRow]
    vendor_decisions: List[VendorDecision] = Field(default_factory=list)


class ProjectionImport(BaseModel):
    import_date: date
    imported_by: Optional[str] = None
    rows: List[ProjectionRow]
