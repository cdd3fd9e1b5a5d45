"""
Tests for /api/v1/imports and the application root endpoints.
"""
import pytest

from merchops.models.purchase_order import PurchaseOrder
from tests.factories import create_test_po


def po_payload(po_number, vendor_name):
    return {
        "po_number": po_number,
        "vendor_name": vendor_name,
        "po_date": "2025-01-15",
        "original_cancel_date": "2025-03-31",
        "total_quantity": 10,
        "total_value": 2500,
        "lines": [{"line_sequence": 1, "sku": "LIN-100", "order_quantity": 10, "unit_price": 250}],
    }


class TestRoot:

    @pytest.mark.api
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.api
    def test_root_lists_docs(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"


class TestPurchaseOrderImport:

    @pytest.mark.api
    def test_unknown_vendor_answers_409_with_decisions(self, client, db_session, sample_vendor):
        db_session.commit()
        payload = {"rows": [
            po_payload("PO-1", "Harbor Home Textiles"),
            po_payload("PO-2", "Harbor Home Textiles Ltd"),
        ]}

        response = client.post("/api/v1/imports/purchase-orders", json=payload)

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "VENDOR_DECISION_REQUIRED"
        assert "timestamp" in data
        [unknown] = data["details"]["unknown_vendors"]
        assert unknown["vendor_name"] == "Harbor Home Textiles Ltd"
        assert unknown["suggestions"][0]["vendor_id"] == sample_vendor.id
        assert db_session.query(PurchaseOrder).count() == 0

    @pytest.mark.api
    def test_resubmit_with_decisions_imports(self, client, db_session, sample_vendor):
        db_session.commit()
        payload = {
            "rows": [
                po_payload("PO-1", "Harbor Home Textiles"),
                po_payload("PO-2", "Harbor Home Textiles Ltd"),
            ],
            "vendor_decisions": [{
                "vendor_name": "Harbor Home Textiles Ltd",
                "action": "map",
                "target_vendor_id": sample_vendor.id,
            }],
        }

        response = client.post("/api/v1/imports/purchase-orders", json=payload)

        assert response.status_code == 200
        data = response.json()
        assert data["created"] == 2
        vendors = {po.vendor_id for po in db_session.query(PurchaseOrder).all()}
        assert vendors == {sample_vendor.id}

    @pytest.mark.api
    def test_invalid_row_is_a_validation_error(self, client):
        response = client.post("/api/v1/imports/purchase-orders", json={"rows": [{"po_number": ""}]})
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestShipmentImport:

    @pytest.mark.api
    def test_shipments_attach_to_existing_po(self, client, db_session, sample_vendor):
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-9")
        db_session.commit()

        response = client.post("/api/v1/imports/shipments", json=[
            {"po_number": "PO-9", "shipment_number": 1, "delivery_to_consolidator": "2025-03-01"},
            {"po_number": "PO-404", "shipment_number": 1},
        ])

        assert response.status_code == 200
        data = response.json()
        assert data["created"] == 1
        assert data["skipped"] == 1


class TestClearPurchaseOrders:

    @pytest.mark.api
    def test_clear_requires_confirmation(self, client, db_session, sample_vendor):
        create_test_po(db_session, vendor=sample_vendor)
        db_session.commit()

        response = client.delete("/api/v1/imports/purchase-orders")

        assert response.status_code == 422
        assert response.json()["error"] == "BUSINESS_RULE_ERROR"
        assert db_session.query(PurchaseOrder).count() == 1

    @pytest.mark.api
    def test_clear_with_confirmation(self, client, db_session, sample_vendor):
        create_test_po(db_session, vendor=sample_vendor)
        db_session.commit()

        response = client.delete("/api/v1/imports/purchase-orders?confirm=true")

        assert response.status_code == 200
        assert response.json()["purchase_orders"] == 1
        assert db_session.query(PurchaseOrder).count() == 0
