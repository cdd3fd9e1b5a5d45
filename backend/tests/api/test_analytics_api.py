"""
Tests for /api/v1/analytics and /api/v1/staff.
"""
import pytest
from datetime import date

from merchops.services.classification_service import ClassificationService
from tests.factories import create_test_po, create_test_shipment, create_test_staff


@pytest.fixture
def shipped_book(db_session, sample_vendor):
    on_time = create_test_po(db_session, vendor=sample_vendor, po_number="PO-OT",
                             original_cancel_date=date(2025, 3, 10), shipment_status="Shipped")
    create_test_shipment(db_session, on_time, delivery_to_consolidator=date(2025, 3, 9))
    late = create_test_po(db_session, vendor=sample_vendor, po_number="PO-LT",
                          original_cancel_date=date(2025, 3, 10), shipment_status="Shipped")
    create_test_shipment(db_session, late, delivery_to_consolidator=date(2025, 3, 13))
    ClassificationService(db_session).refresh(as_of=date(2025, 6, 30))
    db_session.commit()
    return sample_vendor


class TestDashboardApi:

    @pytest.mark.api
    def test_dashboard_kpis(self, client, shipped_book):
        response = client.get("/api/v1/analytics/dashboard")

        assert response.status_code == 200
        data = response.json()
        assert data["shipped_count"] == 2
        assert data["on_time_count"] == 1
        assert data["otd_pct"] == 50.0
        assert data["avg_days_late"] == 3.0

    @pytest.mark.api
    def test_filter_by_merchandiser(self, client, shipped_book):
        response = client.get("/api/v1/analytics/dashboard", params={"merchandiser": "Nobody"})
        assert response.status_code == 200
        assert response.json()["total_pos"] == 0

    @pytest.mark.api
    def test_inverted_date_range_is_rejected(self, client):
        response = client.get(
            "/api/v1/analytics/dashboard",
            params={"start_date": "2025-03-01", "end_date": "2025-02-01"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.api
    def test_otd_by_vendor_requires_year(self, client):
        response = client.get("/api/v1/analytics/otd-by-vendor")
        assert response.status_code == 422

    @pytest.mark.api
    def test_header_compares_same_date_last_year(self, client, shipped_book):
        response = client.get("/api/v1/analytics/header", params={"as_of": "2025-06-30"})

        assert response.status_code == 200
        assert response.json()["comparison_date"] == "2024-06-30"

    @pytest.mark.api
    def test_header_money_is_integer_cents(self, client, db_session, sample_vendor):
        po = create_test_po(db_session, vendor=sample_vendor, po_number="PO-CENTS",
                            shipped_value=123456, shipment_status="Shipped")
        create_test_shipment(db_session, po, delivery_to_consolidator=date(2025, 3, 1),
                             actual_sailing_date=date(2025, 3, 4))
        db_session.commit()

        response = client.get("/api/v1/analytics/header", params={"as_of": "2025-06-30"})

        assert response.status_code == 200
        sales = response.json()["ytd_shipped_sales"]
        assert sales["current"] == 123456
        assert isinstance(sales["current"], int)
        assert isinstance(sales["prior"], int)


class TestStaffApi:

    @pytest.mark.api
    def test_create_derives_role(self, client):
        response = client.post("/api/v1/staff/", json={"name": "Sam Ortiz", "title": "Merchandising Manager"})

        assert response.status_code == 201
        assert response.json()["role"] == "team_lead"

    @pytest.mark.api
    def test_duplicate_name_conflicts(self, client, db_session):
        create_test_staff(db_session, name="Dana Reyes")
        db_session.commit()

        response = client.post("/api/v1/staff/", json={"name": "Dana Reyes"})

        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

    @pytest.mark.api
    def test_list_by_role(self, client, db_session):
        create_test_staff(db_session, name="Pat Lane", title="GMM", role="org_lead")
        create_test_staff(db_session, name="Dana Reyes")
        db_session.commit()

        response = client.get("/api/v1/staff/", params={"role": "org_lead"})

        assert [s["name"] for s in response.json()] == ["Pat Lane"]

    @pytest.mark.api
    def test_staff_kpis_scoped_by_role(self, client, db_session, shipped_book):
        dana = create_test_staff(db_session, name="Dana Reyes")
        lee = create_test_staff(db_session, name="Lee Park")
        db_session.commit()

        assert client.get(f"/api/v1/analytics/staff/{dana.id}").json()["dashboard"]["total_pos"] == 2
        assert client.get(f"/api/v1/analytics/staff/{lee.id}").json()["dashboard"]["total_pos"] == 0

    @pytest.mark.api
    def test_staff_kpis_unknown_staff(self, client):
        response = client.get("/api/v1/analytics/staff/999")
        assert response.status_code == 404
