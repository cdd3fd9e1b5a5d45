"""
Tests for /api/v1/capacity: import, year lock and row edits.
"""
import pytest


def capacity_row(month, **overrides):
    row = {
        "vendor_code": "HHT01",
        "vendor_name": "Harbor Home Textiles",
        "client": "CB",
        "year": 2023,
        "month": month,
        "shipment_confirmed": 4000,
        "shipment_unconfirmed": 1000,
        "reserved_capacity": 10000,
        "factory_overall_capacity": 20000,
    }
    row.update(overrides)
    return row


class TestCapacityApi:

    @pytest.mark.api
    def test_import_and_list(self, client):
        response = client.post("/api/v1/capacity/import", json=[capacity_row(1), capacity_row(2)])

        assert response.status_code == 200
        assert response.json()["created"] == 2

        listed = client.get("/api/v1/capacity/", params={"year": 2023}).json()
        assert [r["month"] for r in listed] == [1, 2]
        assert listed[0]["total_shipment"] == 5000
        assert listed[0]["balance"] == 5000
        assert listed[0]["utilized_capacity_pct"] == 25.0

    @pytest.mark.api
    def test_locked_year_rejects_edits_and_reimport(self, client):
        client.post("/api/v1/capacity/import", json=[capacity_row(1)])

        locked = client.post("/api/v1/capacity/years/2023/lock")
        assert locked.status_code == 200
        assert locked.json()["data_rows"] == 1
        assert client.get("/api/v1/capacity/locked-years").json() == [2023]

        row_id = client.get("/api/v1/capacity/").json()[0]["id"]
        response = client.patch(f"/api/v1/capacity/{row_id}", json={"remarks": "late fix"})
        assert response.status_code == 422
        assert response.json()["error"] == "CAPACITY_YEAR_LOCKED"
        assert response.json()["details"]["year"] == 2023

        reimport = client.post("/api/v1/capacity/import", json=[capacity_row(1, shipment_confirmed=1)])
        assert reimport.json()["skipped_locked"] == 1

    @pytest.mark.api
    def test_unlocked_row_edit(self, client):
        client.post("/api/v1/capacity/import", json=[capacity_row(3)])
        row_id = client.get("/api/v1/capacity/").json()[0]["id"]

        response = client.patch(f"/api/v1/capacity/{row_id}", json={"shipment_confirmed": 9000})

        assert response.status_code == 200
        assert response.json()["total_shipment"] == 10000
        assert response.json()["balance"] == 0

    @pytest.mark.api
    def test_reconcile_reports_unknown_vendor_code(self, client):
        client.post("/api/v1/capacity/import", json=[capacity_row(1, vendor_code="ZZZ99")])

        response = client.get("/api/v1/capacity/years/2023/reconcile")

        assert response.status_code == 200
        [row] = response.json()
        assert row["vendor_id"] is None
        assert row["has_drift"] is True
