"""
Tests for OTD trends, SKU YoY analytics and Original OTD YoY.

Every PO is classified through ClassificationService before the report
runs, as in production.
"""
import pytest
from datetime import date

from merchops.core.status_config import TrendDirection, TrendGroup
from merchops.models.purchase_order import PurchaseOrder
from merchops.services.analytics.otd_breakdown import original_otd_yoy
from merchops.services.analytics.sku_analytics import sku_shipping_stats, sku_yoy_sales
from merchops.services.analytics.trend import compute_trends
from merchops.services.classification_service import ClassificationService
from tests.factories import create_test_po, create_test_shipment, create_test_vendor

AS_OF = date(2025, 6, 30)

# 90-day windows ending 2025-06-30: prior is (Jan 1, Apr 1], current is (Apr 1, Jun 30]
PRIOR_HOD = date(2025, 2, 15)
CURRENT_HOD = date(2025, 5, 15)


def shipped_po(db, vendor, po_number, delivered, on_time=True, sku=None):
    cancel = delivered if on_time else delivered.replace(day=delivered.day - 5)
    lines = [(sku, 10, 10000)] if sku else ()
    po = create_test_po(db, vendor=vendor, po_number=po_number, lines=lines,
                        po_date=date(2024, 11, 1), original_cancel_date=cancel,
                        shipment_status="Shipped")
    create_test_shipment(db, po, delivery_to_consolidator=delivered)
    return po


@pytest.fixture
def trend_book(db_session):
    """Improving, declining and flat vendors; the first two share a merchandiser"""
    up = create_test_vendor(db_session, name="Alder Looms", merchandiser="Dana Reyes")
    down = create_test_vendor(db_session, name="Birch Weavers", merchandiser="Dana Reyes")
    flat = create_test_vendor(db_session, name="Cedar Mills", merchandiser="Lee Park")

    # Alder: 50% -> 100%
    shipped_po(db_session, up, "UP-1", PRIOR_HOD, sku="ALD-1")
    shipped_po(db_session, up, "UP-2", PRIOR_HOD, on_time=False, sku="ALD-1")
    shipped_po(db_session, up, "UP-3", CURRENT_HOD, sku="ALD-1")

    # Birch: 100% -> 0%
    shipped_po(db_session, down, "DN-1", PRIOR_HOD, sku="BIR-1")
    shipped_po(db_session, down, "DN-2", CURRENT_HOD, on_time=False, sku="BIR-1")

    # Cedar: 100% -> 100%; the December miss is outside both windows
    shipped_po(db_session, flat, "FL-1", PRIOR_HOD, sku="CED-1")
    shipped_po(db_session, flat, "FL-2", CURRENT_HOD, sku="CED-1")
    shipped_po(db_session, flat, "FL-3", date(2024, 12, 15), on_time=False, sku="CED-1")

    ClassificationService(db_session).refresh(as_of=AS_OF)
    return up, down, flat


class TestComputeTrends:

    @pytest.mark.unit
    def test_vendor_directions(self, db_session, trend_book):
        report = compute_trends(db_session, TrendGroup.VENDOR, as_of=AS_OF, window_days=90)

        rows = {r.key: r for r in report.rows}
        assert list(rows) == ["Alder Looms", "Birch Weavers", "Cedar Mills"]

        assert rows["Alder Looms"].prior_otd_pct == 50.0
        assert rows["Alder Looms"].current_otd_pct == 100.0
        assert rows["Alder Looms"].change == 50.0
        assert rows["Alder Looms"].direction == TrendDirection.IMPROVING

        assert rows["Birch Weavers"].change == -100.0
        assert rows["Birch Weavers"].direction == TrendDirection.DECLINING

        assert (rows["Cedar Mills"].prior_shipped, rows["Cedar Mills"].current_shipped) == (1, 1)
        assert rows["Cedar Mills"].change == 0.0
        assert rows["Cedar Mills"].direction == TrendDirection.STABLE
        assert report.errors == []

    @pytest.mark.unit
    def test_change_equal_to_threshold_is_stable(self, db_session, trend_book):
        report = compute_trends(db_session, TrendGroup.VENDOR, as_of=AS_OF, window_days=90, threshold=50.0)

        rows = {r.key: r for r in report.rows}
        assert rows["Alder Looms"].change == 50.0
        assert rows["Alder Looms"].direction == TrendDirection.STABLE
        assert rows["Birch Weavers"].direction == TrendDirection.DECLINING

    @pytest.mark.unit
    def test_merchandiser_pools_vendors(self, db_session, trend_book):
        report = compute_trends(db_session, TrendGroup.MERCHANDISER, as_of=AS_OF, window_days=90)

        rows = {r.key: r for r in report.rows}
        dana = rows["Dana Reyes"]
        assert (dana.prior_shipped, dana.current_shipped) == (3, 2)
        assert dana.prior_otd_pct == 66.7
        assert dana.current_otd_pct == 50.0
        assert dana.direction == TrendDirection.DECLINING
        assert rows["Lee Park"].direction == TrendDirection.STABLE

    @pytest.mark.unit
    def test_sku_grouping(self, db_session, trend_book):
        report = compute_trends(db_session, TrendGroup.SKU, as_of=AS_OF, window_days=90)

        assert [(r.key, r.direction) for r in report.rows] == [
            ("ALD-1", TrendDirection.IMPROVING),
            ("BIR-1", TrendDirection.DECLINING),
            ("CED-1", TrendDirection.STABLE),
        ]

    @pytest.mark.unit
    def test_unresolved_vendor_is_reported(self, db_session, trend_book):
        shipped_po(db_session, None, "NV-1", CURRENT_HOD)
        ClassificationService(db_session).refresh(as_of=AS_OF)

        report = compute_trends(db_session, TrendGroup.VENDOR, as_of=AS_OF, window_days=90)

        assert len(report.rows) == 3
        assert report.errors == ["1 shipped purchase order(s) have no vendor"]


@pytest.fixture
def sku_book(db_session, sample_vendor):
    """A split-shipment PO this year, one PO inside and one past last year's comparison date"""
    v = sample_vendor

    split = create_test_po(db_session, vendor=v, po_number="SP-1",
                           lines=[("LIN-X", 10, 30000), ("LIN-Y", 5, 5000)],
                           po_date=date(2025, 1, 15), shipment_status="Shipped")
    create_test_shipment(db_session, split, delivery_to_consolidator=date(2025, 1, 28),
                         actual_sailing_date=date(2025, 2, 1))
    create_test_shipment(db_session, split, delivery_to_consolidator=date(2025, 3, 20),
                         actual_sailing_date=date(2025, 3, 25))

    early = create_test_po(db_session, vendor=v, po_number="PY-1", lines=[("LIN-X", 8, 20000)],
                           po_date=date(2024, 2, 1), shipment_status="Shipped")
    create_test_shipment(db_session, early, delivery_to_consolidator=date(2024, 2, 25),
                         actual_sailing_date=date(2024, 3, 1))

    late_season = create_test_po(db_session, vendor=v, po_number="PY-2", lines=[("LIN-X", 4, 99999)],
                                 po_date=date(2024, 6, 1), shipment_status="Shipped")
    create_test_shipment(db_session, late_season, delivery_to_consolidator=date(2024, 7, 10),
                         actual_sailing_date=date(2024, 7, 15))

    ClassificationService(db_session).refresh(as_of=AS_OF)
    return v


class TestSkuAnalytics:

    @pytest.mark.unit
    def test_split_shipment_line_counted_once(self, db_session, sku_book):
        rows = sku_yoy_sales(db_session, as_of=AS_OF)

        assert [r.sku for r in rows] == ["LIN-X", "LIN-Y"]
        lin_x, lin_y = rows
        assert lin_x.current_sales == 30000
        assert lin_x.prior_sales == 20000
        assert lin_x.change_pct == 50.0
        assert (lin_y.current_sales, lin_y.prior_sales, lin_y.change_pct) == (5000, 0, None)

    @pytest.mark.unit
    def test_limit(self, db_session, sku_book):
        assert [r.sku for r in sku_yoy_sales(db_session, as_of=AS_OF, limit=1)] == ["LIN-X"]

    @pytest.mark.unit
    def test_shipping_stats_point_in_time(self, db_session, sku_book):
        stats = sku_shipping_stats(db_session, "LIN-X", as_of=AS_OF)

        assert (stats.orders.current, stats.orders.prior) == (1, 2)
        assert (stats.quantity_ordered.current, stats.quantity_ordered.prior) == (10, 12)
        assert (stats.shipped_orders.current, stats.shipped_orders.prior) == (1, 1)
        assert stats.otd_pct_current == 100.0
        assert isinstance(stats.quantity_ordered.current, int)

    @pytest.mark.unit
    def test_unknown_sku_is_empty(self, db_session, sku_book):
        stats = sku_shipping_stats(db_session, "NOPE", as_of=AS_OF)

        assert stats.orders.current == 0
        assert stats.otd_pct_current is None


class TestOriginalOTDYoY:

    @pytest.mark.unit
    def test_amnesty_counts_late(self, db_session, sample_vendor):
        v = sample_vendor
        cancel = date(2025, 3, 10)

        on_time = create_test_po(db_session, vendor=v, po_number="OR-1",
                                 original_cancel_date=cancel, shipment_status="Shipped")
        create_test_shipment(db_session, on_time, delivery_to_consolidator=date(2025, 3, 5))

        amnesty = create_test_po(db_session, vendor=v, po_number="OR-2",
                                 original_cancel_date=cancel, revised_cancel_date=date(2025, 3, 12),
                                 revised_by="CLIENT", shipment_status="Shipped")
        create_test_shipment(db_session, amnesty, delivery_to_consolidator=date(2025, 3, 14))

        last_year = create_test_po(db_session, vendor=v, po_number="OR-3", po_date=date(2024, 1, 10),
                                   original_cancel_date=date(2024, 3, 10), shipment_status="Shipped")
        create_test_shipment(db_session, last_year, delivery_to_consolidator=date(2024, 3, 5))

        ClassificationService(db_session).refresh(as_of=AS_OF)
        assert db_session.query(PurchaseOrder).filter_by(po_number="OR-2").one().otd_status == "on_time"

        report = original_otd_yoy(db_session, as_of=AS_OF)

        assert report.comparison_date == date(2024, 6, 30)
        assert [m.month for m in report.months] == [1, 2, 3, 4, 5, 6]
        march = report.months[2]
        assert (march.current_shipped, march.current_on_time, march.current_pct) == (2, 1, 50.0)
        assert (march.prior_shipped, march.prior_on_time, march.prior_pct) == (1, 1, 100.0)
        assert report.months[0].current_pct is None
