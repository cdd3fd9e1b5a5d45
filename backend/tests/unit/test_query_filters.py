"""
Tests for the composable dashboard filters.
"""
import pytest
from datetime import date

from pydantic import ValidationError as PydanticValidationError

from merchops.models.purchase_order import PurchaseOrder
from merchops.schemas.filters import DashboardFilter
from merchops.services.query_filters import FilterBuilder, po_filter, reportable_po_filter
from tests.factories import create_test_po, create_test_vendor


class TestFilterBuilder:

    @pytest.mark.unit
    def test_blank_values_add_nothing(self):
        builder = (
            FilterBuilder()
            .eq(PurchaseOrder.client, None)
            .eq(PurchaseOrder.client, "")
            .between(PurchaseOrder.po_date, None, None)
            .in_(PurchaseOrder.po_number, None)
        )
        assert len(builder) == 0
        assert builder.build() == []

    @pytest.mark.unit
    def test_each_bound_adds_a_clause(self):
        builder = FilterBuilder().eq(PurchaseOrder.client, "CB").between(
            PurchaseOrder.po_date, date(2025, 1, 1), date(2025, 12, 31)
        )
        assert len(builder) == 3

    @pytest.mark.unit
    def test_empty_filter_only_excludes(self):
        assert len(po_filter(None)) == 0
        assert len(reportable_po_filter(DashboardFilter())) == 1


class TestDashboardFilter:

    @pytest.mark.unit
    def test_blank_strings_become_none(self):
        flt = DashboardFilter(vendor="  ", client=" CB ")
        assert flt.vendor is None
        assert flt.client == "CB"

    @pytest.mark.unit
    def test_inverted_range_is_rejected(self):
        with pytest.raises(PydanticValidationError):
            DashboardFilter(start_date=date(2025, 2, 1), end_date=date(2025, 1, 1))

    @pytest.mark.unit
    def test_vendor_scope_in_query(self, db_session, sample_vendor):
        other = create_test_vendor(db_session, name="Northwind Ceramics", merchandiser="Lee Park")
        create_test_po(db_session, vendor=sample_vendor, client="CB")
        create_test_po(db_session, vendor=sample_vendor, client="CK")
        create_test_po(db_session, vendor=other, client="CB")

        def count(flt):
            return db_session.query(PurchaseOrder).filter(*po_filter(flt).build()).count()

        assert count(DashboardFilter(merchandiser="Dana Reyes")) == 2
        assert count(DashboardFilter(vendor="Northwind Ceramics")) == 1
        assert count(DashboardFilter(merchandiser="Dana Reyes", client="CB")) == 1
        assert count(DashboardFilter(merchandiser="Nobody")) == 0
