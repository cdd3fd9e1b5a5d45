"""
Tests for the projection matching engine.

Covers SKU matching inside the order window, deterministic tie-breaks,
one-claim-per-line, SPO collection matches, expiry and re-run stability.
"""
import pytest
from datetime import date

from merchops.core.status_config import MatchStatus
from merchops.services.projection_matching import (
    ProjectionMatcher,
    compute_variance,
    exceeds_variance_alert,
    extract_mto_collection,
    po_collection,
)
from tests.factories import create_test_po, create_test_projection, create_test_vendor

AS_OF = date(2025, 3, 25)


class TestMtoCollection:

    @pytest.mark.unit
    def test_known_collection_wins(self):
        assert extract_mto_collection("MTO HOXTON FEB 2026") == "hoxton"
        assert extract_mto_collection("mto - Laura/Tiff spring") == "laura/tiff"

    @pytest.mark.unit
    def test_words_after_mto_up_to_month(self):
        assert extract_mto_collection("MTO: Riverside Oak March 2025") == "riverside oak"

    @pytest.mark.unit
    def test_no_mto_marker(self):
        assert extract_mto_collection("Spring Core Program") is None
        assert extract_mto_collection(None) is None
        assert extract_mto_collection("MTO 2025") is None

    @pytest.mark.unit
    def test_explicit_collection_preferred(self):
        from types import SimpleNamespace

        po = SimpleNamespace(collection="  Edendale ", program_description="MTO HOXTON")
        assert po_collection(po) == "edendale"


class TestVariance:

    @pytest.mark.unit
    def test_actual_minus_projected(self):
        variance = compute_variance(100, 50000, 120, 60000)
        assert variance.quantity_variance == 20
        assert variance.value_variance == 10000
        assert variance.variance_pct == 20.0

    @pytest.mark.unit
    def test_zero_projected_value_has_no_pct(self):
        assert compute_variance(10, 0, 10, 500).variance_pct is None

    @pytest.mark.unit
    def test_alert_threshold_is_exclusive(self):
        assert exceeds_variance_alert(10.0) is False
        assert exceeds_variance_alert(-10.1) is True
        assert exceeds_variance_alert(None) is False


class TestSkuMatching:

    @pytest.mark.unit
    def test_matches_line_in_window(self, db_session, sample_vendor):
        po = create_test_po(
            db_session, vendor=sample_vendor, po_number="PO-A",
            lines=[("LIN-100", 120, 60000)], po_date=date(2025, 3, 12),
        )
        projection = create_test_projection(
            db_session, vendor=sample_vendor, sku="lin-100", year=2025, month=3,
            quantity=100, projection_value=50000,
        )

        result = ProjectionMatcher(db_session, AS_OF).run()

        assert result.matched == 1
        assert result.variances == 1
        assert projection.match_status == MatchStatus.MATCHED.value
        assert projection.matched_po_number == po.po_number
        assert projection.actual_quantity == 120
        assert projection.variance_pct == 20.0
        assert projection.matched_at is not None

    @pytest.mark.unit
    def test_tie_breaks_on_po_number(self, db_session, sample_vendor):
        """Both POs are four days from the midpoint (Mar 16); lower PO number wins."""
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-B",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2025, 3, 20))
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-A",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2025, 3, 12))
        projection = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-100", month=3)

        ProjectionMatcher(db_session, AS_OF).run()

        assert projection.matched_po_number == "PO-A"

    @pytest.mark.unit
    def test_closest_to_midpoint_wins(self, db_session, sample_vendor):
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-EARLY",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2025, 1, 5))
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-NEAR",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2025, 3, 18))
        projection = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-100", month=3)

        ProjectionMatcher(db_session, AS_OF).run()

        assert projection.matched_po_number == "PO-NEAR"

    @pytest.mark.unit
    def test_line_is_claimed_once(self, db_session, sample_vendor):
        """March is processed before April, so it takes the only line."""
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-ONLY",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2025, 3, 20))
        april = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-100", month=4)
        march = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-100", month=3)

        result = ProjectionMatcher(db_session, AS_OF).run()

        assert march.matched_po_number == "PO-ONLY"
        assert april.match_status == MatchStatus.UNMATCHED.value
        assert april.matched_po_number is None
        assert result.matched == 1
        assert result.unmatched == 1

    @pytest.mark.unit
    def test_po_outside_window_or_other_vendor_is_ignored(self, db_session, sample_vendor):
        other = create_test_vendor(db_session, name="Northwind Ceramics")
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-OLD",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2024, 11, 30))
        create_test_po(db_session, vendor=other, po_number="PO-OTHER",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2025, 3, 16))
        projection = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-100", month=3)

        ProjectionMatcher(db_session, AS_OF).run()

        assert projection.match_status == MatchStatus.UNMATCHED.value

    @pytest.mark.unit
    def test_excluded_po_is_not_a_candidate(self, db_session, sample_vendor):
        create_test_po(db_session, vendor=sample_vendor, po_number="089000123",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2025, 3, 16))
        projection = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-100", month=3)

        ProjectionMatcher(db_session, AS_OF).run()

        assert projection.match_status == MatchStatus.UNMATCHED.value


class TestSpoAndExpiry:

    @pytest.mark.unit
    def test_spo_matches_collection_partially(self, db_session, sample_vendor):
        create_test_po(
            db_session, vendor=sample_vendor, po_number="PO-MTO",
            program_description="MTO HOXTON FEB 2025", po_date=date(2025, 2, 20),
            total_quantity=40, total_value=80000,
        )
        projection = create_test_projection(
            db_session, vendor=sample_vendor, sku="SPO", collection="Hoxton",
            order_type="spo", month=3, quantity=50, projection_value=100000,
        )

        result = ProjectionMatcher(db_session, AS_OF).run()

        assert result.partial == 1
        assert projection.match_status == MatchStatus.PARTIAL.value
        assert projection.matched_po_number == "PO-MTO"
        assert projection.actual_value == 80000
        assert projection.variance_pct == -20.0

    @pytest.mark.unit
    def test_elapsed_window_expires(self, db_session, sample_vendor):
        projection = create_test_projection(db_session, vendor=sample_vendor, year=2024, month=11)

        result = ProjectionMatcher(db_session, AS_OF).run()

        assert result.expired == 1
        assert projection.match_status == MatchStatus.EXPIRED.value

    @pytest.mark.unit
    def test_invalid_projections_are_skipped(self, db_session, sample_vendor):
        zero = create_test_projection(db_session, vendor=sample_vendor, quantity=0)
        unknown = create_test_projection(db_session, vendor_code="NOPE9", vendor_id=None)

        result = ProjectionMatcher(db_session, AS_OF).run()

        assert result.skipped == 2
        assert len(result.errors) == 2
        assert any("NOPE9" in error for error in result.errors)
        assert zero.match_status == MatchStatus.UNMATCHED.value
        assert unknown.match_status == MatchStatus.UNMATCHED.value


class TestManualAndRerun:

    @pytest.mark.unit
    def test_manual_match_is_left_alone_and_keeps_its_claim(self, db_session, sample_vendor):
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-A",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2025, 3, 16))
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-B",
                       lines=[("LIN-100", 100, 50000)], po_date=date(2025, 2, 1))
        pinned = create_test_projection(
            db_session, vendor=sample_vendor, sku="LIN-100", month=4,
            match_status="matched", matched_po_number="PO-A", is_manual=True,
        )
        automatic = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-100", month=3)

        ProjectionMatcher(db_session, AS_OF).run()

        assert pinned.matched_po_number == "PO-A"
        assert pinned.is_manual is True
        assert automatic.matched_po_number == "PO-B"

    @pytest.mark.unit
    def test_second_run_changes_nothing(self, db_session, sample_vendor):
        create_test_po(db_session, vendor=sample_vendor, po_number="PO-A",
                       lines=[("LIN-100", 100, 50000), ("LIN-200", 10, 9000)], po_date=date(2025, 3, 10))
        first = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-100", month=3)
        second = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-200", month=3)
        expired = create_test_projection(db_session, vendor=sample_vendor, sku="LIN-300", year=2024, month=10)

        ProjectionMatcher(db_session, AS_OF).run()
        before = [
            (p.match_status, p.matched_po_number, p.matched_at, p.variance_pct)
            for p in (first, second, expired)
        ]
        again = ProjectionMatcher(db_session, AS_OF).run()
        after = [
            (p.match_status, p.matched_po_number, p.matched_at, p.variance_pct)
            for p in (first, second, expired)
        ]

        assert before == after
        assert again.matched == 2
        assert again.expired == 1
