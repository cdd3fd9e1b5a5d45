"""
Tests for the pure delivery classification rules.

The rules take plain objects, so these tests use SimpleNamespace rows
instead of a database.
"""
import pytest
from datetime import date, datetime
from types import SimpleNamespace

from merchops.core.status_config import AtRiskReason, MilestoneStatus, OTDStatus
from merchops.services import classification as rules


def make_po(**overrides):
    values = dict(
        po_number="PO10001",
        program_description=None,
        total_value=250000,
        is_sample=False,
        original_ship_date=None,
        revised_ship_date=None,
        original_cancel_date=date(2024, 3, 10),
        revised_cancel_date=None,
        revised_by=None,
        status="Open",
        shipment_status=None,
        pts_number=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def shipment(hod=None, etd=None, pts=None):
    return SimpleNamespace(delivery_to_consolidator=hod, actual_sailing_date=etd, pts_number=pts)


def inspection(kind, result="Passed"):
    return SimpleNamespace(inspection_type=kind, result=result)


class TestParseDate:

    @pytest.mark.unit
    @pytest.mark.parametrize("raw,expected", [
        ("2024-06-01", date(2024, 6, 1)),
        ("06/01/2024", date(2024, 6, 1)),
        ("2024-06-01T00:00:00", date(2024, 6, 1)),
        ("01-Jun-2024", date(2024, 6, 1)),
        (datetime(2024, 6, 1, 13, 45), date(2024, 6, 1)),
        (date(2024, 6, 1), date(2024, 6, 1)),
    ])
    def test_accepts_source_formats(self, raw, expected):
        assert rules.parse_date(raw) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [None, "", "   ", "N/A", "2024-02-30", 45000])
    def test_unparseable_values_become_none(self, raw):
        assert rules.parse_date(raw) is None


class TestExclusion:

    @pytest.mark.unit
    def test_regular_po_is_included(self):
        assert rules.is_excluded(make_po()) is False

    @pytest.mark.unit
    def test_franchise_prefix_is_excluded(self):
        assert rules.is_excluded(make_po(po_number="089001234")) is True

    @pytest.mark.unit
    def test_8x8_program_is_excluded(self):
        assert rules.is_excluded(make_po(program_description="8X8 Spring Capsule")) is True

    @pytest.mark.unit
    def test_zero_value_is_excluded(self):
        assert rules.is_excluded(make_po(total_value=0)) is True

    @pytest.mark.unit
    def test_sample_program_is_excluded(self):
        assert rules.is_excluded(make_po(program_description="smp linen swatches")) is True
        assert rules.is_excluded(make_po(is_sample=True)) is True

    @pytest.mark.unit
    def test_marker_must_be_a_whole_word(self):
        """A program that merely starts with the letters is not a sample."""
        assert rules.is_excluded(make_po(program_description="SMPLIFIED CORE")) is False


class TestOTD:

    @pytest.mark.unit
    def test_delivery_date_is_latest_split(self):
        shipments = [shipment(hod=date(2024, 3, 1)), shipment(hod=date(2024, 3, 9)), shipment()]
        assert rules.delivery_date(shipments) == date(2024, 3, 9)

    @pytest.mark.unit
    def test_late_against_original_cancel(self):
        result = rules.classify_otd(make_po(), date(2024, 3, 12))
        assert result.status == OTDStatus.LATE
        assert result.days_late == 2
        assert result.amnesty_applied is False

    @pytest.mark.unit
    def test_revised_cancel_date_is_used(self):
        po = make_po(revised_cancel_date=date(2024, 3, 20), revised_by="VENDOR")
        result = rules.classify_otd(po, date(2024, 3, 12))
        assert result.status == OTDStatus.ON_TIME
        assert result.days_late == -8

    @pytest.mark.unit
    def test_client_revision_earns_amnesty(self):
        """Late against the revised date, but the client moved it: on time."""
        po = make_po(revised_cancel_date=date(2024, 3, 11), revised_by=" client ")
        result = rules.classify_otd(po, date(2024, 3, 15))
        assert result.status == OTDStatus.ON_TIME
        assert result.amnesty_applied is True
        assert result.days_late == 4

    @pytest.mark.unit
    def test_vendor_revision_never_earns_amnesty(self):
        po = make_po(revised_cancel_date=date(2024, 3, 11), revised_by="VENDOR")
        result = rules.classify_otd(po, date(2024, 3, 15))
        assert result.status == OTDStatus.LATE
        assert result.amnesty_applied is False

    @pytest.mark.unit
    def test_original_otd_ignores_revisions(self):
        po = make_po(revised_cancel_date=date(2024, 3, 20), revised_by="CLIENT")
        result = rules.classify_original_otd(po, date(2024, 3, 15))
        assert result.status == OTDStatus.LATE
        assert result.days_late == 5

    @pytest.mark.unit
    def test_missing_dates_are_unknown(self):
        assert rules.classify_otd(make_po(), None).status == OTDStatus.UNKNOWN
        no_cancel = make_po(original_cancel_date=None)
        assert rules.classify_otd(no_cancel, date(2024, 3, 1)).status == OTDStatus.UNKNOWN

    @pytest.mark.unit
    def test_is_late_po_only_while_unshipped(self):
        po = make_po()
        assert rules.is_late_po(po, date(2024, 3, 11)) is True
        assert rules.is_late_po(po, date(2024, 3, 10)) is False
        po.shipment_status = "Shipped"
        assert rules.is_late_po(po, date(2024, 3, 11)) is False


class TestAtRisk:

    @pytest.mark.unit
    def test_nothing_booked_nine_days_out(self):
        po = make_po(original_ship_date=date(2024, 5, 10))
        result = rules.evaluate_at_risk(po, [], [], [], as_of=date(2024, 5, 1))

        assert result.is_at_risk is True
        assert result.days_until_hod == 9
        assert result.reasons == [
            AtRiskReason.INLINE_INSPECTION_NOT_BOOKED,
            AtRiskReason.PTS_NOT_SUBMITTED,
            AtRiskReason.QA_TEST_NOT_PASSED,
            AtRiskReason.NO_SHIPMENT_RECORDED,
        ]

    @pytest.mark.unit
    def test_fully_prepared_po_is_not_at_risk(self):
        po = make_po(original_ship_date=date(2024, 5, 6), pts_number="PTS-77")
        result = rules.evaluate_at_risk(
            po,
            [shipment(etd=date(2024, 4, 30))],
            [inspection("Inline Inspection"), inspection("Final Inspection")],
            [SimpleNamespace(result="Pass")],
            as_of=date(2024, 5, 1),
        )
        assert result.is_at_risk is False
        assert result.reasons == []

    @pytest.mark.unit
    def test_failed_final_inspection_flags_any_time(self):
        po = make_po(original_ship_date=date(2024, 9, 1))
        result = rules.evaluate_at_risk(
            po, [], [inspection("Final Inspection", "Failed - Critical Failure")], [], as_of=date(2024, 5, 1)
        )
        assert result.reasons == [AtRiskReason.FAILED_FINAL_INSPECTION]

    @pytest.mark.unit
    def test_revised_ship_date_drives_the_window(self):
        po = make_po(original_ship_date=date(2024, 5, 3), revised_ship_date=date(2024, 8, 1))
        result = rules.evaluate_at_risk(po, [], [], [], as_of=date(2024, 5, 1))
        assert result.is_at_risk is False
        assert result.days_until_hod == 92

    @pytest.mark.unit
    def test_closed_or_shipped_po_is_never_at_risk(self):
        failed = [inspection("Final Inspection", "Failed")]
        shipped = make_po(original_ship_date=date(2024, 5, 3), shipment_status="Shipped")
        closed = make_po(original_ship_date=date(2024, 5, 3), status="Cancelled")
        for po in (shipped, closed):
            assert rules.evaluate_at_risk(po, [], failed, [], as_of=date(2024, 5, 1)).is_at_risk is False

    @pytest.mark.unit
    def test_hod_in_the_past_skips_window_rules(self):
        po = make_po(original_ship_date=date(2024, 4, 20))
        result = rules.evaluate_at_risk(po, [], [], [], as_of=date(2024, 5, 1))
        assert result.is_at_risk is False
        assert result.days_until_hod == -11


class TestMilestoneStatus:
    as_of = date(2024, 5, 10)

    @pytest.mark.unit
    def test_complete_on_or_before_target(self):
        result = rules.milestone_status(date(2024, 5, 1), None, date(2024, 5, 1), self.as_of)
        assert result.status == MilestoneStatus.COMPLETE

    @pytest.mark.unit
    def test_late_uses_revised_target(self):
        result = rules.milestone_status(date(2024, 5, 1), date(2024, 5, 4), date(2024, 5, 7), self.as_of)
        assert result.status == MilestoneStatus.LATE
        assert result.days_late == 3

    @pytest.mark.unit
    def test_overdue_when_target_passed(self):
        result = rules.milestone_status(date(2024, 5, 6), None, None, self.as_of)
        assert result.status == MilestoneStatus.OVERDUE
        assert result.days_overdue == 4

    @pytest.mark.unit
    def test_at_risk_inside_horizon(self):
        result = rules.milestone_status(date(2024, 5, 15), None, None, self.as_of)
        assert result.status == MilestoneStatus.AT_RISK
        assert result.days_until == 5

    @pytest.mark.unit
    def test_pending_beyond_horizon_or_without_target(self):
        assert rules.milestone_status(date(2024, 6, 30), None, None, self.as_of).status == MilestoneStatus.PENDING
        assert rules.milestone_status(None, None, None, self.as_of).status == MilestoneStatus.PENDING


class TestOrderWindow:

    @pytest.mark.unit
    def test_regular_window_opens_ninety_days_before(self):
        assert rules.order_window(2025, 3, "regular") == (date(2024, 12, 1), date(2025, 3, 31))

    @pytest.mark.unit
    def test_spo_and_mto_use_the_short_window(self):
        assert rules.order_window(2025, 3, "spo") == (date(2025, 1, 30), date(2025, 3, 31))
        assert rules.order_window(2025, 3, "MTO") == (date(2025, 1, 30), date(2025, 3, 31))

    @pytest.mark.unit
    def test_midpoint(self):
        assert rules.target_month_midpoint(2024, 2) == date(2024, 2, 15)
        assert rules.target_month_midpoint(2024, 3) == date(2024, 3, 16)

    @pytest.mark.unit
    def test_window_elapsed_after_month_end(self):
        assert rules.is_window_elapsed(2025, 3, "regular", date(2025, 3, 31)) is False
        assert rules.is_window_elapsed(2025, 3, "regular", date(2025, 4, 1)) is True
