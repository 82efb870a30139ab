"""
Tests for plan totals, pacing warnings and channel summaries.
"""

import pytest
from datetime import date

from business_logic.plan_metrics import (
    EntrySource,
    build_pacing_warnings,
    calculate_plan_totals,
    collect_spend_entries,
    compute_channel_summaries,
)
from data.seed import build_flighting_seed_plan, build_seed_plan
from models.channel_extensions import Channel
from models.data_models import BidType, Tactic, TacticChannel


class TestSpendEntries:
    """Test collecting spend entries."""

    def test_auto_prefers_tactics(self):
        entries = collect_spend_entries(build_seed_plan())

        assert [entry.entry_id for entry in entries] == ["tac-1", "tac-2", "tac-3", "tac-4"]
        assert entries[0].label == "YouTube Masthead"
        assert entries[0].window.start == date(2025, 10, 1)

    def test_auto_falls_back_to_line_items(self):
        entries = collect_spend_entries(build_flighting_seed_plan())

        assert [entry.entry_id for entry in entries] == ["li-1", "li-2", "li-3"]
        assert entries[0].label == "Summer Billboard"
        assert entries[0].vendor == "oOh!media"
        assert entries[1].est_cpc == 2.5
        assert entries[1].est_cpm is None

    def test_line_item_without_flight_is_skipped(self):
        plan = build_flighting_seed_plan()
        plan.line_items[0].flight_id = "flt-missing"

        entries = collect_spend_entries(plan, EntrySource.LINE_ITEMS)

        assert [entry.entry_id for entry in entries] == ["li-2", "li-3"]

    def test_explicit_tactic_source_on_line_item_plan(self):
        assert collect_spend_entries(build_flighting_seed_plan(), EntrySource.TACTICS) == []

    def test_strict_metrics_follow_bid_type(self):
        plan = build_seed_plan()
        plan.tactics[0].bid_type = BidType.CPM
        plan.tactics[0].est_cpm = 20
        plan.tactics[0].est_cpc = 1.0
        plan.tactics[0].est_cpa = 50

        metrics = collect_spend_entries(plan)[0].strict_metrics()

        assert metrics.impressions == pytest.approx(plan.tactics[0].budget / 20 * 1000)
        assert metrics.clicks == 0.0
        assert metrics.conversions == 0.0


class TestPlanTotals:
    """Test dashboard totals."""

    def test_tactic_totals(self):
        totals = calculate_plan_totals(build_seed_plan())

        assert totals.total_budget == 565000
        assert totals.total_impressions == pytest.approx(5750000)
        assert totals.cpm == pytest.approx(565000 / 5750000 * 1000)
        assert [channel.channel for channel in totals.channels] == ["Video", "Display", "Search", "Social"]

    def test_line_item_totals(self):
        totals = calculate_plan_totals(build_flighting_seed_plan())

        assert totals.total_budget == 90000
        assert totals.total_units == 1612012
        assert totals.total_impressions == 1600000
        assert totals.cpm == pytest.approx(56.25)
        assert totals.blended_rate == pytest.approx(90000 / 1612012)

    def test_empty_plan(self):
        plan = build_seed_plan()
        plan.tactics = []

        totals = calculate_plan_totals(plan)

        assert totals.total_budget == 0
        assert totals.cpm == 0.0
        assert totals.blended_rate == 0.0
        assert totals.channels == []


class TestPacingWarnings:
    """Test pacing and constraint warnings."""

    def setup_method(self):
        """Set up test fixtures."""
        self.plan = build_seed_plan()

    def test_healthy_plan(self):
        assert build_pacing_warnings(self.plan) == []

    def test_flight_outside_campaign(self):
        self.plan.tactics[0].flight_start = date(2025, 9, 15)

        assert "Video flight is outside campaign window" in build_pacing_warnings(self.plan)

    def test_minimum_budget(self):
        self.plan.tactics[3].budget = 5000

        assert "Social tactic is below the minimum budget" in build_pacing_warnings(self.plan)

    def test_channel_cap(self):
        self.plan.tactics[0].budget = 2000000

        assert "Video exceeds 60% allocation cap" in build_pacing_warnings(self.plan)

    def test_gap_between_flights(self):
        self.plan.tactics = [
            Tactic(tactic_id="a", campaign_id="cmp-1", channel=TacticChannel.DISPLAY, flight_start=date(2025, 10, 1),
                   flight_end=date(2025, 10, 10), budget=20000, bid_type=BidType.CPM),
            Tactic(tactic_id="b", campaign_id="cmp-1", channel=TacticChannel.SEARCH, flight_start=date(2025, 10, 15),
                   flight_end=date(2025, 10, 31), budget=20000, bid_type=BidType.CPC),
        ]

        warnings = build_pacing_warnings(self.plan)

        assert warnings.count("There is a gap between tactic flights. Consider backfilling.") == 1

    def test_back_to_back_flights_have_no_gap(self):
        self.plan.tactics[1].flight_start = date(2025, 11, 1)

        assert build_pacing_warnings(self.plan) == []

    def test_inverted_line_item_flight(self):
        plan = build_flighting_seed_plan()
        plan.flights[1].end_date = date(2025, 11, 1)

        assert build_pacing_warnings(plan) == ["Line item li-2 has a flight that ends before it starts"]


class TestChannelSummaries:
    """Test per-channel line item summaries."""

    def test_summaries_sorted_by_channel(self):
        summaries = compute_channel_summaries(build_flighting_seed_plan())

        assert [summary.channel for summary in summaries] == [Channel.DIGITAL_DISPLAY, Channel.OOH, Channel.SEARCH]

    def test_summary_values(self):
        summaries = compute_channel_summaries(build_flighting_seed_plan())
        ooh = summaries[1]

        assert (ooh.start_date, ooh.end_date) == (date(2025, 11, 3), date(2025, 11, 30))
        assert ooh.total_planned_cost == 40000
        assert ooh.budget_percent == pytest.approx(1 / 3)
        assert ooh.line_item_ids == ["li-1"]

    def test_budget_percent_without_goal(self):
        plan = build_flighting_seed_plan()
        plan.goal.budget = 0

        assert all(summary.budget_percent == 0.0 for summary in compute_channel_summaries(plan))
