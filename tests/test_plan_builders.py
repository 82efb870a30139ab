"""
Tests for adding, duplicating and removing flightings.
"""

import pytest
from datetime import date

from business_logic.block_plan_sync import ensure_plan_block_plans
from business_logic.error_handler import PlanStructureError
from business_logic.plan_builders import add_flighting, create_id, duplicate_flighting, remove_flighting
from data.seed import build_flighting_seed_plan
from models.channel_extensions import AffiliateExtension, Channel, OohExtension
from models.data_models import Plan, PlanMeta


@pytest.fixture
def plan():
    return ensure_plan_block_plans(build_flighting_seed_plan())


def new_line_items(before, after):
    existing = {item.line_item_id for item in before.line_items}
    return [item for item in after.line_items if item.line_item_id not in existing]


class TestCreateId:
    def test_prefix_and_uniqueness(self):
        first, second = create_id("li"), create_id("li")

        assert first.startswith("li_")
        assert len(first) == len("li_") + 12
        assert first != second


class TestAddFlighting:
    """Test adding one-week flightings."""

    def test_clones_first_line_item_of_channel(self, plan):
        updated = add_flighting(plan, Channel.OOH, today=date(2025, 11, 19))
        [added] = new_line_items(plan, updated)
        flight = updated.find_flight(added.flight_id)

        assert (flight.start_date, flight.end_date) == (date(2025, 11, 17), date(2025, 11, 23))
        assert added.vendor_id == "vnd-1"
        assert added.cost_planned == 40000
        assert added.extension.address == "1 George St"
        assert [week.week_start for week in added.block_plan.weeks if week.active] == ["2025-11-17"]
        assert any(track.line_item_id == added.line_item_id for track in updated.tracking)
        assert len(plan.line_items) == 3

    def test_new_channel_gets_placeholders(self, plan):
        updated = add_flighting(plan, Channel.AFFILIATE, today=date(2025, 11, 19))
        [added] = new_line_items(plan, updated)

        assert updated.find_vendor(added.vendor_id).name == "Pending vendor"
        assert updated.find_audience(added.audience_id).definition == "Audience pending definition"
        assert updated.find_creative(added.creative_id).ad_name == "Affiliate placeholder"
        assert isinstance(added.extension, AffiliateExtension)
        assert added.extension.partner_id.startswith("partner_")

    def test_ooh_placeholder_extension(self):
        empty = Plan(plan_id="plan-new", meta=PlanMeta(name="New plan"))
        updated = add_flighting(empty, Channel.OOH, today=date(2025, 11, 19))
        added = updated.line_items[0]

        assert isinstance(added.extension, OohExtension)
        assert added.extension.owner == "Pending owner"
        assert len(updated.campaigns) == 1
        assert (updated.start_date, updated.end_date) == (date(2025, 11, 17), date(2025, 11, 23))

    def test_flight_outside_plan_extends_range(self, plan):
        updated = add_flighting(plan, Channel.SEARCH, today=date(2026, 1, 7))

        assert updated.end_date == date(2026, 1, 11)
        # Existing line items gain the new weeks, inactive
        weeks = updated.find_line_item("li-1").block_plan.weeks
        assert weeks[-1].week_start == "2026-01-05"
        assert weeks[-1].active is False


class TestDuplicateFlighting:
    """Test copying a flighting."""

    def test_duplicate_copies_flight_window(self, plan):
        updated = duplicate_flighting(plan, "li-2")
        [copy_item] = new_line_items(plan, updated)
        flight = updated.find_flight(copy_item.flight_id)

        assert copy_item.flight_id != "flt-2"
        assert (flight.start_date, flight.end_date) == (date(2025, 11, 10), date(2025, 12, 7))
        assert copy_item.extension.keyword == "summer deals"
        assert len(updated.flights) == 4

    def test_unknown_line_item(self, plan):
        with pytest.raises(PlanStructureError):
            duplicate_flighting(plan, "li-404")


class TestRemoveFlighting:
    """Test removing a flighting."""

    def test_remove_shrinks_timeline(self, plan):
        updated = remove_flighting(plan, "li-3")

        assert [item.line_item_id for item in updated.line_items] == ["li-1", "li-2"]
        assert updated.find_flight("flt-3") is None
        assert all(track.line_item_id != "li-3" for track in updated.tracking)
        assert updated.end_date == date(2025, 12, 7)
        assert updated.find_line_item("li-1").block_plan.weeks[-1].week_start == "2025-12-01"

    def test_shared_flight_is_kept(self, plan):
        plan.line_items[2].flight_id = "flt-2"
        updated = remove_flighting(plan, "li-2")

        assert updated.find_flight("flt-2") is not None

    def test_unknown_line_item(self, plan):
        with pytest.raises(PlanStructureError):
            remove_flighting(plan, "li-404")
