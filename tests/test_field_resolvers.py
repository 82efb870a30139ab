"""
Tests for the flighting field resolver registry.
"""

import copy
import pytest
from datetime import date

from business_logic.error_handler import PlanStructureError, ReadOnlyFieldError
from business_logic.field_resolvers import (
    build_field_context,
    build_flighting_contexts,
    get_field_resolver,
    get_field_value,
    list_fields_for_channel,
    percent_from_value,
    set_field_value,
    validate_field,
)
from data.seed import build_flighting_seed_plan
from models.channel_extensions import Channel, PodcastExtension, SearchExtension
from models.data_models import LineItem, PricingModel


@pytest.fixture
def plan():
    return build_flighting_seed_plan()


@pytest.fixture
def ooh_context(plan):
    return build_field_context(plan, "li-1")


class TestContexts:
    """Test context construction."""

    def test_context_resolves_related_records(self, ooh_context):
        assert ooh_context.flight.flight_id == "flt-1"
        assert ooh_context.vendor.name == "oOh!media"
        assert ooh_context.audience.audience_id == "aud-1"

    def test_unknown_line_item(self, plan):
        with pytest.raises(PlanStructureError):
            build_field_context(plan, "li-404")

    def test_flighting_contexts_for_channel(self, plan):
        contexts = build_flighting_contexts(plan, Channel.SEARCH)

        assert [context.line_item.line_item_id for context in contexts] == ["li-2"]
        assert build_flighting_contexts(plan, Channel.TV) == []


class TestReads:
    """Test reading columns."""

    def test_common_columns(self, ooh_context):
        assert get_field_value(Channel.OOH, ooh_context, "vendor_platform") == "oOh!media"
        assert get_field_value(Channel.OOH, ooh_context, "start_date") == date(2025, 11, 3)
        assert get_field_value(Channel.OOH, ooh_context, "planned_cost") == 40000
        assert get_field_value(Channel.OOH, ooh_context, "audience_label") == "Grocery buyers 25-54"

    def test_ooh_composite_columns(self, ooh_context):
        assert get_field_value(Channel.OOH, ooh_context, "sov_or_loop") == "25% / 10s"
        assert get_field_value(Channel.OOH, ooh_context, "location") == "1 George St, Sydney, NSW"
        assert get_field_value(Channel.OOH, ooh_context, "digital") is True
        assert get_field_value(Channel.OOH, ooh_context, "owner") == "oOh!media"

    def test_search_and_display_columns(self, plan):
        search = build_field_context(plan, "li-2")
        display = build_field_context(plan, "li-3")

        assert get_field_value(Channel.SEARCH, search, "keyword_or_group") == "summer deals"
        assert get_field_value(Channel.SEARCH, search, "engine") == "Google"
        assert get_field_value(Channel.DIGITAL_DISPLAY, display, "creative_sizes") == "300x250, 728x90"
        assert get_field_value(Channel.DIGITAL_DISPLAY, display, "viewability_goal_pct") == 0.7

    def test_unregistered_field_reads_none(self, ooh_context):
        assert get_field_resolver(Channel.OOH, "keyword_or_group") is None
        assert get_field_value(Channel.OOH, ooh_context, "keyword_or_group") is None

    def test_field_listing(self):
        ooh_fields = list_fields_for_channel(Channel.OOH)

        assert "planned_cost" in ooh_fields
        assert "sov_or_loop" in ooh_fields
        assert "keyword_or_group" not in ooh_fields


class TestValidation:
    """Test field validation messages."""

    def test_negative_rate(self, ooh_context):
        assert validate_field(Channel.OOH, ooh_context, "rate", -5) == "Rate must be non-negative"
        assert validate_field(Channel.OOH, ooh_context, "rate", "12.5") is None

    def test_rate_optional_for_fixed_pricing(self, ooh_context):
        assert validate_field(Channel.OOH, ooh_context, "rate", "") is None

    def test_date_order(self, ooh_context):
        assert validate_field(Channel.OOH, ooh_context, "end_date", "2025-11-01") == "End must be after start"
        assert validate_field(Channel.OOH, ooh_context, "start_date", "2025-12-05") == "Start must be before end"
        assert validate_field(Channel.OOH, ooh_context, "start_date", "") == "Start date is required"
        assert validate_field(Channel.OOH, ooh_context, "start_date", "soon") == "Invalid start date"

    def test_vendor_and_pricing(self, ooh_context):
        assert validate_field(Channel.OOH, ooh_context, "vendor_platform", "  ") == "Vendor is required"
        assert validate_field(Channel.OOH, ooh_context, "pricing_model", "Bogus") == "Invalid pricing model"
        assert validate_field(Channel.OOH, ooh_context, "pricing_model", "CPM") is None

    def test_digital_panels_need_sov(self, plan):
        plan.line_items[0].extension.share_of_voice = None
        context = build_field_context(plan, "li-1")

        assert validate_field(Channel.OOH, context, "digital", True) == "Add SOV when digital panels are selected"

    def test_fields_without_validator(self, ooh_context):
        assert validate_field(Channel.OOH, ooh_context, "owner", "") is None


class TestWrites:
    """Test writing columns on plan copies."""

    def test_write_does_not_modify_input(self, plan, ooh_context):
        before = copy.deepcopy(plan)
        updated = set_field_value(Channel.OOH, ooh_context, "planned_cost", 45000)

        assert updated.line_item.cost_planned == 45000
        assert updated.plan is not plan
        assert plan == before

    def test_write_clamps_negative_numbers(self, ooh_context):
        updated = set_field_value(Channel.OOH, ooh_context, "rate", -5)

        assert updated.line_item.rate == 0.0

    def test_write_sov_or_loop(self, ooh_context):
        updated = set_field_value(Channel.OOH, ooh_context, "sov_or_loop", "30% / 15s")

        assert updated.line_item.extension.share_of_voice == pytest.approx(0.3)
        assert updated.line_item.extension.slot_length_sec == 15

    def test_write_location(self, ooh_context):
        updated = set_field_value(Channel.OOH, ooh_context, "location", "5 Collins St, Melbourne, VIC")

        extension = updated.line_item.extension
        assert (extension.address, extension.suburb, extension.state) == ("5 Collins St", "Melbourne", "VIC")

    def test_write_vendor_and_audience(self, ooh_context):
        updated = set_field_value(Channel.OOH, ooh_context, "vendor_platform", "JCDecaux")
        updated = set_field_value(Channel.OOH, updated, "audience_label", "Commuters")

        assert updated.plan.find_vendor("vnd-1").name == "JCDecaux"
        assert updated.plan.find_audience("aud-1").definition == "Commuters"

    def test_write_pricing_model(self, ooh_context):
        updated = set_field_value(Channel.OOH, ooh_context, "pricing_model", "CPM")

        assert updated.line_item.pricing_model == PricingModel.CPM

    def test_write_creates_missing_extension(self, plan):
        plan.line_items.append(LineItem(line_item_id="li-9", flight_id="flt-2", channel=Channel.PODCAST))
        context = build_field_context(plan, "li-9")
        updated = set_field_value(Channel.PODCAST, context, "publisher_show", "ABC - The Daily")

        assert isinstance(updated.line_item.extension, PodcastExtension)
        assert updated.line_item.extension.publisher == "ABC"
        assert updated.line_item.extension.show == "The Daily"

    def test_write_keyword(self, plan):
        context = build_field_context(plan, "li-2")
        updated = set_field_value(Channel.SEARCH, context, "keyword_or_group", "beach towels")

        assert isinstance(updated.line_item.extension, SearchExtension)
        assert updated.line_item.extension.keyword == "beach towels"

    def test_percent_columns(self, plan):
        context = build_field_context(plan, "li-3")
        updated = set_field_value(Channel.DIGITAL_DISPLAY, context, "viewability_goal_pct", "65%")

        assert updated.line_item.extension.viewability_goal == pytest.approx(0.65)

    def test_date_write_resyncs_block_plan(self, ooh_context):
        updated = set_field_value(Channel.OOH, ooh_context, "end_date", "2025-11-12")

        weeks = [week.week_start for week in updated.line_item.block_plan.weeks if week.active]
        assert weeks == ["2025-11-03", "2025-11-10"]
        assert updated.flight.end_date == date(2025, 11, 16)

    def test_read_only_field(self, ooh_context):
        with pytest.raises(ReadOnlyFieldError):
            set_field_value(Channel.OOH, ooh_context, "keyword_or_group", "nope")


class TestPercentParsing:
    """Test percentage normalization."""

    @pytest.mark.parametrize("value,expected", [
        (0.25, 0.25),
        (25, 0.25),
        ("25%", 0.25),
        (150, 1.0),
        (-3, 0.0),
        ("abc", 0.0),
    ])
    def test_percent_from_value(self, value, expected):
        assert percent_from_value(value) == pytest.approx(expected)
