"""
Tests for proration and performance estimates.
"""

import math
import pytest
from datetime import date

from business_logic.calendar_utils import compute_blocks
from business_logic.proration import (
    bid_type_estimate,
    calculate_daily_pacing,
    days_in_flight,
    estimate_clicks_from_cpc,
    estimate_conversions_from_cpa,
    estimate_impressions_from_cpm,
    estimate_revenue,
    estimate_roas,
    estimate_strict_metrics,
    estimate_tactic_performance,
    prorate,
    round_to,
    safe_number,
)
from models.data_models import BidType, DateRange, Tactic, TacticChannel, Timegrain, WeekStartDay


def make_tactic(channel=TacticChannel.SEARCH, budget=1000.0, bid_type=BidType.CPC, **estimates):
    return Tactic(
        tactic_id="t1",
        channel=channel,
        flight_start=date(2024, 1, 1),
        flight_end=date(2024, 1, 14),
        budget=budget,
        bid_type=bid_type,
        **estimates
    )


class TestSafeNumbers:
    """Test numeric normalization."""

    @pytest.mark.parametrize("value", [None, "abc", math.nan, math.inf, -math.inf, True, object()])
    def test_degenerate_values_become_zero(self, value):
        assert safe_number(value) == 0.0

    def test_numeric_strings(self):
        assert safe_number("12.5") == 12.5
        assert safe_number(7) == 7.0

    def test_round_half_up(self):
        assert round_to(0.125, 2) == 0.13
        assert round_to(2.5, 0) == 3.0
        assert round_to(1234.5678, 2) == 1234.57
        assert round_to(math.nan, 2) == 0.0


class TestProrate:
    """Test spreading totals across buckets."""

    def test_even_split_across_weeks(self):
        window = DateRange(date(2024, 1, 1), date(2024, 1, 14))
        buckets = compute_blocks(window, Timegrain.WEEK, WeekStartDay.MONDAY)

        assert prorate(1400, window, buckets) == pytest.approx([700.0, 700.0])

    @pytest.mark.parametrize("grain", list(Timegrain))
    def test_conservation_over_covering_buckets(self, grain):
        window = DateRange(date(2024, 1, 3), date(2024, 2, 19))
        buckets = compute_blocks(window, grain, WeekStartDay.SUNDAY)

        assert sum(prorate(12345.67, window, buckets)) == pytest.approx(12345.67, abs=1e-6)

    def test_narrower_buckets_receive_only_their_share(self):
        window = DateRange(date(2024, 1, 1), date(2024, 1, 10))
        buckets = compute_blocks(DateRange(date(2024, 1, 1), date(2024, 1, 5)), Timegrain.WEEK)

        assert sum(prorate(1000, window, buckets)) == pytest.approx(500.0)

    def test_non_positive_total(self):
        window = DateRange(date(2024, 1, 1), date(2024, 1, 14))
        buckets = compute_blocks(window, Timegrain.WEEK)

        assert prorate(0, window, buckets) == [0.0, 0.0]
        assert prorate(-50, window, buckets) == [0.0, 0.0]
        assert prorate(math.nan, window, buckets) == [0.0, 0.0]

    def test_reversed_window(self):
        window = DateRange(date(2024, 1, 14), date(2024, 1, 1))
        buckets = compute_blocks(DateRange(date(2024, 1, 1), date(2024, 1, 14)), Timegrain.WEEK)

        assert prorate(1000, window, buckets) == [0.0, 0.0]


class TestEstimators:
    """Test metric estimators."""

    def test_basic_estimators(self):
        assert estimate_impressions_from_cpm(1000, 10) == pytest.approx(100000)
        assert estimate_clicks_from_cpc(1000, 2) == pytest.approx(500)
        assert estimate_conversions_from_cpa(1000, 25) == pytest.approx(40)

    def test_estimators_without_rate(self):
        assert estimate_impressions_from_cpm(1000, 0) == 0.0
        assert estimate_clicks_from_cpc(1000, None) == 0.0
        assert estimate_conversions_from_cpa(1000, -5) == 0.0

    def test_revenue_and_roas(self):
        assert estimate_revenue(20, 100) == 2000
        assert estimate_roas(500, 250) == 2.0
        assert estimate_roas(500, 0) == 0.0

    def test_strict_metrics_only_use_own_estimates(self):
        estimates = estimate_strict_metrics(1000, est_cpc=2)

        assert estimates.clicks == pytest.approx(500)
        assert estimates.impressions == 0.0
        assert estimates.conversions == 0.0

    def test_tactic_performance_backfills_from_benchmarks(self):
        estimates = estimate_tactic_performance(make_tactic(est_cpc=2))

        assert estimates.clicks == pytest.approx(500)
        assert estimates.impressions == pytest.approx(500 / 0.04)
        assert estimates.conversions == pytest.approx(500 * 0.05)

    def test_tactic_performance_from_cpm(self):
        tactic = make_tactic(channel=TacticChannel.DISPLAY, bid_type=BidType.CPM, est_cpm=10)
        estimates = estimate_tactic_performance(tactic)

        assert estimates.impressions == pytest.approx(100000)
        assert estimates.clicks == pytest.approx(100000 * 0.0035)
        assert estimates.conversions == pytest.approx(100000 * 0.0035 * 0.01)

    def test_tactic_without_estimates(self):
        estimates = estimate_tactic_performance(make_tactic(budget=math.nan))

        assert (estimates.impressions, estimates.clicks, estimates.conversions) == (0.0, 0.0, 0.0)

    def test_bid_type_estimate(self):
        assert bid_type_estimate(make_tactic(est_cpc=2.5, est_cpm=9)) == 2.5
        assert bid_type_estimate(make_tactic(bid_type=BidType.CPA)) == 0.0


class TestPacing:
    """Test flight length and daily pacing."""

    def test_days_in_flight(self):
        assert days_in_flight(date(2024, 1, 1), date(2024, 1, 14)) == 14
        assert days_in_flight(date(2024, 1, 14), date(2024, 1, 1)) == 0

    def test_daily_pacing(self):
        assert calculate_daily_pacing(1400, date(2024, 1, 1), date(2024, 1, 14)) == pytest.approx(100)
        assert calculate_daily_pacing(1400, date(2024, 1, 14), date(2024, 1, 1)) == 0.0
