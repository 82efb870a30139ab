"""
Tests for budget allocation across tactics.
"""

import copy
import pytest
from datetime import date

from business_logic.budget_allocator import (
    AllocationStrategy,
    BudgetAllocator,
    efficiency_weight,
    enforce_channel_cap,
    round_to_nearest,
    split_evenly,
    total_budget,
    weight_by_efficiency,
)
from models.data_models import BidType, PlanConstraints, Tactic, TacticChannel


def make_tactic(tactic_id, channel, budget, bid_type=BidType.CPM, **estimates):
    return Tactic(
        tactic_id=tactic_id,
        channel=channel,
        flight_start=date(2024, 1, 1),
        flight_end=date(2024, 1, 31),
        budget=budget,
        bid_type=bid_type,
        **estimates
    )


def channel_shares(tactics):
    total = total_budget(tactics)
    shares = {}
    for tactic in tactics:
        shares[tactic.channel] = shares.get(tactic.channel, 0.0) + tactic.budget / total
    return shares


@pytest.fixture
def four_tactics():
    return [
        make_tactic("t1", TacticChannel.SEARCH, 10000, BidType.CPC, est_cpc=2),
        make_tactic("t2", TacticChannel.SOCIAL, 20000, est_cpm=8),
        make_tactic("t3", TacticChannel.DISPLAY, 30000, est_cpm=4),
        make_tactic("t4", TacticChannel.VIDEO, 40000, est_cpm=20),
    ]


class TestSplitEvenly:
    """Test even budget splits."""

    def test_four_tactics(self, four_tactics):
        result = split_evenly(four_tactics)

        assert [tactic.budget for tactic in result] == [25000, 25000, 25000, 25000]

    def test_zero_total_uses_minimum(self, four_tactics):
        for tactic in four_tactics:
            tactic.budget = 0
        result = split_evenly(four_tactics, min_tactic_budget=5000)

        assert [tactic.budget for tactic in result] == [5000, 5000, 5000, 5000]

    def test_empty_list(self):
        assert split_evenly([]) == []

    def test_input_not_modified(self, four_tactics):
        before = copy.deepcopy(four_tactics)
        split_evenly(four_tactics)

        assert four_tactics == before


class TestEfficiencyWeighting:
    """Test inverse-cost weighting."""

    def test_cheaper_tactic_gets_more(self):
        tactics = [
            make_tactic("a", TacticChannel.DISPLAY, 15000, est_cpm=10),
            make_tactic("b", TacticChannel.VIDEO, 15000, est_cpm=20),
        ]
        result = weight_by_efficiency(tactics)

        assert result[0].budget == pytest.approx(20000)
        assert result[1].budget == pytest.approx(10000)

    def test_missing_estimates_are_neutral(self):
        tactic = make_tactic("a", TacticChannel.OTHER, 1000)

        assert efficiency_weight(tactic) == 1.0

    def test_first_positive_estimate_wins(self):
        tactic = make_tactic("a", TacticChannel.SEARCH, 1000, BidType.CPC, est_cpm=0, est_cpc=4)

        assert efficiency_weight(tactic) == pytest.approx(0.25)

    def test_total_is_preserved(self, four_tactics):
        result = weight_by_efficiency(four_tactics)

        assert total_budget(result) == pytest.approx(100000)


class TestChannelCap:
    """Test channel share capping and redistribution."""

    def test_overweight_channel_is_capped(self):
        tactics = [
            make_tactic("d1", TacticChannel.DISPLAY, 40000),
            make_tactic("d2", TacticChannel.DISPLAY, 40000),
            make_tactic("s1", TacticChannel.SEARCH, 20000, BidType.CPC),
        ]
        result = enforce_channel_cap(tactics, 0.6)
        shares = channel_shares(result)

        assert total_budget(result) == pytest.approx(100000, abs=0.01 * len(tactics))
        assert shares[TacticChannel.DISPLAY] <= 0.6 + 1e-4
        assert [tactic.budget for tactic in result] == pytest.approx([30000, 30000, 40000])

    def test_overflow_split_by_headroom(self):
        tactics = [
            make_tactic("v1", TacticChannel.VIDEO, 70000),
            make_tactic("s1", TacticChannel.SEARCH, 20000, BidType.CPC),
            make_tactic("o1", TacticChannel.SOCIAL, 10000),
        ]
        result = enforce_channel_cap(tactics, 0.5)

        # 20000 freed; Search has 30000 headroom and Social 40000
        assert [tactic.budget for tactic in result] == pytest.approx([50000, 28571.43, 21428.57])
        assert total_budget(result) == pytest.approx(100000, abs=0.03)

    def test_infeasible_cap_spreads_evenly(self):
        tactics = [
            make_tactic("d1", TacticChannel.DISPLAY, 60000),
            make_tactic("s1", TacticChannel.SEARCH, 40000, BidType.CPC),
        ]
        result = enforce_channel_cap(tactics, 0.4)

        assert [tactic.budget for tactic in result] == pytest.approx([50000, 50000])
        assert total_budget(result) == pytest.approx(100000)

    def test_cap_out_of_range_changes_nothing(self, four_tactics):
        assert [t.budget for t in enforce_channel_cap(four_tactics, 0)] == [10000, 20000, 30000, 40000]
        assert [t.budget for t in enforce_channel_cap(four_tactics, 1)] == [10000, 20000, 30000, 40000]

    def test_within_cap_changes_nothing(self, four_tactics):
        result = enforce_channel_cap(four_tactics, 0.5)

        assert [tactic.budget for tactic in result] == [10000, 20000, 30000, 40000]


class TestRoundToNearest:
    """Test rounding budgets to an increment."""

    def test_round_half_up(self):
        tactics = [
            make_tactic("a", TacticChannel.DISPLAY, 12345),
            make_tactic("b", TacticChannel.DISPLAY, 12350),
        ]
        result = round_to_nearest(tactics, 100)

        assert [tactic.budget for tactic in result] == [12300, 12400]

    def test_non_positive_increment(self, four_tactics):
        result = round_to_nearest(four_tactics, 0)

        assert [tactic.budget for tactic in result] == [10000, 20000, 30000, 40000]
        assert result[0] is not four_tactics[0]


class TestBudgetAllocator:
    """Test the allocator facade."""

    def setup_method(self):
        """Set up test fixtures."""
        self.allocator = BudgetAllocator()

    def test_split_even(self, four_tactics):
        result = self.allocator.apply(four_tactics, AllocationStrategy.SPLIT_EVEN)

        assert result.total_before == 100000
        assert result.total_after == 100000
        assert result.correction == 0
        assert result.notes == []

    def test_rounding_reports_correction(self):
        tactics = [
            make_tactic("a", TacticChannel.DISPLAY, 12345),
            make_tactic("b", TacticChannel.DISPLAY, 12350),
        ]
        result = self.allocator.apply(tactics, AllocationStrategy.ROUND_TO_NEAREST, increment=100)

        assert result.correction == pytest.approx(5.0)
        assert any("+5.00" in note for note in result.notes)

    def test_channel_cap_from_constraints(self):
        tactics = [
            make_tactic("d1", TacticChannel.DISPLAY, 80000),
            make_tactic("s1", TacticChannel.SEARCH, 20000, BidType.CPC),
        ]
        result = self.allocator.apply(
            tactics, AllocationStrategy.CHANNEL_CAP, PlanConstraints(max_share_per_channel=0.6)
        )

        assert [tactic.budget for tactic in result.tactics] == pytest.approx([60000, 40000])

    def test_infeasible_cap_is_noted(self):
        tactics = [
            make_tactic("d1", TacticChannel.DISPLAY, 60000),
            make_tactic("s1", TacticChannel.SEARCH, 40000, BidType.CPC),
        ]
        result = self.allocator.apply(tactics, AllocationStrategy.CHANNEL_CAP, cap_share=0.4)

        assert any("infeasible" in note for note in result.notes)

    def test_channel_cap_without_cap(self, four_tactics):
        with pytest.raises(ValueError):
            self.allocator.apply(four_tactics, AllocationStrategy.CHANNEL_CAP)

    def test_split_even_uses_minimum_from_constraints(self):
        tactics = [make_tactic("a", TacticChannel.DISPLAY, 0), make_tactic("b", TacticChannel.SEARCH, 0)]
        result = self.allocator.apply(
            tactics, AllocationStrategy.SPLIT_EVEN, PlanConstraints(min_tactic_budget=2500)
        )

        assert [tactic.budget for tactic in result.tactics] == [2500, 2500]
