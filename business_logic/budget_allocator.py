"""
Budget allocation across tactics.

This module provides the budget redistribution operations used by the plan
editor: even split, efficiency weighting, channel share capping with
overflow redistribution, and rounding to a fixed increment. Each operation
takes a list of tactics and returns a new list; inputs are never modified.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional

from models.data_models import PlanConstraints, Tactic
from .proration import round_to, safe_number

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class AllocationStrategy(Enum):
    """Budget allocation operations."""
    SPLIT_EVEN = "split_even"
    EFFICIENCY_WEIGHTED = "efficiency_weighted"
    CHANNEL_CAP = "channel_cap"
    ROUND_TO_NEAREST = "round_to_nearest"


@dataclass
class AllocationResult:
    """Result of applying an allocation strategy."""
    tactics: List[Tactic]
    total_before: float
    total_after: float
    correction: float
    notes: List[str] = field(default_factory=list)


def total_budget(tactics: List[Tactic]) -> float:
    """Sum of tactic budgets with malformed values counted as 0."""
    return sum(safe_number(tactic.budget) for tactic in tactics)


def _with_budgets(tactics: List[Tactic], budgets: List[float]) -> List[Tactic]:
    return [replace(tactic, budget=budget) for tactic, budget in zip(tactics, budgets)]


def split_evenly(tactics: List[Tactic], min_tactic_budget: Optional[float] = None) -> List[Tactic]:
    """
    Give every tactic the same share of the current total.

    When the total is 0 each tactic receives ``min_tactic_budget`` (or 0).
    An empty list is returned unchanged.
    """
    if not tactics:
        return []
    total = total_budget(tactics)
    if total == 0:
        share = safe_number(min_tactic_budget)
    else:
        share = total / len(tactics)
    return _with_budgets(tactics, [share] * len(tactics))


def efficiency_weight(tactic: Tactic) -> float:
    """Inverse of the first positive estimate among CPM, CPC, CPA; 1 when none."""
    for estimate in (tactic.est_cpm, tactic.est_cpc, tactic.est_cpa):
        value = safe_number(estimate)
        if value > 0:
            return 1 / value
    return 1.0


def weight_by_efficiency(tactics: List[Tactic]) -> List[Tactic]:
    """
    Redistribute the total in proportion to each tactic's efficiency.

    Cheaper tactics (lower CPM, CPC or CPA) receive more budget. Tactics
    without estimates get a neutral weight of 1.
    """
    if not tactics:
        return []
    weights = [efficiency_weight(tactic) for tactic in tactics]
    weight_sum = sum(weights)
    if weight_sum <= 0:
        return [replace(tactic) for tactic in tactics]

    total = total_budget(tactics)
    return _with_budgets(tactics, [total * weight / weight_sum for weight in weights])


def enforce_channel_cap(tactics: List[Tactic], cap_share: float, precision: int = 2) -> List[Tactic]:
    """
    Limit each channel's share of the total budget.

    Channels over ``cap_share`` of the total are scaled down to the cap. The
    freed budget is handed to channels with headroom in proportion to their
    remaining capacity, and within a channel in proportion to each tactic's
    current budget (evenly when the channel holds nothing). When no channel
    has headroom the shortfall is spread evenly across all tactics. Amounts
    are rounded half-up after each step.

    Args:
        tactics: Tactics to rebalance
        cap_share: Maximum channel share of the total, between 0 and 1
        precision: Decimal places for money rounding

    Returns:
        New tactic list
    """
    budgets = [round_to(safe_number(tactic.budget), precision) for tactic in tactics]
    total = sum(budgets)
    cap_share = safe_number(cap_share)
    if not tactics or total <= 0 or cap_share <= 0 or cap_share >= 1:
        return _with_budgets(tactics, budgets)

    groups: Dict[str, List[int]] = {}
    for index, tactic in enumerate(tactics):
        groups.setdefault(tactic.channel.value, []).append(index)

    if len(groups) * cap_share < 1:
        logger.warning(
            f"Channel cap of {cap_share:.0%} cannot be met by {len(groups)} channels; "
            f"some channels will stay above the cap"
        )

    cap_value = cap_share * total
    for indices in groups.values():
        group_total = sum(budgets[i] for i in indices)
        if group_total > cap_value:
            ratio = cap_value / group_total
            for i in indices:
                budgets[i] = round_to(budgets[i] * ratio, precision)

    shortfall = round_to(total - sum(budgets), precision)
    if shortfall <= 0:
        return _with_budgets(tactics, budgets)

    headroom = {
        channel: max(cap_value - sum(budgets[i] for i in indices), 0.0)
        for channel, indices in groups.items()
    }
    headroom_total = sum(headroom.values())

    if headroom_total <= 0:
        logger.info(f"No channel has headroom; spreading {shortfall} evenly across {len(tactics)} tactics")
        extra = shortfall / len(tactics)
        budgets = [round_to(budget + extra, precision) for budget in budgets]
        return _with_budgets(tactics, budgets)

    for channel, indices in groups.items():
        if headroom[channel] <= 0:
            continue
        channel_extra = shortfall * headroom[channel] / headroom_total
        channel_total = sum(budgets[i] for i in indices)
        for i in indices:
            if channel_total > 0:
                share = budgets[i] / channel_total
            else:
                share = 1 / len(indices)
            budgets[i] = round_to(budgets[i] + channel_extra * share, precision)

    return _with_budgets(tactics, budgets)


def round_to_nearest(tactics: List[Tactic], increment: float) -> List[Tactic]:
    """Round each budget to the nearest multiple of ``increment``; non-positive increments change nothing."""
    increment = safe_number(increment)
    if increment <= 0:
        return [replace(tactic) for tactic in tactics]
    return _with_budgets(
        tactics,
        [math.floor(safe_number(tactic.budget) / increment + 0.5) * increment for tactic in tactics]
    )


class BudgetAllocator:
    """
    Applies allocation strategies to a plan's tactics.

    Wraps the individual operations with plan constraints and reports the
    total before and after so callers can show any rounding correction.
    """

    def __init__(self, precision: int = 2):
        """Initialize the allocator."""
        self.precision = precision

    def apply(self,
              tactics: List[Tactic],
              strategy: AllocationStrategy,
              constraints: Optional[PlanConstraints] = None,
              increment: float = 100,
              cap_share: Optional[float] = None) -> AllocationResult:
        """
        Apply one allocation strategy.

        Args:
            tactics: Current tactics
            strategy: Operation to run
            constraints: Plan constraints supplying the minimum budget and channel cap
            increment: Rounding increment for ROUND_TO_NEAREST
            cap_share: Channel cap overriding ``constraints.max_share_per_channel``

        Returns:
            AllocationResult with the new tactics

        Raises:
            ValueError: If CHANNEL_CAP is requested without a cap
        """
        constraints = constraints or PlanConstraints()
        total_before = total_budget(tactics)
        notes: List[str] = []

        try:
            logger.info(f"Applying {strategy.value} allocation to {len(tactics)} tactics")

            if strategy == AllocationStrategy.SPLIT_EVEN:
                result = split_evenly(tactics, constraints.min_tactic_budget)
            elif strategy == AllocationStrategy.EFFICIENCY_WEIGHTED:
                result = weight_by_efficiency(tactics)
            elif strategy == AllocationStrategy.CHANNEL_CAP:
                cap = cap_share if cap_share is not None else constraints.max_share_per_channel
                if not cap:
                    raise ValueError("Channel cap allocation needs a maximum share per channel")
                result = enforce_channel_cap(tactics, cap, self.precision)
                if len({tactic.channel for tactic in tactics}) * cap < 1:
                    notes.append(f"A {cap:.0%} cap is infeasible for this channel mix")
            else:
                result = round_to_nearest(tactics, increment)

            total_after = total_budget(result)
            correction = round_to(total_after - total_before, self.precision)
            if correction:
                notes.append(f"Total changed by {correction:+.2f}")

            logger.info(f"Allocation complete: {total_before:.2f} -> {total_after:.2f}")
            return AllocationResult(
                tactics=result,
                total_before=total_before,
                total_after=total_after,
                correction=correction,
                notes=notes
            )

        except Exception as e:
            logger.error(f"Error applying {strategy.value} allocation: {str(e)}")
            raise
