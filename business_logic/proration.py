"""
Proration and performance estimation helpers.

Spreads a total across calendar buckets by day overlap and derives
impressions, clicks and conversions from budgets and efficiency estimates.
Malformed numbers are normalized to 0 instead of propagating NaN.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Sequence

from models.data_models import BidType, DateRange, Tactic, TacticChannel
from business_logic.calendar_utils import CalendarBucket, inclusive_days_between, overlap_days

logger = logging.getLogger(__name__)

# Click-through benchmarks used when CPC data is unavailable
CHANNEL_CTR_DEFAULTS: Dict[TacticChannel, float] = {
    TacticChannel.SEARCH: 0.04,
    TacticChannel.SOCIAL: 0.011,
    TacticChannel.DISPLAY: 0.0035,
    TacticChannel.VIDEO: 0.0025,
    TacticChannel.AUDIO: 0.0005,
    TacticChannel.DOOH: 0.0002,
    TacticChannel.AFFILIATE: 0.03,
    TacticChannel.RETAIL_MEDIA: 0.02,
    TacticChannel.OTHER: 0.01,
}

# Conversion-rate benchmarks used when CPA data is unavailable
CHANNEL_CVR_DEFAULTS: Dict[TacticChannel, float] = {
    TacticChannel.SEARCH: 0.05,
    TacticChannel.SOCIAL: 0.025,
    TacticChannel.DISPLAY: 0.01,
    TacticChannel.VIDEO: 0.008,
    TacticChannel.AUDIO: 0.003,
    TacticChannel.DOOH: 0.001,
    TacticChannel.AFFILIATE: 0.06,
    TacticChannel.RETAIL_MEDIA: 0.04,
    TacticChannel.OTHER: 0.02,
}

FALLBACK_CTR = 0.005
FALLBACK_CVR = 0.02


@dataclass
class MetricEstimates:
    """Estimated delivery for a budget."""
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0


def safe_number(value: Any) -> float:
    """Coerce a value to a finite float; None, NaN, infinities and garbage become 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def round_to(value: float, precision: int = 2) -> float:
    """Round half-up at ``precision`` decimals (0.125 -> 0.13, where round() gives 0.12)."""
    factor = 10 ** precision
    return math.floor(safe_number(value) * factor + 0.5) / factor


def prorate(total: float, owner_range: DateRange, buckets: Sequence[CalendarBucket]) -> List[float]:
    """
    Distribute a total across buckets in proportion to day overlap.

    The owner range is the full window of the thing being spread, so a
    bucket set narrower than the window receives only its share.

    Args:
        total: Amount to distribute
        owner_range: Window the total belongs to
        buckets: Ordered buckets to receive shares

    Returns:
        One value per bucket, all zeros for a non-positive total or empty window
    """
    amount = safe_number(total)
    days = inclusive_days_between(owner_range.start, owner_range.end)
    if amount <= 0 or days == 0:
        return [0.0 for _ in buckets]

    per_day = amount / days
    return [
        per_day * overlap_days(owner_range, DateRange(bucket.start, bucket.end))
        for bucket in buckets
    ]


def estimate_impressions_from_cpm(budget: float, cpm: float) -> float:
    if safe_number(cpm) <= 0:
        return 0.0
    return safe_number(budget) / cpm * 1000


def estimate_clicks_from_cpc(budget: float, cpc: float) -> float:
    if safe_number(cpc) <= 0:
        return 0.0
    return safe_number(budget) / cpc


def estimate_conversions_from_cpa(budget: float, cpa: float) -> float:
    if safe_number(cpa) <= 0:
        return 0.0
    return safe_number(budget) / cpa


def estimate_revenue(conversions: float, average_order_value: float) -> float:
    return safe_number(conversions) * safe_number(average_order_value)


def estimate_roas(revenue: float, spend: float) -> float:
    """Return on ad spend; 0 when nothing was spent."""
    spend = safe_number(spend)
    if spend <= 0:
        return 0.0
    return safe_number(revenue) / spend


def days_in_flight(start: date, end: date) -> int:
    return inclusive_days_between(start, end)


def calculate_daily_pacing(budget: float, start: date, end: date) -> float:
    """Average spend per day over an inclusive window."""
    days = days_in_flight(start, end)
    if days <= 0:
        return 0.0
    return safe_number(budget) / days


def estimate_strict_metrics(budget: float, est_cpm: Any = None, est_cpc: Any = None,
                            est_cpa: Any = None) -> MetricEstimates:
    """
    Estimate each metric only from its own efficiency figure.

    A metric with no positive estimate contributes 0; nothing is inferred
    from channel benchmarks. Used for block plan reporting.
    """
    spend = safe_number(budget)
    return MetricEstimates(
        impressions=estimate_impressions_from_cpm(spend, safe_number(est_cpm)),
        clicks=estimate_clicks_from_cpc(spend, safe_number(est_cpc)),
        conversions=estimate_conversions_from_cpa(spend, safe_number(est_cpa))
    )


def estimate_tactic_performance(tactic: Tactic) -> MetricEstimates:
    """
    Estimate impressions, clicks and conversions for a tactic.

    Explicit CPM/CPC/CPA estimates are used first. Missing metrics are then
    back-filled from the channel's CTR and CVR benchmarks.

    Args:
        tactic: Tactic with budget and optional efficiency estimates

    Returns:
        MetricEstimates with finite values
    """
    estimates = estimate_strict_metrics(tactic.budget, tactic.est_cpm, tactic.est_cpc, tactic.est_cpa)
    impressions, clicks, conversions = estimates.impressions, estimates.clicks, estimates.conversions

    ctr = CHANNEL_CTR_DEFAULTS.get(tactic.channel, FALLBACK_CTR)
    cvr = CHANNEL_CVR_DEFAULTS.get(tactic.channel, FALLBACK_CVR)

    if not impressions and clicks:
        impressions = clicks / ctr
    if not clicks and impressions:
        clicks = impressions * ctr
    if not conversions and clicks:
        conversions = clicks * cvr

    return MetricEstimates(
        impressions=safe_number(impressions),
        clicks=safe_number(clicks),
        conversions=safe_number(conversions)
    )


def bid_type_estimate(tactic: Tactic) -> float:
    """Return the efficiency estimate matching the tactic's bid type, or 0."""
    if tactic.bid_type == BidType.CPM:
        return safe_number(tactic.est_cpm)
    if tactic.bid_type == BidType.CPC:
        return safe_number(tactic.est_cpc)
    return safe_number(tactic.est_cpa)
