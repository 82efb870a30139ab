"""
Plan-level metrics: spend entries, dashboard totals, pacing warnings and
per-channel summaries.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from models.channel_extensions import Channel
from models.data_models import BidType, DateRange, LineItem, Plan, PricingModel, Tactic
from business_logic.calendar_utils import add_days
from business_logic.proration import (
    MetricEstimates,
    estimate_strict_metrics,
    estimate_tactic_performance,
    round_to,
    safe_number,
)

logger = logging.getLogger(__name__)


class EntrySource(Enum):
    """Which plan records feed spend-based reports."""
    AUTO = "auto"
    TACTICS = "tactics"
    LINE_ITEMS = "line_items"


@dataclass
class SpendEntry:
    """A budget with a date window, taken from a tactic or a line item."""
    entry_id: str
    label: str
    channel: str
    budget: float
    window: DateRange
    bid_type: Optional[str] = None
    vendor: Optional[str] = None
    est_cpm: Optional[float] = None
    est_cpc: Optional[float] = None
    est_cpa: Optional[float] = None
    notes: Optional[str] = None

    def strict_metrics(self) -> MetricEstimates:
        """Estimate only the metric the bid type prices; the other two are 0."""
        return estimate_strict_metrics(
            self.budget,
            est_cpm=self.est_cpm if self.bid_type == BidType.CPM.value else None,
            est_cpc=self.est_cpc if self.bid_type == BidType.CPC.value else None,
            est_cpa=self.est_cpa if self.bid_type == BidType.CPA.value else None
        )


@dataclass
class ChannelTotal:
    channel: str
    budget: float = 0.0
    impressions: float = 0.0
    units: float = 0.0


@dataclass
class PlanTotals:
    """Dashboard totals for a plan."""
    total_budget: float = 0.0
    total_impressions: float = 0.0
    total_units: float = 0.0
    cpm: float = 0.0
    blended_rate: float = 0.0
    channels: List[ChannelTotal] = field(default_factory=list)


@dataclass
class ChannelSummary:
    channel: Channel
    start_date: Optional[date]
    end_date: Optional[date]
    total_planned_cost: float
    budget_percent: float
    line_item_ids: List[str] = field(default_factory=list)


def tactic_to_entry(tactic: Tactic) -> SpendEntry:
    return SpendEntry(
        entry_id=tactic.tactic_id,
        label=tactic.name or tactic.tactic_id,
        channel=tactic.channel.value,
        budget=safe_number(tactic.budget),
        window=DateRange(tactic.flight_start, tactic.flight_end),
        bid_type=tactic.bid_type.value,
        vendor=tactic.vendor,
        est_cpm=tactic.est_cpm,
        est_cpc=tactic.est_cpc,
        est_cpa=tactic.est_cpa,
        notes=tactic.notes
    )


def line_item_to_entry(plan: Plan, line_item: LineItem) -> Optional[SpendEntry]:
    """Build a spend entry for a line item, or None when it has no flight."""
    flight = plan.find_flight(line_item.flight_id)
    if flight is None:
        logger.debug(f"Line item {line_item.line_item_id} has no flight; skipped")
        return None

    creative = plan.find_creative(line_item.creative_id)
    vendor = plan.find_vendor(line_item.vendor_id)
    rate = safe_number(line_item.rate)

    return SpendEntry(
        entry_id=line_item.line_item_id,
        label=creative.ad_name if creative else line_item.line_item_id,
        channel=line_item.channel.value,
        budget=safe_number(line_item.cost_planned),
        window=DateRange(flight.start_date, flight.end_date),
        bid_type=line_item.pricing_model.value,
        vendor=vendor.name if vendor else None,
        est_cpm=rate if line_item.pricing_model == PricingModel.CPM else None,
        est_cpc=rate if line_item.pricing_model == PricingModel.CPC else None,
        est_cpa=rate if line_item.pricing_model == PricingModel.CPA else None
    )


def collect_spend_entries(plan: Plan, source: EntrySource = EntrySource.AUTO) -> List[SpendEntry]:
    """
    Gather spend entries from a plan.

    AUTO uses tactics when the plan has any and falls back to line items.

    Args:
        plan: Plan to read
        source: Which records to use

    Returns:
        Entries in plan order
    """
    use_tactics = source == EntrySource.TACTICS or (source == EntrySource.AUTO and plan.tactics)
    if use_tactics:
        return [tactic_to_entry(tactic) for tactic in plan.tactics]

    entries = []
    for line_item in plan.line_items:
        entry = line_item_to_entry(plan, line_item)
        if entry is not None:
            entries.append(entry)
    return entries


def calculate_plan_totals(plan: Plan) -> PlanTotals:
    """
    Sum budget, impressions and units across the plan.

    Tactic impressions use benchmark back-filled estimates. Line items with
    CPM pricing contribute their planned units as impressions.

    Args:
        plan: Plan to summarize

    Returns:
        PlanTotals with per-channel breakdown ordered by first appearance
    """
    by_channel: Dict[str, ChannelTotal] = {}

    def bucket(name: str) -> ChannelTotal:
        if name not in by_channel:
            by_channel[name] = ChannelTotal(channel=name)
        return by_channel[name]

    if plan.tactics:
        for tactic in plan.tactics:
            channel_total = bucket(tactic.channel.value)
            channel_total.budget += safe_number(tactic.budget)
            channel_total.impressions += estimate_tactic_performance(tactic).impressions
    else:
        for line_item in plan.line_items:
            channel_total = bucket(line_item.channel.value)
            units = safe_number(line_item.units_planned)
            channel_total.budget += safe_number(line_item.cost_planned)
            channel_total.units += units
            if line_item.pricing_model == PricingModel.CPM:
                channel_total.impressions += units

    channels = list(by_channel.values())
    total_budget = sum(item.budget for item in channels)
    total_impressions = sum(item.impressions for item in channels)
    total_units = sum(item.units for item in channels)

    return PlanTotals(
        total_budget=total_budget,
        total_impressions=total_impressions,
        total_units=total_units,
        cpm=total_budget / total_impressions * 1000 if total_impressions > 0 else 0.0,
        blended_rate=total_budget / total_units if total_units > 0 else 0.0,
        channels=channels
    )


def build_pacing_warnings(plan: Plan) -> List[str]:
    """
    Collect human-readable pacing and constraint warnings.

    Checks tactic windows against their campaign, minimum tactic budget,
    channel share cap and gaps between consecutive tactic flights. Line item
    flights that end before they start are reported too.

    Args:
        plan: Plan to inspect

    Returns:
        Warning messages, empty when pacing looks healthy
    """
    warnings: List[str] = []
    constraints = plan.constraints

    for tactic in plan.tactics:
        campaign = plan.find_campaign(tactic.campaign_id)
        if campaign and campaign.start_date and campaign.end_date:
            if tactic.flight_start < campaign.start_date or tactic.flight_end > campaign.end_date:
                warnings.append(f"{tactic.channel.value} flight is outside campaign window")
        if constraints.min_tactic_budget and safe_number(tactic.budget) < constraints.min_tactic_budget:
            warnings.append(f"{tactic.channel.value} tactic is below the minimum budget")

    total_budget = sum(safe_number(tactic.budget) for tactic in plan.tactics)
    if constraints.max_share_per_channel and total_budget > 0:
        channel_totals: Dict[str, float] = {}
        for tactic in plan.tactics:
            channel_totals[tactic.channel.value] = channel_totals.get(tactic.channel.value, 0.0) + safe_number(tactic.budget)
        for channel, channel_total in channel_totals.items():
            if channel_total / total_budget > constraints.max_share_per_channel:
                cap_percent = round_to(constraints.max_share_per_channel * 100, 1)
                warnings.append(f"{channel} exceeds {cap_percent:g}% allocation cap")

    ordered = sorted(plan.tactics, key=lambda tactic: tactic.flight_start)
    for previous, current in zip(ordered, ordered[1:]):
        if current.flight_start > add_days(previous.flight_end, 1):
            warnings.append("There is a gap between tactic flights. Consider backfilling.")
            break

    for line_item in plan.line_items:
        flight = plan.find_flight(line_item.flight_id)
        if flight and flight.end_date < flight.start_date:
            warnings.append(f"Line item {line_item.line_item_id} has a flight that ends before it starts")

    logger.debug(f"Built {len(warnings)} pacing warnings for plan {plan.plan_id}")
    return warnings


def compute_channel_summaries(plan: Plan) -> List[ChannelSummary]:
    """Summarize line items per channel, sorted by channel name."""
    goal_budget = safe_number(plan.goal.budget)
    grouped: Dict[Channel, List[LineItem]] = {}
    for line_item in plan.line_items:
        grouped.setdefault(line_item.channel, []).append(line_item)

    summaries = []
    for channel, line_items in grouped.items():
        start: Optional[date] = None
        end: Optional[date] = None
        total_cost = 0.0
        for line_item in line_items:
            flight = plan.find_flight(line_item.flight_id)
            if flight:
                if start is None or flight.start_date < start:
                    start = flight.start_date
                if end is None or flight.end_date > end:
                    end = flight.end_date
            total_cost += safe_number(line_item.cost_planned)

        summaries.append(ChannelSummary(
            channel=channel,
            start_date=start,
            end_date=end,
            total_planned_cost=total_cost,
            budget_percent=total_cost / goal_budget if goal_budget > 0 else 0.0,
            line_item_ids=[item.line_item_id for item in line_items]
        ))

    return sorted(summaries, key=lambda summary: summary.channel.value)
