"""
Block plan matrix builder.

Turns a plan's spend entries into a time-bucketed reporting grid: one column
per calendar bucket and one row per tactic or per channel. The matrix is
built fresh for each request and never modifies the plan.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from models.data_models import BlockMetric, DateRange, GroupBy, Plan, Timegrain, WeekStartDay
from business_logic.calendar_utils import compute_blocks, overlap_days
from business_logic.plan_metrics import EntrySource, SpendEntry, collect_spend_entries
from business_logic.proration import prorate

logger = logging.getLogger(__name__)

MIXED_VENDOR = "Multiple"
MIXED_BID_TYPE = "Mixed"


def empty_metric_totals() -> Dict[BlockMetric, float]:
    return {metric: 0.0 for metric in BlockMetric}


@dataclass
class MatrixOptions:
    """Options for building a block plan matrix."""
    timegrain: Timegrain = Timegrain.WEEK
    range_start: Optional[date] = None
    range_end: Optional[date] = None
    group_by: GroupBy = GroupBy.TACTIC
    metric: BlockMetric = BlockMetric.BUDGET
    week_start_day: Optional[WeekStartDay] = None
    source: EntrySource = EntrySource.AUTO


@dataclass(frozen=True)
class MatrixColumn:
    key: str
    start: date
    end: date
    label: str


@dataclass
class MatrixRow:
    """One tactic, or one channel when grouping by channel."""
    row_id: str
    label: str
    channel: str
    vendor: Optional[str] = None
    bid_type: Optional[str] = None
    notes: Optional[str] = None
    totals: Dict[BlockMetric, float] = field(default_factory=empty_metric_totals)
    cells: List[float] = field(default_factory=list)


@dataclass
class BlockPlanMatrix:
    plan_name: str
    plan_code: str
    version: int
    metric: BlockMetric
    timegrain: Timegrain
    group_by: GroupBy
    date_range: Optional[DateRange] = None
    columns: List[MatrixColumn] = field(default_factory=list)
    rows: List[MatrixRow] = field(default_factory=list)
    grand_totals: Dict[BlockMetric, float] = field(default_factory=empty_metric_totals)
    column_totals: List[float] = field(default_factory=list)


def plan_date_range(plan: Plan, entries: Optional[List[SpendEntry]] = None) -> Optional[DateRange]:
    """
    Full date range covered by a plan.

    Combines the plan's own dates, campaign windows and the windows of the
    given spend entries.

    Returns:
        DateRange, or None when the plan carries no dates at all
    """
    starts: List[date] = []
    ends: List[date] = []

    if plan.start_date:
        starts.append(plan.start_date)
    if plan.end_date:
        ends.append(plan.end_date)
    for campaign in plan.campaigns:
        if campaign.start_date:
            starts.append(campaign.start_date)
        if campaign.end_date:
            ends.append(campaign.end_date)
    for entry in entries or []:
        starts.append(entry.window.start)
        ends.append(entry.window.end)

    if not starts or not ends:
        return None
    return DateRange(min(starts), max(ends))


def _clamp_range(full_range: DateRange, options: MatrixOptions) -> DateRange:
    start = full_range.start
    end = full_range.end
    if options.range_start and options.range_start > start:
        start = options.range_start
    if options.range_end and options.range_end < end:
        end = options.range_end
    return DateRange(start, end)


def _entry_totals(entry: SpendEntry) -> Dict[BlockMetric, float]:
    metrics = entry.strict_metrics()
    return {
        BlockMetric.BUDGET: entry.budget,
        BlockMetric.IMPRESSIONS: metrics.impressions,
        BlockMetric.CLICKS: metrics.clicks,
        BlockMetric.CONVERSIONS: metrics.conversions,
    }


def build_block_plan_matrix(plan: Plan, options: Optional[MatrixOptions] = None) -> BlockPlanMatrix:
    """
    Build a block plan matrix for a plan.

    The requested range is clamped to the plan's full range. Entries with no
    day inside the clamped range are skipped. Each contributing entry's
    chosen metric is prorated over the buckets using the entry's own window,
    so buckets outside the clamped range never receive a share.

    When grouping by channel, rows whose entries disagree on vendor or bid
    type report ``Multiple`` and ``Mixed``.

    Args:
        plan: Source plan (not modified)
        options: Grain, range, grouping and metric

    Returns:
        BlockPlanMatrix with rows, column totals and grand totals
    """
    options = options or MatrixOptions()
    week_start_day = options.week_start_day or plan.week_start_day
    entries = collect_spend_entries(plan, options.source)

    matrix = BlockPlanMatrix(
        plan_name=plan.meta.name,
        plan_code=plan.meta.code,
        version=plan.meta.version,
        metric=options.metric,
        timegrain=options.timegrain,
        group_by=options.group_by
    )

    full_range = plan_date_range(plan, entries)
    if full_range is None:
        logger.info(f"Plan {plan.plan_id} has no dates; returning an empty matrix")
        return matrix

    clamped = _clamp_range(full_range, options)
    matrix.date_range = clamped
    buckets = compute_blocks(clamped, options.timegrain, week_start_day)
    matrix.columns = [
        MatrixColumn(key=bucket.key, start=bucket.start, end=bucket.end, label=bucket.label)
        for bucket in buckets
    ]

    rows_by_key: Dict[str, MatrixRow] = {}
    for entry in entries:
        if overlap_days(entry.window, clamped) == 0:
            logger.debug(f"Entry {entry.entry_id} falls outside {clamped}; skipped")
            continue

        totals = _entry_totals(entry)
        shares = prorate(totals[options.metric], entry.window, buckets)

        if options.group_by == GroupBy.CHANNEL:
            key = entry.channel
            row = rows_by_key.get(key)
            if row is None:
                row = MatrixRow(
                    row_id=key,
                    label=entry.channel,
                    channel=entry.channel,
                    vendor=entry.vendor,
                    bid_type=entry.bid_type,
                    cells=[0.0] * len(buckets)
                )
                rows_by_key[key] = row
            else:
                if row.vendor != entry.vendor:
                    row.vendor = MIXED_VENDOR
                if row.bid_type != entry.bid_type:
                    row.bid_type = MIXED_BID_TYPE
        else:
            key = entry.entry_id
            row = MatrixRow(
                row_id=key,
                label=entry.label,
                channel=entry.channel,
                vendor=entry.vendor,
                bid_type=entry.bid_type,
                notes=entry.notes,
                cells=[0.0] * len(buckets)
            )
            rows_by_key[key] = row

        for metric, value in totals.items():
            row.totals[metric] += value
            matrix.grand_totals[metric] += value
        for index, share in enumerate(shares):
            row.cells[index] += share

    matrix.rows = list(rows_by_key.values())
    matrix.column_totals = build_totals_row(matrix)

    logger.info(
        f"Built {options.timegrain.value} matrix for plan {plan.plan_id}: "
        f"{len(matrix.rows)} rows x {len(matrix.columns)} columns"
    )
    return matrix


def sum_row(row: MatrixRow) -> float:
    return sum(row.cells)


def build_totals_row(matrix: BlockPlanMatrix) -> List[float]:
    """Per-column totals across all rows."""
    totals = [0.0] * len(matrix.columns)
    for row in matrix.rows:
        for index, value in enumerate(row.cells):
            totals[index] += value
    return totals
