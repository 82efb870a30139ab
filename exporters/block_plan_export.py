"""
Tabular export of block plan matrices.

Produces pandas DataFrames that spreadsheet and PDF writers can render
directly: a block plan sheet with meta columns, one column per calendar
bucket, an optional Total column and a Grand total row, plus a small
totals summary.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Union

import pandas as pd

from models.data_models import BlockMetric, GroupBy, Plan
from business_logic.block_plan_matrix import BlockPlanMatrix, MatrixRow
from business_logic.proration import estimate_revenue, estimate_roas, round_to

logger = logging.getLogger(__name__)

GRAND_TOTAL_LABEL = "Grand total"
TOTAL_COLUMN = "Total"


@dataclass
class ExportColumnOptions:
    """Which meta columns appear before the bucket columns."""
    show_channel: bool = True
    show_vendor: bool = True
    show_bid_type: bool = True
    show_budget: bool = True
    show_impressions: bool = True
    show_clicks: bool = False
    show_conversions: bool = False
    show_roas: bool = False
    show_notes: bool = False
    show_totals_column: bool = True
    show_totals_row: bool = True


@dataclass
class MetaColumn:
    key: str
    header: str
    extractor: Callable[[MatrixRow], Union[str, float]]
    metric: Optional[BlockMetric] = None
    is_currency: bool = False
    is_roas: bool = False


def row_roas(row: MatrixRow, average_order_value: float) -> float:
    if average_order_value <= 0:
        return 0.0
    revenue = estimate_revenue(row.totals[BlockMetric.CONVERSIONS], average_order_value)
    return estimate_roas(revenue, row.totals[BlockMetric.BUDGET])


def build_meta_columns(group_by: GroupBy, options: Optional[ExportColumnOptions] = None,
                       average_order_value: float = 0.0) -> List[MetaColumn]:
    """
    Meta columns for an export, in display order.

    The first column is the row label, headed Channel or Tactic depending on
    the grouping. A separate Channel column is only offered when grouping by
    tactic.

    Args:
        group_by: Row grouping of the matrix
        options: Column toggles
        average_order_value: Order value used for the ROAS column

    Returns:
        List of MetaColumn definitions
    """
    options = options or ExportColumnOptions()
    columns = [
        MetaColumn(
            key="label",
            header="Channel" if group_by == GroupBy.CHANNEL else "Tactic",
            extractor=lambda row: row.label
        )
    ]

    if options.show_channel and group_by == GroupBy.TACTIC:
        columns.append(MetaColumn(key="channel", header="Channel", extractor=lambda row: row.channel))
    if options.show_vendor:
        columns.append(MetaColumn(key="vendor", header="Vendor", extractor=lambda row: row.vendor or ""))
    if options.show_bid_type:
        columns.append(MetaColumn(key="bid_type", header="Bid Type", extractor=lambda row: row.bid_type or ""))

    metric_toggles = (
        (options.show_budget, "budget", BlockMetric.BUDGET),
        (options.show_impressions, "impressions", BlockMetric.IMPRESSIONS),
        (options.show_clicks, "clicks", BlockMetric.CLICKS),
        (options.show_conversions, "conversions", BlockMetric.CONVERSIONS),
    )
    for enabled, key, metric in metric_toggles:
        if enabled:
            columns.append(MetaColumn(
                key=key,
                header=metric.value,
                extractor=lambda row, metric=metric: row.totals[metric],
                metric=metric,
                is_currency=metric == BlockMetric.BUDGET
            ))

    if options.show_roas:
        columns.append(MetaColumn(
            key="roas",
            header="ROAS",
            extractor=lambda row: row_roas(row, average_order_value),
            is_roas=True
        ))
    if options.show_notes:
        columns.append(MetaColumn(key="notes", header="Notes", extractor=lambda row: row.notes or ""))

    return columns


def _round(value: float, rounding: Optional[int]) -> float:
    return value if rounding is None else round_to(value, rounding)


def build_export_frame(matrix: BlockPlanMatrix,
                       options: Optional[ExportColumnOptions] = None,
                       average_order_value: float = 0.0,
                       rounding: Optional[int] = 2) -> pd.DataFrame:
    """
    Lay a matrix out as a block plan sheet.

    Bucket cells are rounded before the Total column is summed so the sheet
    adds up as displayed. The Grand total row uses the matrix grand totals
    for metric columns and the column sums for bucket columns.

    Args:
        matrix: Matrix to export
        options: Column toggles
        average_order_value: Order value for ROAS, 0 disables it in the totals row
        rounding: Decimal places, or None to keep raw values

    Returns:
        DataFrame with one row per matrix row and an optional totals row
    """
    options = options or ExportColumnOptions()
    meta_columns = build_meta_columns(matrix.group_by, options, average_order_value)
    bucket_headers = [column.label for column in matrix.columns]
    headers = [column.header for column in meta_columns] + bucket_headers
    if options.show_totals_column:
        headers.append(TOTAL_COLUMN)

    records: List[List[Any]] = []
    for row in matrix.rows:
        values: List[Any] = []
        for column in meta_columns:
            raw = column.extractor(row)
            values.append(_round(raw, rounding) if isinstance(raw, (int, float)) else raw)
        cells = [_round(row.cells[index] if index < len(row.cells) else 0.0, rounding)
                 for index in range(len(matrix.columns))]
        values.extend(cells)
        if options.show_totals_column:
            values.append(_round(sum(cells), rounding))
        records.append(values)

    if options.show_totals_row:
        totals: List[Any] = []
        for index, column in enumerate(meta_columns):
            if index == 0:
                totals.append(GRAND_TOTAL_LABEL)
            elif column.metric is not None:
                totals.append(_round(matrix.grand_totals[column.metric], rounding))
            elif column.is_roas and average_order_value > 0:
                revenue = estimate_revenue(matrix.grand_totals[BlockMetric.CONVERSIONS], average_order_value)
                totals.append(estimate_roas(revenue, matrix.grand_totals[BlockMetric.BUDGET]))
            else:
                totals.append("")
        column_totals = [
            _round(sum(record[len(meta_columns) + index] for record in records), rounding)
            for index in range(len(matrix.columns))
        ]
        totals.extend(column_totals)
        if options.show_totals_column:
            totals.append(_round(sum(column_totals), rounding))
        records.append(totals)

    frame = pd.DataFrame(records, columns=headers)
    logger.info(f"Built export frame for {matrix.plan_name}: {len(frame)} rows x {len(frame.columns)} columns")
    return frame


def build_totals_frame(matrix: BlockPlanMatrix, average_order_value: float = 0.0,
                       rounding: Optional[int] = 2) -> pd.DataFrame:
    """Metric/value summary of a matrix's grand totals."""
    grand = matrix.grand_totals
    rows: List[Dict[str, Any]] = [
        {"Metric": "Total Budget", "Value": _round(grand[BlockMetric.BUDGET], rounding)},
        {"Metric": "Impressions", "Value": _round(grand[BlockMetric.IMPRESSIONS], rounding)},
        {"Metric": "Clicks", "Value": _round(grand[BlockMetric.CLICKS], rounding)},
        {"Metric": "Conversions", "Value": _round(grand[BlockMetric.CONVERSIONS], rounding)},
    ]
    if average_order_value > 0:
        revenue = estimate_revenue(grand[BlockMetric.CONVERSIONS], average_order_value)
        rows.append({"Metric": "Revenue", "Value": _round(revenue, rounding)})
        rows.append({"Metric": "ROAS", "Value": round_to(estimate_roas(revenue, grand[BlockMetric.BUDGET]), 2)})
    return pd.DataFrame(rows)


def build_export_filename(plan: Plan, extension: str, today: Optional[date] = None) -> str:
    """
    File name for an exported block plan.

    Runs of characters outside A-Z, a-z and 0-9 in the plan name become a
    single underscore.

    Example:
        BlockPlan_Q4_Launch_AU_2025-10-01.xlsx
    """
    safe_name = re.sub(r"[^A-Za-z0-9]+", "_", plan.meta.name)
    stamp = (today or date.today()).isoformat()
    return f"BlockPlan_{safe_name}_{stamp}.{extension.lstrip('.')}"
