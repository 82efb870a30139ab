#!/usr/bin/env python3
"""
Demonstration of the block plan engine.

This script loads the sample plans, builds block plan matrices, edits the
flighting schedule and tactic budgets through PlanEditorController, and
lays the matrix out as an export table.
"""

from datetime import date

from business_logic.block_plan_matrix import MatrixOptions
from business_logic.budget_allocator import AllocationStrategy
from business_logic.plan_editor_controller import PlanEditorController
from data.seed import build_flighting_seed_plan, build_seed_plan
from exporters.block_plan_export import ExportColumnOptions, build_export_filename, build_export_frame
from models.data_models import GroupBy, Timegrain, WeekStartDay


def main():
    """Demonstrate the block plan engine."""

    print("=== Media Plan Block Plan Demo ===\n")

    # Tactic plan
    print("1. Loading the Q4 tactic plan...")
    controller = PlanEditorController(build_seed_plan())
    totals = controller.totals()
    print(f"   ✓ Total budget: ${totals.total_budget:,.2f}")
    print(f"   ✓ Estimated impressions: {totals.total_impressions:,.0f}")
    print(f"   ✓ Blended CPM: ${totals.cpm:,.2f}")

    print("\n2. Monthly block plan by channel...")
    matrix = controller.block_plan_matrix(MatrixOptions(timegrain=Timegrain.MONTH, group_by=GroupBy.CHANNEL))
    for row in matrix.rows:
        cells = ", ".join(f"{value:,.0f}" for value in row.cells)
        print(f"   ✓ {row.label}: [{cells}]")

    print("\n3. Rebalancing budgets...")
    success, plan, message, _ = controller.apply_allocation(AllocationStrategy.SPLIT_EVEN)
    print(f"   ✓ {message}")
    success, plan, message, _ = controller.apply_allocation(AllocationStrategy.ROUND_TO_NEAREST, increment=1000)
    print(f"   ✓ {message}")
    success, plan, message, _ = controller.undo()
    print(f"   ✓ {message}: budgets are {[tactic.budget for tactic in plan.tactics]}")

    print("\n4. Pacing warnings...")
    warnings = controller.warnings()
    if warnings:
        for warning in warnings:
            print(f"   ! {warning}")
    else:
        print("   ✓ No warnings")

    print("\n5. Export table...")
    frame = build_export_frame(controller.block_plan_matrix(), ExportColumnOptions(show_notes=True))
    print(f"   ✓ {build_export_filename(controller.plan, 'xlsx', date.today())}")
    print(frame.to_string(max_cols=8))

    # Line item plan
    print("\n6. Loading the flighting plan...")
    flighting = PlanEditorController(build_flighting_seed_plan())
    line_item = flighting.plan.line_items[0]
    print(f"   ✓ Weeks for {line_item.line_item_id}: "
          f"{[week.week_start for week in line_item.block_plan.weeks if week.active]}")

    print("\n7. Toggling a week and moving to Sunday weeks...")
    success, plan, message, _ = flighting.toggle_week(line_item.line_item_id, line_item.block_plan.weeks[0].week_start)
    print(f"   ✓ {message}")
    flight = plan.find_flight(line_item.flight_id)
    print(f"   ✓ Flight now runs {flight.start_date} to {flight.end_date}")
    success, plan, message, _ = flighting.change_week_start(WeekStartDay.SUNDAY)
    print(f"   ✓ {message}")

    print("\n8. Editing a column...")
    success, plan, message, notification = flighting.set_field(line_item.line_item_id, "rate", -5)
    print(f"   ✓ Negative rate rejected: {message}")
    success, plan, message, _ = flighting.set_field(line_item.line_item_id, "sov_or_loop", "30% / 15s")
    print(f"   ✓ {message}")

    print("\n9. Submitting for approval...")
    success, plan, message, _ = flighting.submit("Taylor Planner")
    print(f"   ✓ {message} ({plan.status.value})")
    success, plan, message, _ = flighting.toggle_week(line_item.line_item_id, plan.line_items[0].block_plan.weeks[0].week_start)
    print(f"   ✓ Edit while submitted: {message}")

    print("\n=== Demo completed successfully! ===")


if __name__ == "__main__":
    main()
