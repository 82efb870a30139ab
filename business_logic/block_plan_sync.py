"""
Keeps line item week toggles and flight dates consistent.

Every line item's block plan lists one week per calendar week of the plan's
full date range. Week flags can be seeded from the flight window, and the
flight window can be derived back from the active weeks. Public functions
never modify the plan passed in: they work on a deep copy and return it, or
return the original object when an edit is rejected.
"""

import copy
import logging
from datetime import date, timedelta
from typing import List, Optional, Set, Tuple

from models.data_models import BlockPlan, BlockPlanWeek, Flight, LineItem, Plan, WeekStartDay
from business_logic.calendar_utils import (
    CalendarBucket,
    add_days,
    enumerate_plan_weeks,
    parse_iso_date,
)
from business_logic.error_handler import MissingFlightError, PlanStructureError

logger = logging.getLogger(__name__)

# A new-grid week is active when at least this many of its days were active before.
MAJORITY_DAYS = 4


def _clone(plan: Plan) -> Plan:
    return copy.deepcopy(plan)


def _plan_weeks(plan: Plan) -> List[CalendarBucket]:
    return enumerate_plan_weeks(plan.start_date, plan.end_date, plan.week_start_day)


def _require_line_item(plan: Plan, line_item_id: str) -> Tuple[LineItem, Flight]:
    line_item = plan.find_line_item(line_item_id)
    if line_item is None:
        logger.error(f"Line item {line_item_id} not found in plan {plan.plan_id}")
        raise PlanStructureError(f"Line item {line_item_id} not found in plan {plan.plan_id}")
    flight = plan.find_flight(line_item.flight_id)
    if flight is None:
        logger.error(f"Line item {line_item_id} references missing flight {line_item.flight_id}")
        raise MissingFlightError(f"Line item {line_item_id} has no flight ({line_item.flight_id!r})")
    return line_item, flight


def _ensure_container(line_item: LineItem) -> BlockPlan:
    if line_item.block_plan is None:
        line_item.block_plan = BlockPlan()
    return line_item.block_plan


def active_keys_from_flight(flight: Optional[Flight], weeks: List[CalendarBucket]) -> Set[str]:
    """Keys of the weeks that intersect a flight's window."""
    if flight is None:
        return set()
    return {
        week.key for week in weeks
        if week.end >= flight.start_date and week.start <= flight.end_date
    }


def align_block_plan_weeks(plan: Plan, line_item: LineItem, flight: Optional[Flight],
                           preserve_existing: bool) -> None:
    """
    Rebuild a line item's weeks on the plan's current week grid, in place.

    With ``preserve_existing`` the flags of weeks that already exist are kept
    and new weeks are seeded from the flight. If that leaves nothing active
    while the flight would activate something, the flight-derived flags win.
    """
    block_plan = _ensure_container(line_item)
    weeks = _plan_weeks(plan)
    existing = {week.week_start: week.active for week in block_plan.weeks}
    fallback = active_keys_from_flight(flight, weeks)

    next_weeks = []
    for week in weeks:
        if preserve_existing and week.key in existing:
            active = existing[week.key]
        else:
            active = week.key in fallback
        next_weeks.append(BlockPlanWeek(week_start=week.key, active=active))

    if not any(week.active for week in next_weeks) and fallback:
        next_weeks = [BlockPlanWeek(week_start=week.key, active=week.key in fallback) for week in weeks]

    block_plan.weeks = next_weeks


def update_flight_from_block_plan(line_item: LineItem, flight: Optional[Flight]) -> None:
    """
    Set a flight's window from the line item's active weeks, in place.

    Start is the first active week's start and end is six days after the
    last active week's start. Nothing changes when no week is active.
    """
    if flight is None or line_item.block_plan is None:
        return
    active = sorted(week.week_start for week in line_item.block_plan.weeks if week.active)
    if not active:
        return
    flight.start_date = parse_iso_date(active[0])
    flight.end_date = add_days(parse_iso_date(active[-1]), 6)


def _refresh_timeline(plan: Plan) -> bool:
    """Recompute plan dates from flights in place; return True when they changed."""
    if not plan.flights:
        return False
    start = min(flight.start_date for flight in plan.flights)
    end = max(flight.end_date for flight in plan.flights)
    changed = (start, end) != (plan.start_date, plan.end_date)
    plan.start_date, plan.end_date = start, end
    return changed


def _realign_all(plan: Plan) -> None:
    for line_item in plan.line_items:
        align_block_plan_weeks(plan, line_item, plan.find_flight(line_item.flight_id), True)


def update_plan_timeline(plan: Plan) -> Plan:
    """Return a copy whose start and end dates span all of its flights."""
    next_plan = _clone(plan)
    _refresh_timeline(next_plan)
    return next_plan


def ensure_plan_block_plans(plan: Plan) -> Plan:
    """
    Give every line item a block plan on the plan's current week grid.

    Existing flags are kept where their week still exists; line items
    without a block plan are seeded from their flight.

    Args:
        plan: Source plan

    Returns:
        Updated copy of the plan
    """
    next_plan = _clone(plan)
    _refresh_timeline(next_plan)
    _realign_all(next_plan)
    logger.info(f"Aligned block plans for {len(next_plan.line_items)} line items in plan {plan.plan_id}")
    return next_plan


def sync_block_plan_to_flight(plan: Plan, line_item_id: str) -> Plan:
    """
    Regenerate a line item's weeks from its flight, then snap the flight to them.

    Used after the flight dates are edited directly. Other line items are
    re-aligned onto the resulting week grid.

    Args:
        plan: Source plan
        line_item_id: Line item whose flight changed

    Returns:
        Updated copy of the plan

    Raises:
        PlanStructureError: If the line item does not exist
        MissingFlightError: If the line item has no flight
    """
    next_plan = _clone(plan)
    line_item, flight = _require_line_item(next_plan, line_item_id)

    _refresh_timeline(next_plan)
    align_block_plan_weeks(next_plan, line_item, flight, False)
    update_flight_from_block_plan(line_item, flight)

    _refresh_timeline(next_plan)
    _realign_all(next_plan)

    logger.info(f"Synced block plan for {line_item_id}: {flight.start_date} to {flight.end_date}")
    return next_plan


def toggle_block_plan_week(plan: Plan, line_item_id: str, week_key: str) -> Plan:
    """
    Flip one week of a line item's schedule.

    The edit is rejected, and the original plan object returned, when it
    would leave the line item with no active week or the week key is not on
    the plan's grid.

    Args:
        plan: Source plan
        line_item_id: Line item to edit
        week_key: ISO start date of the week

    Returns:
        Updated copy, or ``plan`` itself when the toggle is rejected

    Raises:
        PlanStructureError: If the line item does not exist
        MissingFlightError: If the line item has no flight
    """
    next_plan = _clone(plan)
    line_item, flight = _require_line_item(next_plan, line_item_id)

    align_block_plan_weeks(next_plan, line_item, flight, True)
    target = next((week for week in line_item.block_plan.weeks if week.week_start == week_key), None)
    if target is None:
        logger.warning(f"Week {week_key} is not part of plan {plan.plan_id}; toggle ignored")
        return plan

    target.active = not target.active
    if not any(week.active for week in line_item.block_plan.weeks):
        logger.warning(f"Refusing to deactivate the last active week of {line_item_id}")
        return plan

    update_flight_from_block_plan(line_item, flight)
    if _refresh_timeline(next_plan):
        _realign_all(next_plan)

    logger.info(f"Toggled week {week_key} of {line_item_id} to {'active' if target.active else 'inactive'}")
    return next_plan


def _active_days(line_item: LineItem) -> Set[date]:
    days: Set[date] = set()
    if line_item.block_plan is None:
        return days
    for week in line_item.block_plan.weeks:
        if week.active:
            start = parse_iso_date(week.week_start)
            days.update(start + timedelta(days=offset) for offset in range(7))
    return days


def change_plan_week_start(plan: Plan, week_start_day: WeekStartDay) -> Plan:
    """
    Move every line item's schedule onto a new week grid.

    The calendar days that were active under the old grid are re-bucketed
    into the new weeks; a new week is active when most of its days were
    active. A line item that ends up with nothing active is regenerated from
    its flight. Flights and the plan range are then updated from the weeks.

    Args:
        plan: Source plan
        week_start_day: New week start convention

    Returns:
        Updated copy, or ``plan`` itself when the convention is unchanged
    """
    if plan.week_start_day == week_start_day:
        return plan

    next_plan = _clone(plan)
    next_plan.week_start_day = week_start_day
    weeks = _plan_weeks(next_plan)

    for line_item in next_plan.line_items:
        flight = next_plan.find_flight(line_item.flight_id)
        days = _active_days(line_item)
        block_plan = _ensure_container(line_item)
        block_plan.weeks = [
            BlockPlanWeek(
                week_start=week.key,
                active=sum(1 for offset in range(7) if week.start + timedelta(days=offset) in days) >= MAJORITY_DAYS
            )
            for week in weeks
        ]
        if not any(week.active for week in block_plan.weeks):
            align_block_plan_weeks(next_plan, line_item, flight, False)
        update_flight_from_block_plan(line_item, flight)

    if _refresh_timeline(next_plan):
        _realign_all(next_plan)

    logger.info(f"Changed week start of plan {plan.plan_id} to {week_start_day.value}")
    return next_plan
