"""
Plan Editor Controller - Orchestrates a single plan editing session.

This module ties the block plan, allocation, field editing and workflow
operations to an undo/redo history so an editing surface can drive a plan
through one object.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from models.data_models import Plan, WeekStartDay
from .block_plan_matrix import BlockPlanMatrix, MatrixOptions, build_block_plan_matrix
from .block_plan_sync import change_plan_week_start, ensure_plan_block_plans, toggle_block_plan_week
from .budget_allocator import AllocationStrategy, BudgetAllocator
from .error_handler import ErrorCategory, ErrorInfo, ErrorSeverity, error_handler
from .field_resolvers import build_field_context, set_field_value, validate_field
from .plan_builders import add_flighting, duplicate_flighting, remove_flighting
from .plan_history import PlanHistory
from .plan_metrics import PlanTotals, build_pacing_warnings, calculate_plan_totals
from .plan_validator import PlanValidator, ValidationResult
from .plan_workflow import (
    approve_plan,
    archive_plan,
    duplicate_plan,
    is_editable,
    locked_message,
    reject_plan,
    revert_to_draft,
    submit_plan,
)
from config.settings import config_manager

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ControllerResult = Tuple[bool, Plan, str, Optional[Dict[str, Any]]]


class PlanEditorController:
    """
    Main controller for a plan editing session.

    Holds the current plan and its history. Every operation returns
    (success, plan, message, notification); the plan returned is always
    the session's current plan after the operation.
    """

    def __init__(self, plan: Plan, history_capacity: Optional[int] = None,
                 precision: Optional[int] = None):
        """
        Initialize the controller.

        Args:
            plan: Plan to edit
            history_capacity: Undo depth, defaults to the configured capacity
            precision: Money rounding for allocations, defaults to the configured precision
        """
        capacity = history_capacity or config_manager.get_history_capacity()
        money_precision = precision if precision is not None else config_manager.load_config().money_precision

        self.plan = ensure_plan_block_plans(plan) if plan.line_items else plan
        self.history = PlanHistory(self.plan, capacity)
        self.budget_allocator = BudgetAllocator(money_precision)
        self.plan_validator = PlanValidator()

        logger.info(f"PlanEditorController initialized for plan {plan.plan_id}")

    # Session plumbing

    def load_plan(self, plan: Plan) -> None:
        """Replace the session plan and start a fresh history."""
        self.plan = ensure_plan_block_plans(plan) if plan.line_items else plan
        self.history.reset(self.plan)
        logger.info(f"Loaded plan {plan.plan_id} into editing session")

    def _commit(self, next_plan: Plan, message: str) -> ControllerResult:
        if next_plan is self.plan or next_plan == self.plan:
            return False, self.plan, "No change applied.", None
        self.plan = next_plan
        self.history.record(next_plan)
        return True, self.plan, message, None

    def _failure(self, error: Exception, context: str) -> ControllerResult:
        error_info = error_handler.classify_error(error, context)
        error_handler.log_error(error_info, context)
        notification = error_handler.create_user_notification(error_info)
        return False, self.plan, error_info.user_message, notification

    def _locked(self, context: str) -> Optional[ControllerResult]:
        """Refusal result when the plan cannot be edited, else None."""
        if is_editable(self.plan):
            return None
        message = locked_message(self.plan)
        logger.warning(f"Refused {context} on plan {self.plan.plan_id}: {message}")
        error_info = ErrorInfo(
            category=ErrorCategory.WORKFLOW_ERROR,
            severity=ErrorSeverity.WARNING,
            message=f"{context} refused while plan is {self.plan.status.value}",
            user_message=message,
            suggested_action="Revert the plan to Draft before making this change."
        )
        return False, self.plan, message, error_handler.create_user_notification(error_info)

    # Editing operations

    def apply_allocation(self, strategy: AllocationStrategy, **kwargs) -> ControllerResult:
        """
        Run a budget allocation and write the result back into the plan's tactics.

        Args:
            strategy: Allocation operation
            **kwargs: Passed to BudgetAllocator.apply (increment, cap_share)

        Returns:
            Tuple of (success, plan, status message, user_notification)
        """
        refusal = self._locked("allocation")
        if refusal:
            return refusal

        try:
            result = self.budget_allocator.apply(
                self.plan.tactics, strategy, self.plan.constraints, **kwargs
            )
            next_plan = replace(self.plan, tactics=result.tactics)
            message = f"Applied {strategy.value.replace('_', ' ')} to {len(result.tactics)} tactics"
            if result.notes:
                message = f"{message}. {' '.join(result.notes)}"
            return self._commit(next_plan, message)
        except Exception as e:
            return self._failure(e, "budget allocation")

    def toggle_week(self, line_item_id: str, week_key: str) -> ControllerResult:
        refusal = self._locked("week toggle")
        if refusal:
            return refusal
        try:
            next_plan = toggle_block_plan_week(self.plan, line_item_id, week_key)
            if next_plan is self.plan:
                return False, self.plan, "Week change not applied. A line item needs at least one active week on the plan grid.", None
            return self._commit(next_plan, f"Toggled week {week_key}")
        except Exception as e:
            return self._failure(e, "week toggle")

    def change_week_start(self, week_start_day: WeekStartDay) -> ControllerResult:
        refusal = self._locked("week start change")
        if refusal:
            return refusal
        try:
            return self._commit(
                change_plan_week_start(self.plan, week_start_day),
                f"Weeks now start on {week_start_day.value}"
            )
        except Exception as e:
            return self._failure(e, "week start change")

    def set_field(self, line_item_id: str, field_id: str, value: Any) -> ControllerResult:
        """
        Validate and write one flighting column.

        Validation messages are returned as a failed result; nothing is written.
        """
        refusal = self._locked("field edit")
        if refusal:
            return refusal
        try:
            context = build_field_context(self.plan, line_item_id)
            channel = context.line_item.channel
            problem = validate_field(channel, context, field_id, value)
            if problem:
                error_info = ErrorInfo(
                    category=ErrorCategory.VALIDATION_ERROR,
                    severity=ErrorSeverity.WARNING,
                    message=f"{field_id} on {line_item_id}: {problem}",
                    user_message=problem
                )
                return False, self.plan, problem, error_handler.create_user_notification(error_info)

            updated = set_field_value(channel, context, field_id, value)
            return self._commit(updated.plan, f"Updated {field_id}")
        except Exception as e:
            return self._failure(e, "field edit")

    def add_flighting(self, channel, today=None) -> ControllerResult:
        refusal = self._locked("add flighting")
        if refusal:
            return refusal
        try:
            return self._commit(add_flighting(self.plan, channel, today), f"Added {channel.value} flighting")
        except Exception as e:
            return self._failure(e, "add flighting")

    def duplicate_flighting(self, line_item_id: str) -> ControllerResult:
        refusal = self._locked("duplicate flighting")
        if refusal:
            return refusal
        try:
            return self._commit(duplicate_flighting(self.plan, line_item_id), f"Duplicated {line_item_id}")
        except Exception as e:
            return self._failure(e, "duplicate flighting")

    def remove_flighting(self, line_item_id: str) -> ControllerResult:
        refusal = self._locked("remove flighting")
        if refusal:
            return refusal
        try:
            return self._commit(remove_flighting(self.plan, line_item_id), f"Removed {line_item_id}")
        except Exception as e:
            return self._failure(e, "remove flighting")

    # History

    def undo(self) -> ControllerResult:
        snapshot = self.history.undo()
        if snapshot is None:
            return False, self.plan, "Nothing to undo.", None
        self.plan = snapshot
        # Echo the restored plan so the history leaves its applying state
        self.history.record(self.plan)
        return True, self.plan, "Undid last change", None

    def redo(self) -> ControllerResult:
        snapshot = self.history.redo()
        if snapshot is None:
            return False, self.plan, "Nothing to redo.", None
        self.plan = snapshot
        self.history.record(self.plan)
        return True, self.plan, "Redid last change", None

    # Workflow

    def _transition(self, action, actor: str, comment: Optional[str], context: str) -> ControllerResult:
        try:
            next_plan = action(self.plan, actor, comment)
        except Exception as e:
            return self._failure(e, f"plan {context}")
        self.plan = next_plan
        # Undo never crosses a lifecycle change
        self.history.reset(self.plan)
        return True, self.plan, f"Plan {context}", None

    def submit(self, actor: str, comment: Optional[str] = None) -> ControllerResult:
        """Submit the plan for approval; refused when validation finds errors."""
        validation = self.validate()
        if not validation.is_valid:
            summary = self.plan_validator.get_validation_summary(validation)
            error_info = ErrorInfo(
                category=ErrorCategory.VALIDATION_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Submission blocked for plan {self.plan.plan_id}",
                user_message=f"Fix {validation.total_errors} validation error(s) before submitting.",
                technical_details=summary
            )
            error_handler.log_error(error_info, "plan submission")
            return False, self.plan, error_info.user_message, error_handler.create_user_notification(error_info)
        return self._transition(submit_plan, actor, comment, "submitted")

    def approve(self, actor: str, comment: Optional[str] = None) -> ControllerResult:
        return self._transition(approve_plan, actor, comment, "approved")

    def reject(self, actor: str, comment: Optional[str] = None) -> ControllerResult:
        return self._transition(reject_plan, actor, comment, "rejected")

    def revert_to_draft(self, actor: str, comment: Optional[str] = None) -> ControllerResult:
        return self._transition(revert_to_draft, actor, comment, "reverted to draft")

    def archive(self, actor: str, comment: Optional[str] = None) -> ControllerResult:
        return self._transition(archive_plan, actor, comment, "archived")

    def duplicate(self, actor: str) -> Plan:
        """Return a Draft copy of the current plan; the session keeps editing the original."""
        return duplicate_plan(self.plan, actor)

    # Read-only views

    def block_plan_matrix(self, options: Optional[MatrixOptions] = None) -> BlockPlanMatrix:
        if options is None:
            options = MatrixOptions(timegrain=config_manager.load_config().default_timegrain)
        return build_block_plan_matrix(self.plan, options)

    def totals(self) -> PlanTotals:
        return calculate_plan_totals(self.plan)

    def warnings(self) -> List[str]:
        return build_pacing_warnings(self.plan)

    def validate(self) -> ValidationResult:
        return self.plan_validator.validate_plan(self.plan)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo
