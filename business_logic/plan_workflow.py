"""
Plan approval workflow.

Plans move Draft -> Submitted -> Approved or Rejected, can be reverted to
Draft for further edits, and can be archived from any state. Every
transition returns a new plan with one audit event appended.
"""

import copy
import logging
from datetime import datetime
from typing import Dict, Optional, Set

from models.data_models import ApprovalAction, ApprovalEvent, Plan, PlanMeta, PlanStatus
from .error_handler import PlanLockedError
from .plan_builders import create_id

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[PlanStatus, Set[PlanStatus]] = {
    PlanStatus.DRAFT: {PlanStatus.SUBMITTED, PlanStatus.ARCHIVED},
    PlanStatus.SUBMITTED: {PlanStatus.APPROVED, PlanStatus.REJECTED, PlanStatus.DRAFT, PlanStatus.ARCHIVED},
    PlanStatus.APPROVED: {PlanStatus.DRAFT, PlanStatus.ARCHIVED},
    PlanStatus.REJECTED: {PlanStatus.DRAFT, PlanStatus.ARCHIVED},
    PlanStatus.ARCHIVED: {PlanStatus.ARCHIVED},
}

ACTION_BY_STATUS: Dict[PlanStatus, ApprovalAction] = {
    PlanStatus.SUBMITTED: ApprovalAction.SUBMITTED,
    PlanStatus.APPROVED: ApprovalAction.APPROVED,
    PlanStatus.REJECTED: ApprovalAction.REJECTED,
    PlanStatus.DRAFT: ApprovalAction.REVERTED,
    PlanStatus.ARCHIVED: ApprovalAction.EDITED,
}


def is_editable(plan: Plan) -> bool:
    """Only Draft plans accept edits."""
    return plan.status == PlanStatus.DRAFT


def locked_message(plan: Plan) -> Optional[str]:
    if plan.status == PlanStatus.SUBMITTED:
        return "Plan is submitted for approval. Revert to draft to make changes."
    if plan.status == PlanStatus.APPROVED:
        return "Plan is approved. Revert to draft to make changes."
    if plan.status != PlanStatus.DRAFT:
        return f"Plan is {plan.status.value.lower()} and cannot be edited."
    return None


def make_event(actor: str, action: ApprovalAction, comment: Optional[str] = None,
               timestamp: Optional[datetime] = None) -> ApprovalEvent:
    return ApprovalEvent(
        event_id=create_id("evt"),
        actor=actor,
        action=action,
        timestamp=timestamp or datetime.now(),
        comment=comment
    )


def transition_plan(plan: Plan, target: PlanStatus, actor: str, comment: Optional[str] = None) -> Plan:
    """
    Move a plan to a new lifecycle status.

    Args:
        plan: Source plan
        target: Status to move to
        actor: Who performed the transition
        comment: Optional note stored on the audit event

    Returns:
        Updated copy of the plan

    Raises:
        PlanLockedError: If the transition is not allowed from the current status
    """
    if target not in ALLOWED_TRANSITIONS[plan.status]:
        logger.warning(f"Refused transition of plan {plan.plan_id} from {plan.status.value} to {target.value}")
        raise PlanLockedError(f"Cannot move plan from {plan.status.value} to {target.value}")

    next_plan = copy.deepcopy(plan)
    next_plan.status = target
    now = datetime.now()
    next_plan.last_modified = now
    if target == PlanStatus.APPROVED:
        next_plan.approver = actor
    next_plan.audit.append(make_event(actor, ACTION_BY_STATUS[target], comment, now))

    logger.info(f"Plan {plan.plan_id} moved from {plan.status.value} to {target.value} by {actor}")
    return next_plan


def submit_plan(plan: Plan, actor: str, comment: Optional[str] = None) -> Plan:
    return transition_plan(plan, PlanStatus.SUBMITTED, actor, comment)


def approve_plan(plan: Plan, actor: str, comment: Optional[str] = None) -> Plan:
    return transition_plan(plan, PlanStatus.APPROVED, actor, comment)


def reject_plan(plan: Plan, actor: str, comment: Optional[str] = None) -> Plan:
    return transition_plan(plan, PlanStatus.REJECTED, actor, comment)


def revert_to_draft(plan: Plan, actor: str, comment: Optional[str] = None) -> Plan:
    return transition_plan(plan, PlanStatus.DRAFT, actor, comment)


def archive_plan(plan: Plan, actor: str, comment: Optional[str] = None) -> Plan:
    return transition_plan(plan, PlanStatus.ARCHIVED, actor, comment)


def duplicate_plan(plan: Plan, actor: str) -> Plan:
    """
    Copy a plan into a new Draft with the next version number.

    The copy keeps the source's audit trail and records a duplicated event.
    """
    next_plan = copy.deepcopy(plan)
    next_plan.plan_id = create_id("plan")
    next_plan.meta = PlanMeta(
        name=f"{plan.meta.name} (Copy)",
        code=plan.meta.code,
        version=plan.meta.version + 1,
        client=plan.meta.client
    )
    next_plan.status = PlanStatus.DRAFT
    next_plan.approver = None
    now = datetime.now()
    next_plan.last_modified = now
    next_plan.audit.append(make_event(actor, ApprovalAction.DUPLICATED, f"Duplicated from {plan.plan_id}", now))

    logger.info(f"Duplicated plan {plan.plan_id} as {next_plan.plan_id}")
    return next_plan
