"""
Tests for the plan approval workflow.
"""

import pytest

from business_logic.error_handler import PlanLockedError
from business_logic.plan_workflow import (
    approve_plan,
    archive_plan,
    duplicate_plan,
    is_editable,
    locked_message,
    reject_plan,
    revert_to_draft,
    submit_plan,
)
from data.seed import build_seed_plan
from models.data_models import ApprovalAction, PlanStatus


class TestPlanWorkflow:
    """Test lifecycle transitions and audit events."""

    def setup_method(self):
        """Set up test fixtures."""
        self.plan = build_seed_plan()

    def test_submit_then_approve(self):
        submitted = submit_plan(self.plan, "Taylor Planner")
        approved = approve_plan(submitted, "Morgan Lead", "Looks good")

        assert submitted.status == PlanStatus.SUBMITTED
        assert approved.status == PlanStatus.APPROVED
        assert approved.approver == "Morgan Lead"
        assert [event.action for event in approved.audit] == [
            ApprovalAction.CREATED, ApprovalAction.SUBMITTED, ApprovalAction.APPROVED
        ]
        assert approved.audit[-1].comment == "Looks good"

    def test_transition_does_not_modify_input(self):
        submit_plan(self.plan, "Taylor Planner")

        assert self.plan.status == PlanStatus.DRAFT
        assert len(self.plan.audit) == 1

    def test_reject_and_revert(self):
        rejected = reject_plan(submit_plan(self.plan, "Taylor Planner"), "Morgan Lead", "Too much video")
        reverted = revert_to_draft(rejected, "Taylor Planner")

        assert rejected.status == PlanStatus.REJECTED
        assert reverted.status == PlanStatus.DRAFT
        assert reverted.audit[-1].action == ApprovalAction.REVERTED
        assert is_editable(reverted)

    def test_approve_from_draft_is_refused(self):
        with pytest.raises(PlanLockedError):
            approve_plan(self.plan, "Morgan Lead")

    def test_archived_plan_stays_archived(self):
        archived = archive_plan(self.plan, "Taylor Planner")

        assert archived.status == PlanStatus.ARCHIVED
        with pytest.raises(PlanLockedError):
            revert_to_draft(archived, "Taylor Planner")

    def test_submitting_updates_last_modified(self):
        submitted = submit_plan(self.plan, "Taylor Planner")

        assert submitted.last_modified > self.plan.last_modified
        assert submitted.audit[-1].timestamp == submitted.last_modified


class TestLocking:
    """Test edit locks by status."""

    def test_draft_is_editable(self):
        plan = build_seed_plan()

        assert is_editable(plan)
        assert locked_message(plan) is None

    def test_locked_messages(self):
        submitted = submit_plan(build_seed_plan(), "Taylor Planner")
        approved = approve_plan(submitted, "Morgan Lead")

        assert not is_editable(submitted)
        assert locked_message(submitted) == "Plan is submitted for approval. Revert to draft to make changes."
        assert locked_message(approved) == "Plan is approved. Revert to draft to make changes."
        assert locked_message(archive_plan(approved, "Morgan Lead")) == "Plan is archived and cannot be edited."


class TestDuplicatePlan:
    """Test copying plans into new drafts."""

    def test_duplicate_approved_plan(self):
        approved = approve_plan(submit_plan(build_seed_plan(), "Taylor Planner"), "Morgan Lead")
        duplicate = duplicate_plan(approved, "Taylor Planner")

        assert duplicate.plan_id != approved.plan_id
        assert duplicate.plan_id.startswith("plan_")
        assert duplicate.meta.name == "Q4 Launch - AU (Copy)"
        assert duplicate.meta.version == 2
        assert duplicate.status == PlanStatus.DRAFT
        assert duplicate.approver is None
        assert duplicate.audit[-1].action == ApprovalAction.DUPLICATED
        assert duplicate.tactics == approved.tactics
        assert approved.meta.name == "Q4 Launch - AU"
