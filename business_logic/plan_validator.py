"""
Plan validation.

This module checks a plan's tactics, flights and line items for problems
a planner should fix: reversed or out-of-window dates, missing efficiency
estimates for the bid type, budgets under the plan minimum, negative
pricing, and references to records that do not exist. Problems are
returned as issues; nothing is raised.
"""

import logging
import math
from typing import List, Optional
from dataclasses import dataclass, field
from enum import Enum

from models.data_models import BidType, Plan, Tactic

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """Represents a validation issue found during plan validation."""
    severity: ValidationSeverity
    message: str
    field: Optional[str] = None
    record_id: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of plan validation process."""
    is_valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    total_errors: int = 0
    total_warnings: int = 0


ESTIMATE_FIELD_BY_BID_TYPE = {
    BidType.CPM: "est_cpm",
    BidType.CPC: "est_cpc",
    BidType.CPA: "est_cpa",
}


class PlanValidator:
    """
    Validates plans before submission or export.

    Errors block submission; warnings are advisory.
    """

    def validate_plan(self, plan: Plan) -> ValidationResult:
        """
        Validate a whole plan.

        Args:
            plan: Plan to check

        Returns:
            ValidationResult with all issues found
        """
        logger.info(f"Validating plan {plan.plan_id}")
        issues: List[ValidationIssue] = []

        for tactic in plan.tactics:
            issues.extend(self.validate_tactic(tactic, plan))

        issues.extend(self._validate_flights(plan))
        issues.extend(self._validate_line_items(plan))

        result = self._create_validation_result(issues)
        logger.info(
            f"Plan {plan.plan_id} validation finished with "
            f"{result.total_errors} errors and {result.total_warnings} warnings"
        )
        return result

    def validate_tactic(self, tactic: Tactic, plan: Optional[Plan] = None) -> List[ValidationIssue]:
        """
        Validate one tactic.

        Args:
            tactic: Tactic to check
            plan: Owning plan, used for the campaign window and budget minimum

        Returns:
            Issues for this tactic
        """
        issues = []

        if tactic.flight_start > tactic.flight_end:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message="Flight start must be on or before flight end",
                field="flight_start",
                record_id=tactic.tactic_id
            ))

        budget = tactic.budget
        budget_ok = budget is not None and math.isfinite(budget) and budget >= 0
        if not budget_ok:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message="Budget must be a non-negative number",
                field="budget",
                record_id=tactic.tactic_id
            ))

        estimate_field = ESTIMATE_FIELD_BY_BID_TYPE[tactic.bid_type]
        estimate = getattr(tactic, estimate_field)
        if not estimate or estimate <= 0:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                message=f"{tactic.bid_type.value} tactics need an estimated {tactic.bid_type.value}",
                field=estimate_field,
                record_id=tactic.tactic_id
            ))

        if plan is None:
            return issues

        campaign = plan.find_campaign(tactic.campaign_id)
        if campaign and campaign.start_date and campaign.end_date:
            if tactic.flight_start < campaign.start_date or tactic.flight_end > campaign.end_date:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    message=f"{tactic.channel.value} flight is outside campaign window",
                    field="flight_start",
                    record_id=tactic.tactic_id
                ))

        minimum = plan.constraints.min_tactic_budget
        if minimum and budget_ok and budget < minimum:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                message=f"{tactic.channel.value} tactic is below the minimum budget of {minimum:,.2f}",
                field="budget",
                record_id=tactic.tactic_id
            ))

        return issues

    def _validate_flights(self, plan: Plan) -> List[ValidationIssue]:
        issues = []
        for flight in plan.flights:
            if flight.start_date > flight.end_date:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    message="Flight start must be on or before flight end",
                    field="start_date",
                    record_id=flight.flight_id
                ))
            if flight.campaign_id and plan.find_campaign(flight.campaign_id) is None:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    message=f"Flight references unknown campaign {flight.campaign_id}",
                    field="campaign_id",
                    record_id=flight.flight_id
                ))
        return issues

    def _validate_line_items(self, plan: Plan) -> List[ValidationIssue]:
        issues = []
        for line_item in plan.line_items:
            if plan.find_flight(line_item.flight_id) is None:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    message=f"Line item references unknown flight {line_item.flight_id}",
                    field="flight_id",
                    record_id=line_item.line_item_id
                ))
            if line_item.vendor_id and plan.find_vendor(line_item.vendor_id) is None:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    message=f"Line item references unknown vendor {line_item.vendor_id}",
                    field="vendor_id",
                    record_id=line_item.line_item_id
                ))
            for attribute, label in (("rate", "Rate"), ("cost_planned", "Planned cost"),
                                     ("units_planned", "Units")):
                value = getattr(line_item, attribute)
                if value is None or not math.isfinite(value) or value < 0:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        message=f"{label} must be non-negative",
                        field=attribute,
                        record_id=line_item.line_item_id
                    ))
        return issues

    def _create_validation_result(self, issues: List[ValidationIssue]) -> ValidationResult:
        """
        Create a ValidationResult object with summary statistics.

        Args:
            issues: List of validation issues

        Returns:
            ValidationResult object
        """
        total_errors = sum(1 for issue in issues if issue.severity == ValidationSeverity.ERROR)
        total_warnings = sum(1 for issue in issues if issue.severity == ValidationSeverity.WARNING)

        return ValidationResult(
            is_valid=total_errors == 0,
            issues=issues,
            total_errors=total_errors,
            total_warnings=total_warnings
        )

    def get_validation_summary(self, validation_result: ValidationResult) -> str:
        """
        Generate a human-readable summary of validation results.

        Args:
            validation_result: ValidationResult object

        Returns:
            Formatted summary string
        """
        summary_lines = []

        status = "PASSED" if validation_result.is_valid else "FAILED"
        summary_lines.append(f"Validation Status: {status}")

        if validation_result.total_errors > 0:
            summary_lines.append(f"Errors: {validation_result.total_errors}")

        if validation_result.total_warnings > 0:
            summary_lines.append(f"Warnings: {validation_result.total_warnings}")

        if validation_result.issues:
            summary_lines.append("\nIssues:")
            for issue in validation_result.issues:
                prefix = issue.severity.value.upper()
                location = f" [{issue.record_id}]" if issue.record_id else ""
                summary_lines.append(f"  {prefix}{location}: {issue.message}")

        return "\n".join(summary_lines)
