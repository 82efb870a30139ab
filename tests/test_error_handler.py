"""
Tests for error classification and user notifications.
"""

import pytest

from business_logic.error_handler import (
    ErrorCategory,
    ErrorHandler,
    ErrorSeverity,
    MissingFlightError,
    PlanLockedError,
    PlanStructureError,
    ReadOnlyFieldError,
)


class TestErrorHandler:
    """Test cases for ErrorHandler class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.handler = ErrorHandler(history_limit=3)

    @pytest.mark.parametrize("error,category,severity", [
        (MissingFlightError("li-1 has no flight"), ErrorCategory.STRUCTURE_ERROR, ErrorSeverity.ERROR),
        (ReadOnlyFieldError("sites"), ErrorCategory.STRUCTURE_ERROR, ErrorSeverity.WARNING),
        (PlanStructureError("li-9 not found"), ErrorCategory.STRUCTURE_ERROR, ErrorSeverity.ERROR),
        (PlanLockedError("Cannot move plan"), ErrorCategory.WORKFLOW_ERROR, ErrorSeverity.WARNING),
        (FileNotFoundError("plan.json"), ErrorCategory.DATA_ERROR, ErrorSeverity.ERROR),
        (ValueError("bad cap"), ErrorCategory.VALIDATION_ERROR, ErrorSeverity.WARNING),
        (RuntimeError("boom"), ErrorCategory.SYSTEM_ERROR, ErrorSeverity.ERROR),
    ])
    def test_classification(self, error, category, severity):
        info = self.handler.classify_error(error, "test")

        assert info.category == category
        assert info.severity == severity

    def test_structure_errors_are_lookup_errors(self):
        assert issubclass(PlanStructureError, LookupError)
        assert issubclass(MissingFlightError, PlanStructureError)

    def test_notification(self):
        info = self.handler.classify_error(PlanLockedError("Cannot move plan from Draft to Approved"), "approve")
        notification = self.handler.create_user_notification(info)

        assert notification['type'] == "warning"
        assert notification['title'] == "Action Not Allowed"
        assert notification['message'] == "Cannot move plan from Draft to Approved"
        assert notification['dismissible'] is True
        assert 'action' in notification

    def test_error_notification_is_not_dismissible(self):
        info = self.handler.classify_error(PlanStructureError("li-9 not found"), "toggle")
        notification = self.handler.create_user_notification(info)

        assert notification['type'] == "error"
        assert notification['dismissible'] is False

    def test_history_is_bounded(self):
        for index in range(5):
            self.handler.log_error(self.handler.classify_error(ValueError(str(index)), "edit"), "edit")

        stats = self.handler.get_error_statistics()

        assert stats['total_errors'] == 3
        assert stats['category_breakdown'] == {"validation_error": 3}

    def test_empty_statistics(self):
        assert self.handler.get_error_statistics() == {'total_errors': 0}
