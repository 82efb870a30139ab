"""
Error types and user feedback for plan editing.

Structural errors (unknown ids, missing flights, read-only fields, locked
plans) are raised by the core. This module classifies them into structured
notifications for the editing session and keeps a short error history.
"""

import logging
from typing import Dict, Any, Optional
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timedelta

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PlanStructureError(LookupError):
    """Raised when an operation references plan children that do not exist."""
    pass


class MissingFlightError(PlanStructureError):
    """Raised when an operation needs a flight and the line item has none."""
    pass


class ReadOnlyFieldError(PlanStructureError):
    """Raised when writing a field that has no resolver for a channel."""
    pass


class PlanLockedError(Exception):
    """Raised when a lifecycle transition is not allowed from the current status."""
    pass


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for better classification."""
    STRUCTURE_ERROR = "structure_error"
    WORKFLOW_ERROR = "workflow_error"
    DATA_ERROR = "data_error"
    VALIDATION_ERROR = "validation_error"
    SYSTEM_ERROR = "system_error"


@dataclass
class ErrorInfo:
    """Structured error information."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    technical_details: Optional[str] = None
    suggested_action: Optional[str] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


class ErrorHandler:
    """
    Centralized error classification and user feedback.

    Keeps a bounded history of classified errors for monitoring.
    """

    def __init__(self, history_limit: int = 100):
        self.error_history = []
        self.history_limit = history_limit

    def classify_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Classify an error and return appropriate ErrorInfo.

        Args:
            error: The exception to classify
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        if isinstance(error, MissingFlightError):
            return ErrorInfo(
                category=ErrorCategory.STRUCTURE_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Missing flight in {context}: {str(error)}",
                user_message="This line item has no flight assigned.",
                suggested_action="Assign the line item to a flight before editing its schedule.",
                technical_details=str(error)
            )

        if isinstance(error, ReadOnlyFieldError):
            return ErrorInfo(
                category=ErrorCategory.STRUCTURE_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"Read-only field in {context}: {str(error)}",
                user_message="This column is display-only for the selected channel.",
                technical_details=str(error)
            )

        if isinstance(error, PlanStructureError):
            return ErrorInfo(
                category=ErrorCategory.STRUCTURE_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Plan structure error in {context}: {str(error)}",
                user_message="The plan changed underneath this action. Reload the plan and try again.",
                technical_details=str(error)
            )

        if isinstance(error, PlanLockedError):
            return ErrorInfo(
                category=ErrorCategory.WORKFLOW_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"Workflow transition refused in {context}: {str(error)}",
                user_message=str(error),
                suggested_action="Revert the plan to Draft before making this change."
            )

        if isinstance(error, (FileNotFoundError, PermissionError)):
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Plan file error in {context}: {str(error)}",
                user_message="The plan file could not be read.",
                suggested_action="Check the file path and permissions.",
                technical_details=str(error)
            )

        if isinstance(error, (ValueError, TypeError)):
            return ErrorInfo(
                category=ErrorCategory.VALIDATION_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"Invalid value in {context}: {str(error)}",
                user_message=str(error),
                suggested_action="Please correct the highlighted value and try again."
            )

        return ErrorInfo(
            category=ErrorCategory.SYSTEM_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Unexpected error in {context}: {str(error)}",
            user_message="An unexpected error occurred. Please try again or contact support.",
            technical_details=str(error),
            suggested_action="Try again. If the problem persists, contact support with the error details."
        )

    def create_user_notification(self, error_info: ErrorInfo) -> Dict[str, Any]:
        """
        Create a user-friendly notification from error information.

        Args:
            error_info: Structured error information

        Returns:
            Dictionary with notification data for UI display
        """
        notification_type_map = {
            ErrorSeverity.INFO: "info",
            ErrorSeverity.WARNING: "warning",
            ErrorSeverity.ERROR: "error",
            ErrorSeverity.CRITICAL: "error"
        }

        notification = {
            'type': notification_type_map[error_info.severity],
            'title': self._get_error_title(error_info),
            'message': error_info.user_message,
            'timestamp': error_info.timestamp.isoformat(),
            'dismissible': error_info.severity in [ErrorSeverity.INFO, ErrorSeverity.WARNING]
        }

        if error_info.suggested_action:
            notification['action'] = error_info.suggested_action

        if error_info.technical_details and error_info.severity == ErrorSeverity.CRITICAL:
            notification['technical_details'] = error_info.technical_details

        return notification

    def _get_error_title(self, error_info: ErrorInfo) -> str:
        """Get appropriate title for error notification."""
        title_map = {
            ErrorCategory.STRUCTURE_ERROR: "Plan Structure Error",
            ErrorCategory.WORKFLOW_ERROR: "Action Not Allowed",
            ErrorCategory.DATA_ERROR: "Data Error",
            ErrorCategory.VALIDATION_ERROR: "Input Validation Error",
            ErrorCategory.SYSTEM_ERROR: "System Error"
        }

        return title_map.get(error_info.category, "Error")

    def log_error(self, error_info: ErrorInfo, context: str = ""):
        """
        Log error information for monitoring and debugging.

        Args:
            error_info: Structured error information
            context: Additional context
        """
        self.error_history.append(error_info)

        if len(self.error_history) > self.history_limit:
            self.error_history = self.error_history[-self.history_limit:]

        log_message = f"{context}: {error_info.message}"

        if error_info.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif error_info.severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif error_info.severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

    def get_error_statistics(self) -> Dict[str, Any]:
        """
        Get error statistics for monitoring.

        Returns:
            Dictionary with error statistics
        """
        if not self.error_history:
            return {'total_errors': 0}

        category_counts = {}
        severity_counts = {}

        recent_errors = [
            err for err in self.error_history
            if err.timestamp > datetime.now() - timedelta(hours=24)
        ]

        for error in recent_errors:
            category_counts[error.category.value] = category_counts.get(error.category.value, 0) + 1
            severity_counts[error.severity.value] = severity_counts.get(error.severity.value, 0) + 1

        return {
            'total_errors': len(self.error_history),
            'recent_errors_24h': len(recent_errors),
            'category_breakdown': category_counts,
            'severity_breakdown': severity_counts
        }


# Global error handler instance
error_handler = ErrorHandler()
