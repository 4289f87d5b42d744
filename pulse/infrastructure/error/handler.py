"""
Error handling module for Pulse.

Failures that the dispatch object demotes instead of raising (fan-out
disconnects and refreshes, per-adapter account fetch failures, fallback
steps of the transaction chain) are reported here so they stay observable.
"""
import logging
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from pulse.core.exceptions import ErrorCode, PulseError


class ErrorSeverity(str, Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_ORDER = [ErrorSeverity.LOW, ErrorSeverity.MEDIUM, ErrorSeverity.HIGH, ErrorSeverity.CRITICAL]

CODE_SEVERITY = {
    ErrorCode.VALIDATION_ERROR: ErrorSeverity.LOW,
    ErrorCode.PROVIDER_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.METHOD_NOT_SUPPORTED: ErrorSeverity.LOW,
    ErrorCode.PROVIDER_CONNECTION_FAILED: ErrorSeverity.MEDIUM,
    ErrorCode.PROVIDER_DISCONNECTION_FAILED: ErrorSeverity.MEDIUM,
    ErrorCode.ACCOUNT_FETCH_FAILED: ErrorSeverity.MEDIUM,
    ErrorCode.TRANSACTION_FETCH_FAILED: ErrorSeverity.MEDIUM,
    ErrorCode.ACCOUNT_REFRESH_FAILED: ErrorSeverity.MEDIUM,
    ErrorCode.CONFIGURATION_ERROR: ErrorSeverity.HIGH,
    ErrorCode.UNKNOWN_ERROR: ErrorSeverity.HIGH,
}


class ErrorDetails(BaseModel):
    """Structured error details for consistency in logging and reporting."""
    timestamp: datetime
    code: ErrorCode
    severity: ErrorSeverity
    message: str
    source: str
    operation: Optional[str] = None
    context: Dict[str, Any] = {}
    stacktrace: Optional[str] = None
    should_notify: bool = False


class ErrorHandler:
    """
    Central error sink: classifies, logs and optionally notifies.

    It never raises; a failing notification callback is logged and dropped.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        notify_callback: Optional[Callable[[ErrorDetails], None]] = None,
        notify_threshold: ErrorSeverity = ErrorSeverity.HIGH,
    ):
        """
        Initialize the error handler.

        Args:
            logger: Logger instance for error logging
            notify_callback: Optional callback function for error notifications
            notify_threshold: Lowest severity that triggers the callback
        """
        self.logger = logger or logging.getLogger(__name__)
        self.notify_callback = notify_callback
        self.notify_threshold = notify_threshold

    def handle_error(
        self,
        exception: BaseException,
        source: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorDetails:
        """
        Process an error: classify it, log it, and notify when severe enough.

        Args:
            exception: The exception that occurred
            source: Provider the failure came from; defaults to the error's own provider
            operation: Dispatch operation during which it occurred
            context: Additional context about the error

        Returns:
            ErrorDetails: Structured details about the error
        """
        error_details = self.categorize_error(exception, source, operation, context or {})
        self.log_error(error_details)

        if self.should_notify(error_details):
            error_details.should_notify = True
            self.notify_error(error_details)

        return error_details

    def categorize_error(
        self,
        exception: BaseException,
        source: Optional[str],
        operation: Optional[str],
        context: Dict[str, Any],
    ) -> ErrorDetails:
        if isinstance(exception, PulseError):
            code = exception.code
            source = source or exception.provider
            operation = operation or exception.method
            context = {
                **{k: v for k, v in (("user_id", exception.user_id), ("account_id", exception.account_id)) if v},
                **exception.details,
                **context,
            }
        else:
            code = ErrorCode.UNKNOWN_ERROR

        stacktrace = None
        if exception.__traceback__ is not None:
            stacktrace = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))

        return ErrorDetails(
            timestamp=datetime.now(timezone.utc),
            code=code,
            severity=CODE_SEVERITY.get(code, ErrorSeverity.HIGH),
            message=str(exception) or type(exception).__name__,
            source=source or "pulse",
            operation=operation,
            context=context,
            stacktrace=stacktrace,
        )

    def should_notify(self, error_details: ErrorDetails) -> bool:
        return SEVERITY_ORDER.index(error_details.severity) >= SEVERITY_ORDER.index(self.notify_threshold)

    def log_error(self, error_details: ErrorDetails) -> None:
        """Log error details at the level matching their severity."""
        log_data = {
            "error_code": error_details.code.value,
            "severity": error_details.severity.value,
            "source": error_details.source,
            "operation": error_details.operation,
        }
        if error_details.context:
            log_data["context"] = error_details.context

        summary = f"[{error_details.source}] {error_details.operation or 'operation'} failed: {error_details.message}"
        if error_details.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(summary, extra={"data": log_data})
        elif error_details.severity == ErrorSeverity.HIGH:
            self.logger.error(summary, extra={"data": log_data})
            if error_details.stacktrace:
                self.logger.debug(f"Stacktrace:\n{error_details.stacktrace}")
        elif error_details.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(summary, extra={"data": log_data})
        else:
            self.logger.info(summary, extra={"data": log_data})

    def notify_error(self, error_details: ErrorDetails) -> None:
        if self.notify_callback:
            try:
                self.notify_callback(error_details)
            except Exception as e:
                # Log but don't raise if notification itself fails
                self.logger.error(
                    f"Failed to send error notification: {str(e)}",
                    extra={"data": {"error_details": error_details.model_dump(mode="json")}},
                )
