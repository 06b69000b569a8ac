"""Error Hierarchy - typed, categorized exceptions for all Timebill failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Business errors (400/404/409) are surfaced verbatim to the user
    - Transport errors are marked retryable so the UI can retry instead of showing them
    - to_envelope() produces the command bridge failure envelope

Design Decisions:
    - Single hierarchy with TimebillError base: the command host catches all of
      them in one place
    - ErrorContext as dataclass: observability fields without coupling to logging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    STATE = "state"
    DATABASE = "database"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    channel: str | None = None
    request_id: str | None = None
    entry_id: int | None = None
    invoice_id: int | None = None
    debug_info: dict[str, Any] | None = None


class TimebillError(Exception):
    """Base exception for all Timebill errors."""

    retryable = False

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_envelope(self) -> dict:
        """Convert to the command bridge failure envelope."""
        return {"success": False, "error": self.message}


# ─── Business Errors (400-level) ────────────────────────────────

class ValidationError(TimebillError):
    """Bad command arguments: invalid rounding unit, empty selection, missing relation."""
    def __init__(
        self, message: str, field: str | None = None, context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class NotFoundError(TimebillError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: object, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(TimebillError):
    """Invariant violation, e.g. a second active timer."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class StateError(TimebillError):
    """Operation invalid for the entity's current state."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_STATE", ErrorCategory.STATE,
            ErrorSeverity.ERROR, context, 409,
        )


class UnknownCommandError(TimebillError):
    """No handler registered for the requested channel."""
    def __init__(self, channel: str, context: ErrorContext | None = None):
        super().__init__(
            f"No handler registered for channel: {channel}",
            "UNKNOWN_COMMAND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.channel = channel


class CommandFailed(TimebillError):
    """Remote command answered with a failure envelope (UI side)."""
    def __init__(self, message: str, channel: str | None = None):
        super().__init__(
            message, "COMMAND_FAILED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, ErrorContext(channel=channel), 400,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class PersistenceError(TimebillError):
    """Store operation failed (constraint violation, driver or connection error)."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "PERSISTENCE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class TransportUnavailable(TimebillError):
    """The command bridge has no usable connection to the host."""

    retryable = True

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "TRANSPORT_UNAVAILABLE", ErrorCategory.TRANSPORT,
            ErrorSeverity.WARNING, context, 503,
        )


class TransportTimeout(TimebillError):
    """No response for a forwarded request within the timeout."""

    retryable = True

    def __init__(self, channel: str, timeout_seconds: float, context: ErrorContext | None = None):
        super().__init__(
            f"Request '{channel}' timed out after {timeout_seconds:g}s",
            "TRANSPORT_TIMEOUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.WARNING, context, 504,
        )
        self.timeout_seconds = timeout_seconds
