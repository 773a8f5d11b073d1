"""Error Hierarchy - typed, categorized exceptions for every Wealthlink failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Request errors (400-level) are corrected and resubmitted by the caller
    - Storage errors (500-level) are logged and surfaced as a generic failure
    - to_response() produces the REST envelope; to_event() the SSE envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with WealthlinkError base: one FastAPI handler catches all
    - ErrorContext as dataclass: observability fields without coupling to logging
    - No retries anywhere: every failure is terminal for its request
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
    AUTHENTICATION = "authentication"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    STORAGE = "storage"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    entity_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class WealthlinkError(Exception):
    """Base exception for all Wealthlink errors."""

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

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "user_id": self.context.user_id,
                    "entity_id": self.context.entity_id,
                },
            }
        }

    def to_event(self) -> dict:
        """Convert to SSE error event."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "severity": self.severity.value,
            },
        }


# ─── Request Errors (400-level) ──────────────────────────────────

class ValidationError(WealthlinkError):
    """Missing, malformed or duplicate input (email/phone, receipt)."""
    def __init__(
        self, message: str, field: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class AuthError(WealthlinkError):
    """Missing or invalid credential."""
    def __init__(
        self, message: str = "Authentication required",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "AUTH_ERROR", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class PermissionDeniedError(WealthlinkError):
    """Authenticated caller lacks administrator rights."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Admin access required", "PERMISSION_DENIED",
            ErrorCategory.AUTHENTICATION, ErrorSeverity.WARNING, context, 403,
        )


class NotFoundError(WealthlinkError):
    """Unknown user, transaction, withdrawal or notification id."""
    def __init__(
        self, resource_type: str, resource_id: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.entity_id = ctx.entity_id or resource_id
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class StateError(WealthlinkError):
    """Transition attempted from a state that does not allow it."""
    def __init__(
        self, message: str, current_state: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "INVALID_STATE_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.current_state = current_state


# ─── Infrastructure Errors (500-level) ──────────────────────────

class StorageError(WealthlinkError):
    """Underlying record store read/write failed."""
    def __init__(
        self, message: str, operation: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Storage {operation} failed: {message}",
            "STORAGE_ERROR", ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
