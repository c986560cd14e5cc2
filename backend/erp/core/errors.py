"""Error Hierarchy — typed, categorized exceptions for all ERP failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the {ok: false, error_code, message} envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with ErpError base: FastAPI global handler catches all
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
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context attached to an error for logs."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    debug_info: dict[str, Any] | None = None


class ErpError(Exception):
    """Base exception for all ERP errors."""

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

    def extra_payload(self) -> dict:
        """Additional envelope fields. Subclasses override."""
        return {}

    def to_response(self) -> dict:
        """Convert to standardized REST error envelope."""
        return {
            "ok": False,
            "error_code": self.code,
            "message": self.message,
            "category": self.category.value,
            **self.extra_payload(),
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class RequestValidationFailed(ErpError):
    """Request payload or query failed domain validation."""
    def __init__(
        self, message: str, field: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field

    def extra_payload(self) -> dict:
        return {"field": self.field} if self.field else {}


class NoChangesError(ErpError):
    """PATCH body carried nothing to update."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "No se han proporcionado cambios",
            "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class InvalidStatusTransitionError(ErpError):
    """Requested session status is not reachable from the current one."""
    def __init__(
        self, message: str, current: str, requested: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400,
        )
        self.current = current
        self.requested = requested


class AuthenticationRequiredError(ErpError):
    """No valid session cookie."""
    def __init__(
        self, message: str = "Sesión no válida o caducada",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "UNAUTHORIZED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ForbiddenError(ErpError):
    """Authenticated user lacks the role permission."""
    def __init__(
        self, message: str = "No autorizado para realizar esta acción.",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class ResourceNotFoundError(ErpError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str | None = None,
        message: str | None = None, context: ErrorContext | None = None,
    ):
        super().__init__(
            message or f"{resource_type} '{resource_id}' no encontrado",
            "NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class UniqueConstraintError(ErpError):
    """Insert or update collides with an existing row."""
    def __init__(self, entity_label: str, context: ErrorContext | None = None):
        super().__init__(
            f"Ya existe {entity_label} con estos datos",
            "UNIQUE_CONSTRAINT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class ResourceUnavailableError(ErpError):
    """Trainers, rooms or mobile units already booked in the requested range."""
    def __init__(
        self, conflicts: list[dict] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            "Algunos recursos ya están asignados en las fechas seleccionadas.",
            "RESOURCE_UNAVAILABLE", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.conflicts = conflicts or []

    def extra_payload(self) -> dict:
        return {"conflicts": self.conflicts}


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(ErpError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
