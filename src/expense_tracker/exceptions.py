"""Domain exception hierarchy for Expense Tracker.

All domain-specific exceptions inherit from ExpenseTrackerError. Core
operations raise them; the HTTP layer turns them into JSON responses
using ``status_code`` and ``to_dict()``.
"""

from dataclasses import asdict, dataclass
from typing import Any
from uuid import UUID


class ExpenseTrackerError(Exception):
    """Base exception for all Expense Tracker errors."""

    error_code: str = "EXPENSE_TRACKER_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class ValidationError(ExpenseTrackerError):
    """Raised when input fails one or more field-level constraints."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        errors: list[FieldError] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.errors = list(errors or [])

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[FieldError(field, message)])

    @property
    def fields(self) -> set[str]:
        return {e.field for e in self.errors}

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = [asdict(e) for e in self.errors]
        return data


# =============================================================================
# Authentication / Authorization Errors
# =============================================================================


class AuthenticationError(ExpenseTrackerError):
    """Raised when no valid actor is present."""

    error_code = "AUTHENTICATION_ERROR"
    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class AuthorizationError(ExpenseTrackerError):
    """Base exception for authorization errors."""

    error_code = "AUTHORIZATION_ERROR"
    status_code = 403


class PermissionDeniedError(AuthorizationError):
    """Raised when the actor lacks permission for an action."""

    error_code = "PERMISSION_DENIED"

    def __init__(self, action: str, resource: str) -> None:
        super().__init__(
            f"Permission denied: cannot {action} {resource}",
            context={"action": action, "resource": resource},
        )


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(ExpenseTrackerError):
    """Base exception for missing resources."""

    error_code = "NOT_FOUND"
    status_code = 404


class ExpenseNotFoundError(NotFoundError):
    error_code = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: UUID | str) -> None:
        super().__init__(
            f"Expense not found: {expense_id}",
            context={"expense_id": str(expense_id)},
        )


class UserNotFoundError(NotFoundError):
    error_code = "USER_NOT_FOUND"

    def __init__(self, user_id: UUID | str) -> None:
        super().__init__(
            f"User not found: {user_id}",
            context={"user_id": str(user_id)},
        )


# =============================================================================
# Lifecycle State Errors
# =============================================================================


class InvalidStateError(ExpenseTrackerError):
    """Raised when an operation conflicts with the expense lifecycle state."""

    error_code = "INVALID_STATE"
    status_code = 409


class ExpenseNotPendingError(InvalidStateError):
    """Raised when editing or deleting an expense that is no longer pending."""

    error_code = "EXPENSE_NOT_PENDING"

    def __init__(self, expense_id: UUID | str, action: str, status: str) -> None:
        super().__init__(
            f"Only pending expenses can be {action}",
            context={"expense_id": str(expense_id), "status": status},
        )


class ExpenseAlreadyProcessedError(InvalidStateError):
    """Raised when transitioning an expense that already left PENDING."""

    error_code = "EXPENSE_ALREADY_PROCESSED"

    def __init__(self, expense_id: UUID | str, status: str) -> None:
        super().__init__(
            "Expense has already been processed",
            context={"expense_id": str(expense_id), "status": status},
        )


# =============================================================================
# User Errors
# =============================================================================


class DuplicateUserError(ExpenseTrackerError):
    """Raised when registering an email that is already taken."""

    error_code = "DUPLICATE_USER"
    status_code = 409

    def __init__(self, email: str) -> None:
        super().__init__(
            "User with this email already exists",
            context={"email": email},
        )


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(ExpenseTrackerError):
    """Store or infrastructure failure not attributable to caller input."""

    error_code = "DATABASE_ERROR"
    status_code = 500


class DatabaseConnectionError(DatabaseError):
    error_code = "DATABASE_CONNECTION_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(f"Database connection failed: {message}")
