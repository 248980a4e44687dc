"""Field-level validation for expense and account input.

Validators collect every problem before raising, so a caller gets one
``ValidationError`` listing all offending fields rather than the first one.
"""

import re
from collections.abc import Mapping
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil.parser import isoparse  # type: ignore[import-untyped]
from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from expense_tracker.domain.expenses import (
    EDITABLE_FIELDS,
    ExpenseCategory,
    ExpenseStatus,
)
from expense_tracker.exceptions import FieldError, ValidationError

MAX_DESCRIPTION_LENGTH = 500
MIN_REJECTION_REASON_LENGTH = 10
MAX_REJECTION_REASON_LENGTH = 500
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 6

_CENT = Decimal("0.01")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


def parse_date(value: Any) -> date:
    """Coerce a date, datetime or ISO-8601 string into a calendar date.

    Offset-aware datetimes are read as their UTC calendar date.

    Raises:
        ValueError: If the value cannot be read as a date.
    """
    if isinstance(value, str) and value.strip():
        value = isoparse(value.strip())
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    if isinstance(value, date):
        return value
    raise ValueError(f"Not a date: {value!r}")


def _validate_amount(
    value: Any, max_amount: Decimal, errors: list[FieldError]
) -> Decimal | None:
    if value is None or value == "":
        errors.append(FieldError("amount", "Amount is required"))
        return None
    if isinstance(value, bool):
        errors.append(FieldError("amount", "Amount must be a positive number"))
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        errors.append(FieldError("amount", "Amount must be a positive number"))
        return None
    if not amount.is_finite() or amount <= 0:
        errors.append(FieldError("amount", "Amount must be a positive number"))
        return None
    if amount > max_amount:
        errors.append(FieldError("amount", f"Amount cannot exceed ${max_amount:,}"))
        return None
    if amount.as_tuple().exponent < -2:  # type: ignore[operator]
        errors.append(
            FieldError("amount", "Amount cannot have more than 2 decimal places")
        )
        return None
    return amount.quantize(_CENT)


def _validate_category(value: Any, errors: list[FieldError]) -> ExpenseCategory | None:
    if value is None or value == "":
        errors.append(FieldError("category", "Category is required"))
        return None
    try:
        return ExpenseCategory(value)
    except ValueError:
        errors.append(FieldError("category", "Please select a valid category"))
        return None


def _validate_description(value: Any, errors: list[FieldError]) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append(FieldError("description", "Description must be a string"))
        return None
    value = value.strip()
    if len(value) > MAX_DESCRIPTION_LENGTH:
        errors.append(
            FieldError("description", "Description cannot exceed 500 characters")
        )
        return None
    return value or None


def _validate_date(value: Any, today: date, errors: list[FieldError]) -> date | None:
    if value is None or value == "":
        errors.append(FieldError("date", "Date is required"))
        return None
    try:
        parsed = parse_date(value)
    except (ValueError, OverflowError):
        errors.append(FieldError("date", "Date must be in ISO format (YYYY-MM-DD)"))
        return None
    if parsed > today:
        errors.append(FieldError("date", "Date cannot be in the future"))
        return None
    return parsed


def _validate_receipt_url(value: Any, errors: list[FieldError]) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append(FieldError("receipt_url", "Receipt URL must be a valid URL"))
        return None
    value = value.strip()
    if not value:
        return None
    try:
        _URL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        errors.append(FieldError("receipt_url", "Receipt URL must be a valid URL"))
        return None
    return value


def validate_expense_fields(
    data: Mapping[str, Any],
    *,
    max_amount: Decimal,
    today: date | None = None,
    partial: bool = False,
) -> dict[str, Any]:
    """Validate and normalize expense input.

    With ``partial=True`` only the supplied keys are checked and returned
    (an update patch), and keys outside the editable set are errors. On
    create, unknown keys are ignored.

    Raises:
        ValidationError: Listing every failing field.
    """
    today = today or date.today()
    errors: list[FieldError] = []
    cleaned: dict[str, Any] = {}

    if partial:
        for name in sorted(set(data) - EDITABLE_FIELDS):
            errors.append(FieldError(name, "Field cannot be updated"))

    def supplied(name: str) -> bool:
        return not partial or name in data

    if supplied("amount"):
        cleaned["amount"] = _validate_amount(data.get("amount"), max_amount, errors)
    if supplied("category"):
        cleaned["category"] = _validate_category(data.get("category"), errors)
    if supplied("description"):
        cleaned["description"] = _validate_description(data.get("description"), errors)
    if supplied("date"):
        cleaned["date"] = _validate_date(data.get("date"), today, errors)
    if supplied("receipt_url"):
        cleaned["receipt_url"] = _validate_receipt_url(data.get("receipt_url"), errors)

    if errors:
        raise ValidationError(errors=errors)
    return cleaned


def validate_target_status(value: Any) -> ExpenseStatus:
    try:
        status = ExpenseStatus(value)
    except ValueError:
        status = None
    if status not in (ExpenseStatus.APPROVED, ExpenseStatus.REJECTED):
        raise ValidationError.for_field(
            "status", "Status must be either APPROVED or REJECTED"
        )
    return status


def validate_rejection_reason(reason: str | None) -> str:
    if reason is None or not reason.strip():
        raise ValidationError.for_field(
            "rejection_reason",
            "Rejection reason is required when rejecting an expense",
        )
    reason = reason.strip()
    if len(reason) < MIN_REJECTION_REASON_LENGTH:
        raise ValidationError.for_field(
            "rejection_reason", "Rejection reason must be at least 10 characters"
        )
    if len(reason) > MAX_REJECTION_REASON_LENGTH:
        raise ValidationError.for_field(
            "rejection_reason", "Rejection reason cannot exceed 500 characters"
        )
    return reason


def validate_email(email: str, errors: list[FieldError]) -> str:
    email = (email or "").strip().lower()
    if not _EMAIL_RE.match(email):
        errors.append(FieldError("email", "Please provide a valid email address"))
    return email


def validate_name(name: str, errors: list[FieldError]) -> str:
    name = (name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        errors.append(FieldError("name", "Name must be at least 2 characters long"))
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(FieldError("name", "Name cannot exceed 50 characters"))
    return name


def validate_password(
    password: str, errors: list[FieldError], field: str = "password"
) -> None:
    password = password or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(
            FieldError(field, "Password must be at least 6 characters long")
        )
        return
    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)
    if not (has_upper and has_lower and has_digit):
        errors.append(
            FieldError(
                field,
                "Password must contain at least one uppercase letter, "
                "one lowercase letter, and one number",
            )
        )
