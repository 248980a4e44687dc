"""Tests for expense and account field validation."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from expense_tracker.domain.expenses import ExpenseCategory, ExpenseStatus
from expense_tracker.exceptions import FieldError, ValidationError
from expense_tracker.services.validation import (
    parse_date,
    validate_email,
    validate_expense_fields,
    validate_name,
    validate_password,
    validate_rejection_reason,
    validate_target_status,
)

TODAY = date(2024, 7, 20)
MAX = Decimal("50000")


def _valid(**overrides):
    data = {
        "amount": "25.50",
        "category": "FOOD",
        "description": "Team lunch",
        "date": "2024-07-15",
        "receipt_url": "https://receipts.example.com/1.pdf",
    }
    data.update(overrides)
    return data


def _messages(exc: ValidationError) -> dict[str, str]:
    return {e.field: e.message for e in exc.errors}


class TestValidateExpenseFields:
    def test_normalizes_valid_input(self) -> None:
        result = validate_expense_fields(_valid(), max_amount=MAX, today=TODAY)

        assert result == {
            "amount": Decimal("25.50"),
            "category": ExpenseCategory.FOOD,
            "description": "Team lunch",
            "date": date(2024, 7, 15),
            "receipt_url": "https://receipts.example.com/1.pdf",
        }

    def test_accepts_numeric_amount(self) -> None:
        result = validate_expense_fields(_valid(amount=42), max_amount=MAX, today=TODAY)

        assert result["amount"] == Decimal("42.00")

    def test_empty_optional_strings_become_none(self) -> None:
        result = validate_expense_fields(
            _valid(description="", receipt_url=""), max_amount=MAX, today=TODAY
        )

        assert result["description"] is None
        assert result["receipt_url"] is None

    def test_amount_required(self) -> None:
        data = _valid()
        del data["amount"]

        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(data, max_amount=MAX, today=TODAY)

        assert _messages(exc_info.value)["amount"] == "Amount is required"

    @pytest.mark.parametrize("amount", [0, -5, "abc", "NaN", True])
    def test_amount_must_be_positive_number(self, amount) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(_valid(amount=amount), max_amount=MAX, today=TODAY)

        assert _messages(exc_info.value)["amount"] == "Amount must be a positive number"

    def test_amount_ceiling(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(_valid(amount="50000.01"), max_amount=MAX, today=TODAY)

        assert _messages(exc_info.value)["amount"] == "Amount cannot exceed $50,000"

    def test_amount_at_ceiling_is_allowed(self) -> None:
        result = validate_expense_fields(_valid(amount="50000"), max_amount=MAX, today=TODAY)

        assert result["amount"] == Decimal("50000.00")

    def test_amount_precision(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(_valid(amount="10.001"), max_amount=MAX, today=TODAY)

        assert (
            _messages(exc_info.value)["amount"]
            == "Amount cannot have more than 2 decimal places"
        )

    def test_invalid_category(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(_valid(category="GROCERIES"), max_amount=MAX, today=TODAY)

        assert _messages(exc_info.value)["category"] == "Please select a valid category"

    def test_description_too_long(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(
                _valid(description="x" * 501), max_amount=MAX, today=TODAY
            )

        assert (
            _messages(exc_info.value)["description"]
            == "Description cannot exceed 500 characters"
        )

    def test_bad_date_format(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(_valid(date="15/07/2024"), max_amount=MAX, today=TODAY)

        assert (
            _messages(exc_info.value)["date"] == "Date must be in ISO format (YYYY-MM-DD)"
        )

    def test_future_date(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(_valid(date="2024-07-21"), max_amount=MAX, today=TODAY)

        assert _messages(exc_info.value)["date"] == "Date cannot be in the future"

    def test_today_is_allowed(self) -> None:
        result = validate_expense_fields(_valid(date="2024-07-20"), max_amount=MAX, today=TODAY)

        assert result["date"] == TODAY

    def test_invalid_receipt_url(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(
                _valid(receipt_url="not a url"), max_amount=MAX, today=TODAY
            )

        assert _messages(exc_info.value)["receipt_url"] == "Receipt URL must be a valid URL"

    def test_collects_every_error(self) -> None:
        data = {"amount": -1, "category": "NOPE", "date": "2999-01-01"}

        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(data, max_amount=MAX, today=TODAY)

        assert exc_info.value.fields == {"amount", "category", "date"}

    def test_partial_checks_only_supplied_fields(self) -> None:
        result = validate_expense_fields(
            {"amount": "99.99"}, max_amount=MAX, today=TODAY, partial=True
        )

        assert result == {"amount": Decimal("99.99")}

    def test_partial_rejects_non_editable_fields(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(
                {"status": "APPROVED", "user_id": "x"},
                max_amount=MAX,
                today=TODAY,
                partial=True,
            )

        assert exc_info.value.fields == {"status", "user_id"}

    def test_ceiling_comes_from_argument(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(
                _valid(amount="150"), max_amount=Decimal("100"), today=TODAY
            )

        assert _messages(exc_info.value)["amount"] == "Amount cannot exceed $100"


class TestTransitionInputs:
    @pytest.mark.parametrize("value", ["APPROVED", ExpenseStatus.REJECTED])
    def test_valid_targets(self, value) -> None:
        assert validate_target_status(value) in (
            ExpenseStatus.APPROVED,
            ExpenseStatus.REJECTED,
        )

    @pytest.mark.parametrize("value", ["PENDING", "CANCELLED", None])
    def test_invalid_targets(self, value) -> None:
        with pytest.raises(ValidationError):
            validate_target_status(value)

    def test_rejection_reason_required(self) -> None:
        with pytest.raises(ValidationError):
            validate_rejection_reason(None)
        with pytest.raises(ValidationError):
            validate_rejection_reason("   ")

    def test_rejection_reason_length(self) -> None:
        with pytest.raises(ValidationError):
            validate_rejection_reason("too short")
        with pytest.raises(ValidationError):
            validate_rejection_reason("x" * 501)

        assert validate_rejection_reason("Missing receipt documentation") == (
            "Missing receipt documentation"
        )


class TestAccountValidators:
    def test_email_is_lowercased(self) -> None:
        errors: list[FieldError] = []

        assert validate_email("John.Doe@Example.com", errors) == "john.doe@example.com"
        assert errors == []

    def test_invalid_email(self) -> None:
        errors: list[FieldError] = []
        validate_email("not-an-email", errors)

        assert [e.field for e in errors] == ["email"]

    @pytest.mark.parametrize("name", ["J", "x" * 51])
    def test_name_length(self, name: str) -> None:
        errors: list[FieldError] = []
        validate_name(name, errors)

        assert [e.field for e in errors] == ["name"]

    @pytest.mark.parametrize("password", ["Ab1", "alllowercase1", "NoDigitsHere"])
    def test_weak_passwords(self, password: str) -> None:
        errors: list[FieldError] = []
        validate_password(password, errors)

        assert len(errors) == 1

    def test_strong_password(self) -> None:
        errors: list[FieldError] = []
        validate_password("Password123", errors)

        assert errors == []


class TestParseDate:
    def test_parses_iso_datetime_string(self) -> None:
        assert parse_date("2024-07-15T12:00:00Z") == date(2024, 7, 15)

    def test_offset_string_uses_utc_date(self) -> None:
        assert parse_date("2024-03-01T02:00:00+05:00") == date(2024, 2, 29)

    def test_aware_datetime_uses_utc_date(self) -> None:
        value = datetime(2024, 7, 15, 20, 0, tzinfo=timezone(timedelta(hours=-7)))

        assert parse_date(value) == date(2024, 7, 16)

    def test_naive_datetime_keeps_its_date(self) -> None:
        assert parse_date(datetime(2024, 7, 15, 23, 30)) == date(2024, 7, 15)

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_date("yesterday")
