"""Tests for the SQLite repositories."""

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from expense_tracker.domain.expenses import ExpenseCategory, ExpenseStatus
from expense_tracker.domain.queries import ExpenseFilter
from expense_tracker.domain.users import User, UserRole
from expense_tracker.exceptions import DatabaseError, DuplicateUserError
from expense_tracker.repositories.sqlite import SQLiteDatabase


class TestSQLiteDatabase:
    def test_initialize_is_idempotent(self, db: SQLiteDatabase) -> None:
        db.initialize()

        tables = {
            row[0]
            for row in db.get_connection()
            .execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            .fetchall()
        }
        assert {"users", "expenses"} <= tables

    def test_file_database(self, tmp_path) -> None:
        db = SQLiteDatabase(tmp_path / "expenses.db")
        db.initialize()
        db.close()

        assert (tmp_path / "expenses.db").exists()


class TestSQLiteUserRepository:
    def test_add_and_get(self, user_repo) -> None:
        user = User(email="a@example.com", name="Alice", role=UserRole.ADMIN)
        user_repo.add(user)

        assert user_repo.get(user.id) == user
        assert user_repo.get_by_email("A@Example.com") == user

    def test_duplicate_email(self, user_repo) -> None:
        user_repo.add(User(email="a@example.com", name="Alice"))

        with pytest.raises(DuplicateUserError):
            user_repo.add(User(email="a@example.com", name="Other Alice"))

    def test_get_many(self, user_repo, employee_user, admin_user) -> None:
        users = user_repo.get_many([employee_user.id, admin_user.id, uuid4()])

        assert set(users) == {employee_user.id, admin_user.id}
        assert user_repo.get_many([]) == {}

    def test_update(self, user_repo, employee_user) -> None:
        employee_user.rename("Johnny Doe")
        user_repo.update(employee_user)

        assert user_repo.get(employee_user.id).name == "Johnny Doe"

    def test_count_expenses(self, user_repo, make_expense, employee_user) -> None:
        make_expense(employee_user)
        make_expense(employee_user)

        assert user_repo.count_expenses(employee_user.id) == 2


class TestSQLiteExpenseRepository:
    def test_round_trip_preserves_decimal(self, expense_repo, make_expense, employee_user) -> None:
        expense = make_expense(employee_user, amount=Decimal("1234.56"))

        stored = expense_repo.get(expense.id)

        assert stored.amount == Decimal("1234.56")
        assert stored == expense

    def test_newest_first(self, expense_repo, make_expense, employee_user) -> None:
        first = make_expense(employee_user, amount=Decimal("9.99"))
        second = make_expense(employee_user, amount=Decimal("100.00"))
        third = make_expense(employee_user, amount=Decimal("20.00"))

        result = expense_repo.list(ExpenseFilter())

        assert [e.id for e in result] == [third.id, second.id, first.id]

    def test_skip_beyond_integer_range(self, expense_repo, make_expense, employee_user) -> None:
        make_expense(employee_user)

        with pytest.raises(DatabaseError):
            expense_repo.list(ExpenseFilter(skip=2**64, limit=10))

    def test_count_ignores_pagination(self, expense_repo, make_expense, employee_user) -> None:
        for _ in range(5):
            make_expense(employee_user)

        expense_filter = ExpenseFilter(skip=2, limit=2)

        assert len(expense_repo.list(expense_filter)) == 2
        assert expense_repo.count(expense_filter) == 5
        assert len(expense_repo.list_all(expense_filter)) == 5

    def test_update_if_pending(self, expense_repo, make_expense, employee_user) -> None:
        expense = make_expense(employee_user)
        expense.apply_changes({"amount": Decimal("77.00"), "category": ExpenseCategory.OTHER})

        assert expense_repo.update_if_pending(expense) is True
        assert expense_repo.get(expense.id).category == ExpenseCategory.OTHER

    def test_update_if_pending_refuses_processed(
        self, expense_repo, make_expense, employee_user
    ) -> None:
        expense = make_expense(employee_user, status=ExpenseStatus.APPROVED)
        expense.apply_changes({"amount": Decimal("1.00")})

        assert expense_repo.update_if_pending(expense) is False
        assert expense_repo.get(expense.id).amount == Decimal("25.00")

    def test_delete_if_pending_checks_owner(
        self, expense_repo, make_expense, employee_user
    ) -> None:
        expense = make_expense(employee_user)

        assert expense_repo.delete_if_pending(expense.id, uuid4()) is False
        assert expense_repo.delete_if_pending(expense.id, employee_user.id) is True
        assert expense_repo.get(expense.id) is None

    def test_transition_is_compare_and_set(
        self, expense_repo, make_expense, employee_user, admin_user
    ) -> None:
        expense = make_expense(employee_user)
        now = datetime(2024, 7, 20, 12, 0, tzinfo=UTC)

        first = expense_repo.transition_status(
            expense.id, ExpenseStatus.APPROVED, None, admin_user.id, now
        )
        second = expense_repo.transition_status(
            expense.id,
            ExpenseStatus.REJECTED,
            "Missing receipt documentation",
            admin_user.id,
            now,
        )

        stored = expense_repo.get(expense.id)
        assert (first, second) == (True, False)
        assert stored.status == ExpenseStatus.APPROVED
        assert stored.processed_at == now
        assert stored.processed_by == admin_user.id

    def test_rejected_without_reason_violates_schema(
        self, expense_repo, make_expense, employee_user, admin_user
    ) -> None:
        expense = make_expense(employee_user)

        with pytest.raises(DatabaseError):
            expense_repo.transition_status(
                expense.id,
                ExpenseStatus.REJECTED,
                None,
                admin_user.id,
                datetime.now(UTC),
            )

    def test_date_filters_inclusive(self, expense_repo, make_expense, employee_user) -> None:
        make_expense(employee_user, date=date(2024, 7, 1))
        make_expense(employee_user, date=date(2024, 7, 2))
        make_expense(employee_user, date=date(2024, 7, 3))

        result = expense_repo.list(
            ExpenseFilter(date_from=date(2024, 7, 1), date_to=date(2024, 7, 2))
        )

        assert sorted(e.date for e in result) == [date(2024, 7, 1), date(2024, 7, 2)]
