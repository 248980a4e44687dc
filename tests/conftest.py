from collections.abc import Callable, Iterator
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from expense_tracker.config import Environment, Settings
from expense_tracker.container import Container
from expense_tracker.domain.expenses import Expense, ExpenseCategory, ExpenseStatus
from expense_tracker.domain.users import Actor, User, UserRole
from expense_tracker.repositories.sqlite import (
    SQLiteDatabase,
    SQLiteExpenseRepository,
    SQLiteUserRepository,
)
from expense_tracker.services.analytics import AnalyticsService
from expense_tracker.services.authorization import AuthorizationPolicy
from expense_tracker.services.expenses import ExpenseService
from expense_tracker.services.query import ExpenseQueryBuilder, ExpenseQueryService


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    from expense_tracker.services.auth import PasswordHasher

    monkeypatch.setattr(PasswordHasher, "ITERATIONS", 1_000)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment=Environment.TESTING,
        sqlite_path=Path(":memory:"),
        secret_key="test-secret-key",
    )


@pytest.fixture
def db() -> Iterator[SQLiteDatabase]:
    database = SQLiteDatabase(":memory:", check_same_thread=False)
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def user_repo(db: SQLiteDatabase) -> SQLiteUserRepository:
    return SQLiteUserRepository(db)


@pytest.fixture
def expense_repo(db: SQLiteDatabase) -> SQLiteExpenseRepository:
    return SQLiteExpenseRepository(db)


@pytest.fixture
def admin_user(user_repo: SQLiteUserRepository) -> User:
    user = User(email="admin@example.com", name="Admin Manager", role=UserRole.ADMIN)
    user_repo.add(user)
    return user


@pytest.fixture
def employee_user(user_repo: SQLiteUserRepository) -> User:
    user = User(email="john.doe@example.com", name="John Doe")
    user_repo.add(user)
    return user


@pytest.fixture
def other_employee_user(user_repo: SQLiteUserRepository) -> User:
    user = User(email="jane.smith@example.com", name="Jane Smith")
    user_repo.add(user)
    return user


@pytest.fixture
def admin(admin_user: User) -> Actor:
    return Actor.from_user(admin_user)


@pytest.fixture
def employee(employee_user: User) -> Actor:
    return Actor.from_user(employee_user)


@pytest.fixture
def other_employee(other_employee_user: User) -> Actor:
    return Actor.from_user(other_employee_user)


@pytest.fixture
def policy() -> AuthorizationPolicy:
    return AuthorizationPolicy()


@pytest.fixture
def expense_service(
    expense_repo: SQLiteExpenseRepository,
    user_repo: SQLiteUserRepository,
    policy: AuthorizationPolicy,
    settings: Settings,
) -> ExpenseService:
    return ExpenseService(expense_repo, user_repo, policy, settings)


@pytest.fixture
def query_service(
    expense_repo: SQLiteExpenseRepository, policy: AuthorizationPolicy
) -> ExpenseQueryService:
    return ExpenseQueryService(expense_repo, policy, ExpenseQueryBuilder())


@pytest.fixture
def analytics_service(
    expense_repo: SQLiteExpenseRepository,
    user_repo: SQLiteUserRepository,
    policy: AuthorizationPolicy,
) -> AnalyticsService:
    return AnalyticsService(expense_repo, user_repo, policy)


@pytest.fixture
def container(settings: Settings, db: SQLiteDatabase) -> Container:
    return Container(settings=settings, database=db)


@pytest.fixture
def make_expense(expense_repo: SQLiteExpenseRepository) -> Callable[..., Expense]:
    """Insert an expense straight into the store, bypassing the service.

    ``created_at`` advances one second per call so newest-first ordering is
    deterministic.
    """
    base = datetime(2024, 7, 1, 9, 0, tzinfo=UTC)
    counter = {"n": 0}

    def _make(user: User | Actor, **overrides: Any) -> Expense:
        counter["n"] += 1
        created = base + timedelta(seconds=counter["n"])
        fields: dict[str, Any] = {
            "user_id": user.id,
            "amount": Decimal("25.00"),
            "category": ExpenseCategory.FOOD,
            "date": date(2024, 7, 15),
            "description": "Team lunch",
            "created_at": created,
            "updated_at": created,
        }
        fields.update(overrides)
        if fields.get("status") == ExpenseStatus.REJECTED:
            fields.setdefault("rejection_reason", "Missing receipt documentation")
        expense = Expense(**fields)
        expense_repo.add(expense)
        return expense

    return _make
