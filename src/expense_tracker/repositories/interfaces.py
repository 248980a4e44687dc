from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from expense_tracker.domain.expenses import Expense, ExpenseStatus
from expense_tracker.domain.queries import ExpenseFilter
from expense_tracker.domain.users import User


class UserRepository(ABC):
    @abstractmethod
    def add(self, user: User) -> None:
        pass

    @abstractmethod
    def get(self, user_id: UUID) -> User | None:
        pass

    @abstractmethod
    def get_by_email(self, email: str) -> User | None:
        pass

    @abstractmethod
    def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[User]:
        pass

    @abstractmethod
    def update(self, user: User) -> None:
        pass

    @abstractmethod
    def count_expenses(self, user_id: UUID) -> int:
        pass


class ExpenseRepository(ABC):
    @abstractmethod
    def add(self, expense: Expense) -> None:
        pass

    @abstractmethod
    def get(self, expense_id: UUID) -> Expense | None:
        pass

    @abstractmethod
    def list(self, expense_filter: ExpenseFilter) -> list[Expense]:
        """Return one page of matches, newest first, honoring skip/limit."""

    @abstractmethod
    def count(self, expense_filter: ExpenseFilter) -> int:
        """Count all matches, ignoring skip/limit."""

    @abstractmethod
    def list_all(self, expense_filter: ExpenseFilter) -> list[Expense]:
        """Return every match, ignoring skip/limit."""

    @abstractmethod
    def update_if_pending(self, expense: Expense) -> bool:
        """Persist editable fields only if the stored row is still PENDING
        and still owned by ``expense.user_id``. Returns False otherwise."""

    @abstractmethod
    def delete_if_pending(self, expense_id: UUID, user_id: UUID) -> bool:
        pass

    @abstractmethod
    def transition_status(
        self,
        expense_id: UUID,
        status: ExpenseStatus,
        rejection_reason: str | None,
        processed_by: UUID,
        processed_at: datetime,
    ) -> bool:
        """Atomically move a PENDING expense to ``status``.

        Returns False when no PENDING row with that id exists, so at most
        one of several concurrent callers succeeds.
        """
