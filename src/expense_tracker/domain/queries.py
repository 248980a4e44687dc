"""Normalized store filters and pagination metadata."""

import math
from dataclasses import dataclass
from datetime import date
from typing import Generic, TypeVar
from uuid import UUID

from expense_tracker.domain.expenses import ExpenseCategory, ExpenseStatus

T = TypeVar("T")


@dataclass(frozen=True)
class ExpenseFilter:
    """A resolved, role-scoped expense query.

    ``user_id`` of None means every owner; only admin actors ever produce
    such a filter. ``limit`` of None means no pagination.
    """

    status: ExpenseStatus | None = None
    category: ExpenseCategory | None = None
    user_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None
    skip: int = 0
    limit: int | None = None

    def unpaginated(self) -> "ExpenseFilter":
        return ExpenseFilter(
            status=self.status,
            category=self.category,
            user_id=self.user_id,
            date_from=self.date_from,
            date_to=self.date_to,
        )


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_total(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if total else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    data: list[T]
    pagination: Pagination
