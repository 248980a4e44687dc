"""Expense analytics: category, status and month rollups plus the top 10.

``aggregate_expenses`` is a pure function over an already-scoped set of
expenses. ``AnalyticsService`` does the scoping and the loading.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from dateutil import parser as date_parser  # type: ignore[import-untyped]

from expense_tracker.domain.expenses import Expense, ExpenseCategory, ExpenseStatus
from expense_tracker.domain.users import Actor
from expense_tracker.logging_config import get_logger
from expense_tracker.repositories.interfaces import ExpenseRepository, UserRepository
from expense_tracker.services.authorization import AuthorizationPolicy
from expense_tracker.services.query import ExpenseQuery, ExpenseQueryBuilder

logger = get_logger(__name__)

TOP_EXPENSES_LIMIT = 10
MONTHLY_TREND_LIMIT = 12

_ZERO = Decimal("0")
_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CategoryBreakdown:
    category: ExpenseCategory
    count: int
    total_amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class StatusBreakdown:
    status: ExpenseStatus
    count: int
    total_amount: Decimal


@dataclass(frozen=True)
class MonthlyBreakdown:
    month: str  # YYYY-MM
    count: int
    total_amount: Decimal


@dataclass(frozen=True)
class TopExpense:
    expense: Expense
    user: dict[str, Any] | None


@dataclass(frozen=True)
class ExpenseAnalytics:
    total_expenses: int = 0
    total_amount: Decimal = _ZERO
    by_category: list[CategoryBreakdown] = field(default_factory=list)
    by_status: list[StatusBreakdown] = field(default_factory=list)
    monthly_trend: list[MonthlyBreakdown] = field(default_factory=list)
    top_expenses: list[TopExpense] = field(default_factory=list)


def _month_key(value: Any) -> str | None:
    if isinstance(value, datetime | date):
        return value.strftime("%Y-%m")
    if isinstance(value, str):
        try:
            return date_parser.parse(value).strftime("%Y-%m")
        except (ValueError, OverflowError):
            return None
    return None


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return _ZERO.quantize(_CENT)
    return (part / whole * _HUNDRED).quantize(_CENT, rounding=ROUND_HALF_UP)


def aggregate_expenses(
    expenses: Iterable[Expense],
    owners: Mapping[UUID, dict[str, Any]] | None = None,
) -> ExpenseAnalytics:
    """Roll up a set of expenses.

    The result depends only on the input set, not on its order.

    Args:
        expenses: Expenses to aggregate, already filtered and scoped.
        owners: Owner summaries keyed by user id, attached to top expenses.

    Returns:
        ExpenseAnalytics with:
        - by_category sorted by total amount desc, then category name
        - by_status sorted by status name
        - monthly_trend as YYYY-MM keys, newest first, at most 12 months
        - top_expenses, the 10 largest by amount (ties broken by id)
    """
    items = list(expenses)
    owners = owners or {}

    total_amount = sum((e.amount for e in items), _ZERO)

    category_count: dict[ExpenseCategory, int] = defaultdict(int)
    category_total: dict[ExpenseCategory, Decimal] = defaultdict(Decimal)
    status_count: dict[ExpenseStatus, int] = defaultdict(int)
    status_total: dict[ExpenseStatus, Decimal] = defaultdict(Decimal)
    month_count: dict[str, int] = defaultdict(int)
    month_total: dict[str, Decimal] = defaultdict(Decimal)

    for expense in items:
        category_count[expense.category] += 1
        category_total[expense.category] += expense.amount
        status_count[expense.status] += 1
        status_total[expense.status] += expense.amount

        month = _month_key(expense.date)
        if month is None:
            logger.warning(
                "monthly_rollup_skipped_record",
                expense_id=str(expense.id),
                date=repr(expense.date),
            )
            continue
        month_count[month] += 1
        month_total[month] += expense.amount

    by_category = sorted(
        (
            CategoryBreakdown(
                category=category,
                count=category_count[category],
                total_amount=category_total[category],
                percentage=_percentage(category_total[category], total_amount),
            )
            for category in category_count
        ),
        key=lambda c: (-c.total_amount, c.category.value),
    )

    by_status = [
        StatusBreakdown(
            status=status,
            count=status_count[status],
            total_amount=status_total[status],
        )
        for status in sorted(status_count, key=lambda s: s.value)
    ]

    monthly_trend = [
        MonthlyBreakdown(month=month, count=month_count[month], total_amount=month_total[month])
        for month in sorted(month_count, reverse=True)[:MONTHLY_TREND_LIMIT]
    ]

    top = sorted(items, key=lambda e: (-e.amount, str(e.id)))[:TOP_EXPENSES_LIMIT]
    top_expenses = [TopExpense(expense=e, user=owners.get(e.user_id)) for e in top]

    return ExpenseAnalytics(
        total_expenses=len(items),
        total_amount=total_amount,
        by_category=by_category,
        by_status=by_status,
        monthly_trend=monthly_trend,
        top_expenses=top_expenses,
    )


class AnalyticsService:
    def __init__(
        self,
        expense_repo: ExpenseRepository,
        user_repo: UserRepository,
        policy: AuthorizationPolicy,
        builder: ExpenseQueryBuilder | None = None,
    ) -> None:
        self._expense_repo = expense_repo
        self._user_repo = user_repo
        self._policy = policy
        self._builder = builder or ExpenseQueryBuilder()

    def get_analytics(
        self,
        actor: Actor | None,
        date_from: Any = None,
        date_to: Any = None,
        user_id: Any = None,
    ) -> ExpenseAnalytics:
        actor = self._policy.require_actor(actor)
        if not self._policy.can_view_analytics(actor):
            raise self._policy.deny(actor, "view", "analytics")

        expense_filter = self._builder.build(
            actor,
            ExpenseQuery(date_from=date_from, date_to=date_to, user_id=user_id),
        )
        expenses = self._expense_repo.list_all(expense_filter)
        owners = {
            uid: user.summary()
            for uid, user in self._user_repo.get_many({e.user_id for e in expenses}).items()
        }

        analytics = aggregate_expenses(expenses, owners)
        logger.info(
            "analytics_computed",
            actor_id=str(actor.id),
            scoped_user_id=str(expense_filter.user_id) if expense_filter.user_id else None,
            total_expenses=analytics.total_expenses,
        )
        return analytics
