from expense_tracker.services.analytics import (
    AnalyticsService,
    ExpenseAnalytics,
    aggregate_expenses,
)
from expense_tracker.services.auth import AuthService, PasswordHasher, TokenService
from expense_tracker.services.authorization import AuthorizationPolicy
from expense_tracker.services.expenses import ExpenseService
from expense_tracker.services.query import (
    ExpenseQuery,
    ExpenseQueryBuilder,
    ExpenseQueryService,
)

__all__ = [
    "AnalyticsService",
    "AuthService",
    "AuthorizationPolicy",
    "ExpenseAnalytics",
    "ExpenseQuery",
    "ExpenseQueryBuilder",
    "ExpenseQueryService",
    "ExpenseService",
    "PasswordHasher",
    "TokenService",
    "aggregate_expenses",
]
