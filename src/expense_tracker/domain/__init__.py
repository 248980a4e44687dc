from expense_tracker.domain.expenses import (
    EDITABLE_FIELDS,
    Expense,
    ExpenseCategory,
    ExpenseStatus,
)
from expense_tracker.domain.users import Actor, User, UserRole

__all__ = [
    "EDITABLE_FIELDS",
    "Actor",
    "Expense",
    "ExpenseCategory",
    "ExpenseStatus",
    "User",
    "UserRole",
]
