from expense_tracker.domain.expenses import Expense, ExpenseCategory, ExpenseStatus
from expense_tracker.domain.users import Actor, User, UserRole

__all__ = [
    "Actor",
    "Expense",
    "ExpenseCategory",
    "ExpenseStatus",
    "User",
    "UserRole",
]

__version__ = "0.1.0"
