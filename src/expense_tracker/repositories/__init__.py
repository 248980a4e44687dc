from expense_tracker.repositories.interfaces import ExpenseRepository, UserRepository
from expense_tracker.repositories.sqlite import (
    SQLiteDatabase,
    SQLiteExpenseRepository,
    SQLiteUserRepository,
)

__all__ = [
    "ExpenseRepository",
    "UserRepository",
    "SQLiteDatabase",
    "SQLiteExpenseRepository",
    "SQLiteUserRepository",
]
