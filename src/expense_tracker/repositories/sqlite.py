"""SQLite implementations of repository interfaces."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID

from expense_tracker.domain.expenses import Expense, ExpenseCategory, ExpenseStatus
from expense_tracker.domain.queries import ExpenseFilter
from expense_tracker.domain.users import User, UserRole
from expense_tracker.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    DuplicateUserError,
)
from expense_tracker.repositories.interfaces import ExpenseRepository, UserRepository

# Newest first, ties broken by id.
_LIST_ORDER = "created_at DESC, id DESC"


@contextmanager
def _db_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        raise DatabaseError(f"SQLite operation failed: {e}") from e
    except OverflowError as e:
        # Parameters beyond SQLite's 64-bit INTEGER range.
        raise DatabaseError(f"SQLite parameter out of range: {e}") from e


class SQLiteDatabase:
    """SQLite database connection manager."""

    def __init__(
        self, path: str | Path = ":memory:", check_same_thread: bool = True
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._connection: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            try:
                self._connection = sqlite3.connect(
                    self._path, check_same_thread=self._check_same_thread
                )
            except sqlite3.Error as e:
                raise DatabaseConnectionError(str(e)) from e
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    def initialize(self) -> None:
        """Create all database tables."""
        conn = self.get_connection()
        with _db_errors():
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    password_hash TEXT,
                    role TEXT NOT NULL DEFAULT 'EMPLOYEE',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS expenses (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    category TEXT NOT NULL,
                    description TEXT,
                    date TEXT NOT NULL,
                    receipt_url TEXT,
                    status TEXT NOT NULL DEFAULT 'PENDING',
                    rejection_reason TEXT,
                    processed_at TEXT,
                    processed_by TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (user_id) REFERENCES users(id),
                    FOREIGN KEY (processed_by) REFERENCES users(id),
                    CHECK (status IN ('PENDING', 'APPROVED', 'REJECTED')),
                    CHECK ((status = 'REJECTED') = (rejection_reason IS NOT NULL))
                );
                CREATE INDEX IF NOT EXISTS idx_expenses_user ON expenses(user_id);
                CREATE INDEX IF NOT EXISTS idx_expenses_status ON expenses(status);
                CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date);
                CREATE INDEX IF NOT EXISTS idx_expenses_created ON expenses(created_at);
                """
            )
            conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None


class SQLiteUserRepository(UserRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, user: User) -> None:
        conn = self._db.get_connection()
        try:
            conn.execute(
                """
                INSERT INTO users (id, email, name, password_hash, role,
                                   created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(user.id),
                    user.email,
                    user.name,
                    user.password_hash,
                    user.role.value,
                    user.created_at.isoformat(),
                    user.updated_at.isoformat(),
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise DuplicateUserError(user.email) from e
        except sqlite3.Error as e:
            raise DatabaseError(f"SQLite operation failed: {e}") from e

    def get(self, user_id: UUID) -> User | None:
        conn = self._db.get_connection()
        with _db_errors():
            row = conn.execute(
                "SELECT * FROM users WHERE id = ?", (str(user_id),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_by_email(self, email: str) -> User | None:
        conn = self._db.get_connection()
        with _db_errors():
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.lower(),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        ids = [str(uid) for uid in set(user_ids)]
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        conn = self._db.get_connection()
        with _db_errors():
            rows = conn.execute(
                f"SELECT * FROM users WHERE id IN ({placeholders})", ids
            ).fetchall()
        users = (self._row_to_user(row) for row in rows)
        return {user.id: user for user in users}

    def list_all(self) -> Iterable[User]:
        conn = self._db.get_connection()
        with _db_errors():
            rows = conn.execute("SELECT * FROM users ORDER BY email").fetchall()
        return [self._row_to_user(row) for row in rows]

    def update(self, user: User) -> None:
        conn = self._db.get_connection()
        with _db_errors():
            conn.execute(
                """
                UPDATE users SET
                    name = ?,
                    password_hash = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    user.name,
                    user.password_hash,
                    user.updated_at.isoformat(),
                    str(user.id),
                ),
            )
            conn.commit()

    def count_expenses(self, user_id: UUID) -> int:
        conn = self._db.get_connection()
        with _db_errors():
            row = conn.execute(
                "SELECT COUNT(*) FROM expenses WHERE user_id = ?", (str(user_id),)
            ).fetchone()
        return int(row[0])

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=UUID(row["id"]),
            email=row["email"],
            name=row["name"],
            password_hash=row["password_hash"],
            role=UserRole(row["role"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteExpenseRepository(ExpenseRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, expense: Expense) -> None:
        conn = self._db.get_connection()
        with _db_errors():
            conn.execute(
                """
                INSERT INTO expenses (id, user_id, amount, category, description,
                                      date, receipt_url, status, rejection_reason,
                                      processed_at, processed_by, created_at,
                                      updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(expense.id),
                    str(expense.user_id),
                    str(expense.amount),
                    expense.category.value,
                    expense.description,
                    expense.date.isoformat(),
                    expense.receipt_url,
                    expense.status.value,
                    expense.rejection_reason,
                    expense.processed_at.isoformat() if expense.processed_at else None,
                    str(expense.processed_by) if expense.processed_by else None,
                    expense.created_at.isoformat(),
                    expense.updated_at.isoformat(),
                ),
            )
            conn.commit()

    def get(self, expense_id: UUID) -> Expense | None:
        conn = self._db.get_connection()
        with _db_errors():
            row = conn.execute(
                "SELECT * FROM expenses WHERE id = ?", (str(expense_id),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_expense(row)

    def list(self, expense_filter: ExpenseFilter) -> list[Expense]:
        where, params = self._where_clause(expense_filter)
        sql = (
            f"SELECT * FROM expenses{where} "
            f"ORDER BY {_LIST_ORDER}"
        )
        if expense_filter.limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([expense_filter.limit, expense_filter.skip])
        conn = self._db.get_connection()
        with _db_errors():
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_expense(row) for row in rows]

    def count(self, expense_filter: ExpenseFilter) -> int:
        where, params = self._where_clause(expense_filter)
        conn = self._db.get_connection()
        with _db_errors():
            row = conn.execute(
                f"SELECT COUNT(*) FROM expenses{where}", params
            ).fetchone()
        return int(row[0])

    def list_all(self, expense_filter: ExpenseFilter) -> list[Expense]:
        return self.list(expense_filter.unpaginated())

    def update_if_pending(self, expense: Expense) -> bool:
        conn = self._db.get_connection()
        with _db_errors():
            cursor = conn.execute(
                """
                UPDATE expenses SET
                    amount = ?,
                    category = ?,
                    description = ?,
                    date = ?,
                    receipt_url = ?,
                    updated_at = ?
                WHERE id = ? AND user_id = ? AND status = 'PENDING'
                """,
                (
                    str(expense.amount),
                    expense.category.value,
                    expense.description,
                    expense.date.isoformat(),
                    expense.receipt_url,
                    expense.updated_at.isoformat(),
                    str(expense.id),
                    str(expense.user_id),
                ),
            )
            conn.commit()
        return cursor.rowcount == 1

    def delete_if_pending(self, expense_id: UUID, user_id: UUID) -> bool:
        conn = self._db.get_connection()
        with _db_errors():
            cursor = conn.execute(
                """
                DELETE FROM expenses
                WHERE id = ? AND user_id = ? AND status = 'PENDING'
                """,
                (str(expense_id), str(user_id)),
            )
            conn.commit()
        return cursor.rowcount == 1

    def transition_status(
        self,
        expense_id: UUID,
        status: ExpenseStatus,
        rejection_reason: str | None,
        processed_by: UUID,
        processed_at: datetime,
    ) -> bool:
        conn = self._db.get_connection()
        with _db_errors():
            cursor = conn.execute(
                """
                UPDATE expenses SET
                    status = ?,
                    rejection_reason = ?,
                    processed_by = ?,
                    processed_at = ?,
                    updated_at = ?
                WHERE id = ? AND status = 'PENDING'
                """,
                (
                    status.value,
                    rejection_reason,
                    str(processed_by),
                    processed_at.isoformat(),
                    processed_at.isoformat(),
                    str(expense_id),
                ),
            )
            conn.commit()
        return cursor.rowcount == 1

    def _where_clause(self, expense_filter: ExpenseFilter) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if expense_filter.user_id is not None:
            clauses.append("user_id = ?")
            params.append(str(expense_filter.user_id))
        if expense_filter.status is not None:
            clauses.append("status = ?")
            params.append(expense_filter.status.value)
        if expense_filter.category is not None:
            clauses.append("category = ?")
            params.append(expense_filter.category.value)
        if expense_filter.date_from is not None:
            clauses.append("date >= ?")
            params.append(expense_filter.date_from.isoformat())
        if expense_filter.date_to is not None:
            clauses.append("date <= ?")
            params.append(expense_filter.date_to.isoformat())
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def _row_to_expense(self, row: sqlite3.Row) -> Expense:
        return Expense(
            id=UUID(row["id"]),
            user_id=UUID(row["user_id"]),
            amount=Decimal(row["amount"]),
            category=ExpenseCategory(row["category"]),
            description=row["description"],
            date=date.fromisoformat(row["date"]),
            receipt_url=row["receipt_url"],
            status=ExpenseStatus(row["status"]),
            rejection_reason=row["rejection_reason"],
            processed_at=datetime.fromisoformat(row["processed_at"])
            if row["processed_at"]
            else None,
            processed_by=UUID(row["processed_by"]) if row["processed_by"] else None,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
