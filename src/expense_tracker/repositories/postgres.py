"""PostgreSQL implementations of repository interfaces."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

import psycopg2
import psycopg2.errors
import psycopg2.extras

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


class PostgresDatabase:
    """PostgreSQL database connection manager."""

    def __init__(self, connection_string: str) -> None:
        self._connection_string = connection_string
        self._connection: psycopg2.extensions.connection | None = None

    def get_connection(self) -> psycopg2.extensions.connection:
        """Get or create the database connection."""
        if self._connection is None or self._connection.closed:
            try:
                self._connection = psycopg2.connect(
                    self._connection_string,
                    cursor_factory=psycopg2.extras.RealDictCursor,
                )
            except psycopg2.OperationalError as e:
                raise DatabaseConnectionError(str(e)) from e
        return self._connection

    @contextmanager
    def cursor(self) -> Iterator[Any]:
        """Yield a cursor inside a transaction; commit on success."""
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            if isinstance(e, psycopg2.errors.UniqueViolation):
                raise
            raise DatabaseError(f"PostgreSQL operation failed: {e}") from e

    def initialize(self) -> None:
        """Create all database tables."""
        with self.cursor() as cur:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id UUID PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    password_hash TEXT,
                    role TEXT NOT NULL DEFAULT 'EMPLOYEE',
                    created_at TIMESTAMPTZ NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL
                );

                CREATE TABLE IF NOT EXISTS expenses (
                    id UUID PRIMARY KEY,
                    user_id UUID NOT NULL REFERENCES users(id),
                    amount NUMERIC(12, 2) NOT NULL CHECK (amount > 0),
                    category TEXT NOT NULL,
                    description TEXT,
                    date DATE NOT NULL,
                    receipt_url TEXT,
                    status TEXT NOT NULL DEFAULT 'PENDING'
                        CHECK (status IN ('PENDING', 'APPROVED', 'REJECTED')),
                    rejection_reason TEXT,
                    processed_at TIMESTAMPTZ,
                    processed_by UUID REFERENCES users(id),
                    created_at TIMESTAMPTZ NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL,
                    CHECK ((status = 'REJECTED') = (rejection_reason IS NOT NULL))
                );
                CREATE INDEX IF NOT EXISTS idx_expenses_user ON expenses(user_id);
                CREATE INDEX IF NOT EXISTS idx_expenses_status ON expenses(status);
                CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date);
                CREATE INDEX IF NOT EXISTS idx_expenses_created ON expenses(created_at);
                """
            )

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None and not self._connection.closed:
            self._connection.close()
        self._connection = None


class PostgresUserRepository(UserRepository):
    def __init__(self, database: PostgresDatabase) -> None:
        self._db = database

    def add(self, user: User) -> None:
        try:
            with self._db.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO users (id, email, name, password_hash, role,
                                       created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        str(user.id),
                        user.email,
                        user.name,
                        user.password_hash,
                        user.role.value,
                        user.created_at,
                        user.updated_at,
                    ),
                )
        except psycopg2.errors.UniqueViolation as e:
            raise DuplicateUserError(user.email) from e

    def get(self, user_id: UUID) -> User | None:
        with self._db.cursor() as cur:
            cur.execute("SELECT * FROM users WHERE id = %s", (str(user_id),))
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def get_by_email(self, email: str) -> User | None:
        with self._db.cursor() as cur:
            cur.execute("SELECT * FROM users WHERE email = %s", (email.lower(),))
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        ids = [str(uid) for uid in set(user_ids)]
        if not ids:
            return {}
        with self._db.cursor() as cur:
            cur.execute("SELECT * FROM users WHERE id = ANY(%s::uuid[])", (ids,))
            rows = cur.fetchall()
        users = (self._row_to_user(row) for row in rows)
        return {user.id: user for user in users}

    def list_all(self) -> Iterable[User]:
        with self._db.cursor() as cur:
            cur.execute("SELECT * FROM users ORDER BY email")
            rows = cur.fetchall()
        return [self._row_to_user(row) for row in rows]

    def update(self, user: User) -> None:
        with self._db.cursor() as cur:
            cur.execute(
                """
                UPDATE users SET name = %s, password_hash = %s, updated_at = %s
                WHERE id = %s
                """,
                (user.name, user.password_hash, user.updated_at, str(user.id)),
            )

    def count_expenses(self, user_id: UUID) -> int:
        with self._db.cursor() as cur:
            cur.execute(
                "SELECT COUNT(*) AS n FROM expenses WHERE user_id = %s",
                (str(user_id),),
            )
            row = cur.fetchone()
        return int(row["n"])

    def _row_to_user(self, row: dict[str, Any]) -> User:
        return User(
            id=UUID(str(row["id"])),
            email=row["email"],
            name=row["name"],
            password_hash=row["password_hash"],
            role=UserRole(row["role"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class PostgresExpenseRepository(ExpenseRepository):
    def __init__(self, database: PostgresDatabase) -> None:
        self._db = database

    def add(self, expense: Expense) -> None:
        with self._db.cursor() as cur:
            cur.execute(
                """
                INSERT INTO expenses (id, user_id, amount, category, description,
                                      date, receipt_url, status, rejection_reason,
                                      processed_at, processed_by, created_at,
                                      updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    str(expense.id),
                    str(expense.user_id),
                    expense.amount,
                    expense.category.value,
                    expense.description,
                    expense.date,
                    expense.receipt_url,
                    expense.status.value,
                    expense.rejection_reason,
                    expense.processed_at,
                    str(expense.processed_by) if expense.processed_by else None,
                    expense.created_at,
                    expense.updated_at,
                ),
            )

    def get(self, expense_id: UUID) -> Expense | None:
        with self._db.cursor() as cur:
            cur.execute("SELECT * FROM expenses WHERE id = %s", (str(expense_id),))
            row = cur.fetchone()
        return self._row_to_expense(row) if row else None

    def list(self, expense_filter: ExpenseFilter) -> list[Expense]:
        where, params = self._where_clause(expense_filter)
        sql = (
            f"SELECT * FROM expenses{where} "
            f"ORDER BY {_LIST_ORDER}"
        )
        if expense_filter.limit is not None:
            sql += " LIMIT %s OFFSET %s"
            params.extend([expense_filter.limit, expense_filter.skip])
        with self._db.cursor() as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
        return [self._row_to_expense(row) for row in rows]

    def count(self, expense_filter: ExpenseFilter) -> int:
        where, params = self._where_clause(expense_filter)
        with self._db.cursor() as cur:
            cur.execute(f"SELECT COUNT(*) AS n FROM expenses{where}", params)
            row = cur.fetchone()
        return int(row["n"])

    def list_all(self, expense_filter: ExpenseFilter) -> list[Expense]:
        return self.list(expense_filter.unpaginated())

    def update_if_pending(self, expense: Expense) -> bool:
        with self._db.cursor() as cur:
            cur.execute(
                """
                UPDATE expenses SET
                    amount = %s,
                    category = %s,
                    description = %s,
                    date = %s,
                    receipt_url = %s,
                    updated_at = %s
                WHERE id = %s AND user_id = %s AND status = 'PENDING'
                """,
                (
                    expense.amount,
                    expense.category.value,
                    expense.description,
                    expense.date,
                    expense.receipt_url,
                    expense.updated_at,
                    str(expense.id),
                    str(expense.user_id),
                ),
            )
            return cur.rowcount == 1

    def delete_if_pending(self, expense_id: UUID, user_id: UUID) -> bool:
        with self._db.cursor() as cur:
            cur.execute(
                """
                DELETE FROM expenses
                WHERE id = %s AND user_id = %s AND status = 'PENDING'
                """,
                (str(expense_id), str(user_id)),
            )
            return cur.rowcount == 1

    def transition_status(
        self,
        expense_id: UUID,
        status: ExpenseStatus,
        rejection_reason: str | None,
        processed_by: UUID,
        processed_at: datetime,
    ) -> bool:
        with self._db.cursor() as cur:
            cur.execute(
                """
                UPDATE expenses SET
                    status = %s,
                    rejection_reason = %s,
                    processed_by = %s,
                    processed_at = %s,
                    updated_at = %s
                WHERE id = %s AND status = 'PENDING'
                """,
                (
                    status.value,
                    rejection_reason,
                    str(processed_by),
                    processed_at,
                    processed_at,
                    str(expense_id),
                ),
            )
            return cur.rowcount == 1

    def _where_clause(self, expense_filter: ExpenseFilter) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if expense_filter.user_id is not None:
            clauses.append("user_id = %s")
            params.append(str(expense_filter.user_id))
        if expense_filter.status is not None:
            clauses.append("status = %s")
            params.append(expense_filter.status.value)
        if expense_filter.category is not None:
            clauses.append("category = %s")
            params.append(expense_filter.category.value)
        if expense_filter.date_from is not None:
            clauses.append("date >= %s")
            params.append(expense_filter.date_from)
        if expense_filter.date_to is not None:
            clauses.append("date <= %s")
            params.append(expense_filter.date_to)
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def _row_to_expense(self, row: dict[str, Any]) -> Expense:
        return Expense(
            id=UUID(str(row["id"])),
            user_id=UUID(str(row["user_id"])),
            amount=row["amount"],
            category=ExpenseCategory(row["category"]),
            description=row["description"],
            date=row["date"],
            receipt_url=row["receipt_url"],
            status=ExpenseStatus(row["status"]),
            rejection_reason=row["rejection_reason"],
            processed_at=row["processed_at"],
            processed_by=UUID(str(row["processed_by"]))
            if row["processed_by"]
            else None,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
