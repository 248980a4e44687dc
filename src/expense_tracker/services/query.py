"""Turn raw listing parameters into a role-scoped store filter."""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from expense_tracker.domain.expenses import Expense, ExpenseCategory, ExpenseStatus
from expense_tracker.domain.queries import ExpenseFilter, Page, Pagination
from expense_tracker.domain.users import Actor
from expense_tracker.exceptions import FieldError, ValidationError
from expense_tracker.logging_config import get_logger
from expense_tracker.repositories.interfaces import ExpenseRepository
from expense_tracker.services.authorization import AuthorizationPolicy
from expense_tracker.services.validation import parse_date

logger = get_logger(__name__)

# Largest OFFSET the SQL stores accept (signed 64-bit).
MAX_SKIP = 2**63 - 1


@dataclass(frozen=True)
class ExpenseQuery:
    """Unvalidated listing parameters, as they arrive from a caller.

    Every field is optional. Enum fields accept their string values and
    dates accept ISO strings.
    """

    status: Any = None
    category: Any = None
    user_id: Any = None
    date_from: Any = None
    date_to: Any = None
    page: Any = None
    limit: Any = None


def _positive_int(value: Any, field: str, label: str, errors: list[FieldError]) -> int | None:
    if isinstance(value, bool):
        errors.append(FieldError(field, f"{label} must be a positive integer"))
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        errors.append(FieldError(field, f"{label} must be a positive integer"))
        return None
    if number < 1 or str(number) != str(value).strip():
        errors.append(FieldError(field, f"{label} must be a positive integer"))
        return None
    return number


class ExpenseQueryBuilder:
    """Resolve an ExpenseQuery for a given actor.

    Employees only ever see their own expenses: any requested owner is
    replaced with the actor's id. Admins see every owner unless they ask
    for one.
    """

    def __init__(self, default_limit: int = 10, max_limit: int = 100) -> None:
        self.default_limit = default_limit
        self.max_limit = max_limit

    def build(self, actor: Actor, query: ExpenseQuery) -> ExpenseFilter:
        errors: list[FieldError] = []

        page = 1
        if query.page is not None:
            page = _positive_int(query.page, "page", "Page", errors) or 1

        limit = self.default_limit
        if query.limit is not None:
            parsed = _positive_int(query.limit, "limit", "Limit", errors)
            if parsed is not None and parsed > self.max_limit:
                errors.append(
                    FieldError("limit", f"Limit cannot exceed {self.max_limit}")
                )
            elif parsed is not None:
                limit = parsed

        if (page - 1) * limit > MAX_SKIP:
            errors.append(FieldError("page", "Page is out of range"))

        status = None
        if query.status is not None:
            try:
                status = ExpenseStatus(query.status)
            except ValueError:
                errors.append(FieldError("status", "Invalid status value"))

        category = None
        if query.category is not None:
            try:
                category = ExpenseCategory(query.category)
            except ValueError:
                errors.append(FieldError("category", "Please select a valid category"))

        user_id = None
        if query.user_id is not None:
            try:
                user_id = (
                    query.user_id
                    if isinstance(query.user_id, UUID)
                    else UUID(str(query.user_id))
                )
            except ValueError:
                errors.append(FieldError("user_id", "Invalid user id"))

        date_from = self._date(query.date_from, "date_from", errors)
        date_to = self._date(query.date_to, "date_to", errors)
        if date_from and date_to and date_from > date_to:
            errors.append(
                FieldError("date_to", "End date must be on or after start date")
            )

        if errors:
            raise ValidationError("Invalid query parameters", errors=errors)

        if not actor.is_admin:
            user_id = actor.id

        return ExpenseFilter(
            status=status,
            category=category,
            user_id=user_id,
            date_from=date_from,
            date_to=date_to,
            skip=(page - 1) * limit,
            limit=limit,
        )

    @staticmethod
    def _date(value: Any, field: str, errors: list[FieldError]):
        if value is None or value == "":
            return None
        try:
            return parse_date(value)
        except (ValueError, OverflowError):
            errors.append(FieldError(field, "Date must be in ISO format (YYYY-MM-DD)"))
            return None


class ExpenseQueryService:
    def __init__(
        self,
        expense_repo: ExpenseRepository,
        policy: AuthorizationPolicy,
        builder: ExpenseQueryBuilder | None = None,
    ) -> None:
        self._expense_repo = expense_repo
        self._policy = policy
        self._builder = builder or ExpenseQueryBuilder()

    def list(self, actor: Actor | None, query: ExpenseQuery) -> Page[Expense]:
        actor = self._policy.require_actor(actor)
        expense_filter = self._builder.build(actor, query)
        assert expense_filter.limit is not None

        total = self._expense_repo.count(expense_filter)
        data = self._expense_repo.list(expense_filter)
        page = expense_filter.skip // expense_filter.limit + 1

        logger.debug(
            "expenses_listed",
            actor_id=str(actor.id),
            scoped_user_id=str(expense_filter.user_id) if expense_filter.user_id else None,
            total=total,
            page=page,
        )
        return Page(
            data=data,
            pagination=Pagination.from_total(page, expense_filter.limit, total),
        )
