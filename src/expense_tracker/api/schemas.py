"""Pydantic v2 schemas for API request/response models.

Field names are snake_case in Python and camelCase on the wire. Request
schemas are deliberately loose (``Any`` for amount, category and date) so
the service layer's validators report every field problem with their own
messages.
"""

from datetime import date, datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from expense_tracker.domain.expenses import Expense
from expense_tracker.domain.queries import Pagination
from expense_tracker.domain.users import User
from expense_tracker.services.analytics import ExpenseAnalytics

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    data: T
    message: str | None = None


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class HealthResponse(CamelModel):
    status: str
    version: str
    timestamp: datetime


# Auth Schemas
class RegisterRequest(CamelModel):
    email: str
    name: str
    password: str
    role: str = "EMPLOYEE"


class LoginRequest(CamelModel):
    email: str = ""
    password: str = ""


class ProfileUpdateRequest(CamelModel):
    name: str


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str


class UserSummary(CamelModel):
    id: UUID
    name: str
    email: str


class UserResponse(CamelModel):
    id: UUID
    email: str
    name: str
    role: str
    created_at: datetime
    updated_at: datetime


class ProfileResponse(UserResponse):
    expense_count: int


class AuthResponse(CamelModel):
    user: UserResponse
    token: str


class TokenResponse(CamelModel):
    token: str


# Expense Schemas
class ExpenseCreate(CamelModel):
    amount: Any = None
    category: Any = None
    description: str | None = None
    date: Any = None
    receipt_url: str | None = None


class ExpenseUpdate(CamelModel):
    """Partial update; only fields present in the request body are applied."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    amount: Any = None
    category: Any = None
    description: str | None = None
    date: Any = None
    receipt_url: str | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class StatusUpdateRequest(CamelModel):
    status: str
    rejection_reason: str | None = None


class ExpenseResponse(CamelModel):
    id: UUID
    user_id: UUID
    amount: float
    category: str
    description: str | None
    date: date
    receipt_url: str | None
    status: str
    rejection_reason: str | None
    processed_at: datetime | None
    processed_by: UUID | None
    created_at: datetime
    updated_at: datetime
    user: UserSummary | None = None


class PaginationResponse(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ExpenseListResponse(CamelModel):
    success: bool = True
    data: list[ExpenseResponse]
    pagination: PaginationResponse


# Analytics Schemas
class AnalyticsSummary(CamelModel):
    total_expenses: int
    total_amount: float


class CategoryBreakdownResponse(CamelModel):
    category: str
    count: int
    total_amount: float
    percentage: float


class StatusBreakdownResponse(CamelModel):
    status: str
    count: int
    total_amount: float


class MonthlyBreakdownResponse(CamelModel):
    month: str
    count: int
    total_amount: float


class AnalyticsResponse(CamelModel):
    summary: AnalyticsSummary
    by_category: list[CategoryBreakdownResponse]
    by_status: list[StatusBreakdownResponse]
    monthly_trend: list[MonthlyBreakdownResponse]
    top_expenses: list[ExpenseResponse]


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role.value,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def expense_to_response(
    expense: Expense, owner: dict[str, Any] | None = None
) -> ExpenseResponse:
    return ExpenseResponse(
        id=expense.id,
        user_id=expense.user_id,
        amount=float(expense.amount),
        category=expense.category.value,
        description=expense.description,
        date=expense.date,
        receipt_url=expense.receipt_url,
        status=expense.status.value,
        rejection_reason=expense.rejection_reason,
        processed_at=expense.processed_at,
        processed_by=expense.processed_by,
        created_at=expense.created_at,
        updated_at=expense.updated_at,
        user=UserSummary(**owner) if owner else None,
    )


def pagination_to_response(pagination: Pagination) -> PaginationResponse:
    return PaginationResponse(
        page=pagination.page,
        limit=pagination.limit,
        total=pagination.total,
        total_pages=pagination.total_pages,
        has_next=pagination.has_next,
        has_prev=pagination.has_prev,
    )


def analytics_to_response(analytics: ExpenseAnalytics) -> AnalyticsResponse:
    return AnalyticsResponse(
        summary=AnalyticsSummary(
            total_expenses=analytics.total_expenses,
            total_amount=float(analytics.total_amount),
        ),
        by_category=[
            CategoryBreakdownResponse(
                category=c.category.value,
                count=c.count,
                total_amount=float(c.total_amount),
                percentage=float(c.percentage),
            )
            for c in analytics.by_category
        ],
        by_status=[
            StatusBreakdownResponse(
                status=s.status.value, count=s.count, total_amount=float(s.total_amount)
            )
            for s in analytics.by_status
        ],
        monthly_trend=[
            MonthlyBreakdownResponse(
                month=m.month, count=m.count, total_amount=float(m.total_amount)
            )
            for m in analytics.monthly_trend
        ],
        top_expenses=[
            expense_to_response(t.expense, t.user) for t in analytics.top_expenses
        ],
    )
