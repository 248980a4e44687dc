"""API routes for Expense Tracker."""

from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from expense_tracker import __version__
from expense_tracker.api.dependencies import (
    AdminActor,
    AnalyticsServiceDep,
    AuthServiceDep,
    CurrentActor,
    ExpenseServiceDep,
    QueryServiceDep,
)
from expense_tracker.api.schemas import (
    AnalyticsResponse,
    AuthResponse,
    ChangePasswordRequest,
    Envelope,
    ExpenseCreate,
    ExpenseListResponse,
    ExpenseResponse,
    ExpenseUpdate,
    HealthResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    StatusUpdateRequest,
    TokenResponse,
    UserResponse,
    analytics_to_response,
    expense_to_response,
    pagination_to_response,
    user_to_response,
)
from expense_tracker.domain.users import Actor
from expense_tracker.services.expenses import ExpenseService
from expense_tracker.services.query import ExpenseQuery, ExpenseQueryService

health_router = APIRouter(tags=["health"])
auth_router = APIRouter(prefix="/auth", tags=["auth"])
expense_router = APIRouter(prefix="/expenses", tags=["expenses"])
analytics_router = APIRouter(prefix="/analytics", tags=["analytics"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])

DateFrom = Annotated[str | None, Query(alias="dateFrom")]
DateTo = Annotated[str | None, Query(alias="dateTo")]
UserIdParam = Annotated[str | None, Query(alias="userId")]


@health_router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__, timestamp=datetime.now(UTC))


# Auth endpoints
@auth_router.post(
    "/register",
    response_model=Envelope[AuthResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(payload: RegisterRequest, auth: AuthServiceDep) -> Envelope[AuthResponse]:
    user, token = auth.register(
        email=payload.email,
        name=payload.name,
        password=payload.password,
        role=payload.role,
    )
    return Envelope(
        data=AuthResponse(user=user_to_response(user), token=token),
        message="User registered successfully",
    )


@auth_router.post("/login", response_model=Envelope[AuthResponse])
def login(payload: LoginRequest, auth: AuthServiceDep) -> Envelope[AuthResponse]:
    user, token = auth.login(payload.email, payload.password)
    return Envelope(
        data=AuthResponse(user=user_to_response(user), token=token),
        message="Login successful",
    )


@auth_router.get("/profile", response_model=Envelope[ProfileResponse])
def get_profile(actor: CurrentActor, auth: AuthServiceDep) -> Envelope[ProfileResponse]:
    profile = auth.get_profile(actor)
    user = user_to_response(profile.user)
    return Envelope(
        data=ProfileResponse(**user.model_dump(), expense_count=profile.expense_count)
    )


@auth_router.put("/profile", response_model=Envelope[UserResponse])
def update_profile(
    payload: ProfileUpdateRequest, actor: CurrentActor, auth: AuthServiceDep
) -> Envelope[UserResponse]:
    user = auth.update_profile(actor, payload.name)
    return Envelope(data=user_to_response(user), message="Profile updated successfully")


@auth_router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest, actor: CurrentActor, auth: AuthServiceDep
) -> MessageResponse:
    auth.change_password(actor, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")


@auth_router.post("/refresh-token", response_model=Envelope[TokenResponse])
def refresh_token(actor: CurrentActor, auth: AuthServiceDep) -> Envelope[TokenResponse]:
    return Envelope(data=TokenResponse(token=auth.refresh_token(actor)))


# Expense endpoints
@expense_router.post(
    "",
    response_model=Envelope[ExpenseResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_expense(
    payload: ExpenseCreate, actor: CurrentActor, expenses: ExpenseServiceDep
) -> Envelope[ExpenseResponse]:
    expense = expenses.create(actor, payload.model_dump())
    owners = expenses.owner_summaries([expense])
    return Envelope(
        data=expense_to_response(expense, owners.get(expense.user_id)),
        message="Expense created successfully",
    )


def _list_expenses(
    actor: Actor | None,
    queries: ExpenseQueryService,
    expenses: ExpenseService,
    query: ExpenseQuery,
) -> ExpenseListResponse:
    page = queries.list(actor, query)
    owners = expenses.owner_summaries(page.data)
    return ExpenseListResponse(
        data=[expense_to_response(e, owners.get(e.user_id)) for e in page.data],
        pagination=pagination_to_response(page.pagination),
    )


@expense_router.get("", response_model=ExpenseListResponse)
def list_expenses(
    actor: CurrentActor,
    queries: QueryServiceDep,
    expenses: ExpenseServiceDep,
    status_: Annotated[str | None, Query(alias="status")] = None,
    category: str | None = None,
    user_id: UserIdParam = None,
    date_from: DateFrom = None,
    date_to: DateTo = None,
    page: str | None = None,
    limit: str | None = None,
) -> ExpenseListResponse:
    query = ExpenseQuery(
        status=status_,
        category=category,
        user_id=user_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return _list_expenses(actor, queries, expenses, query)


@expense_router.get("/{expense_id}", response_model=Envelope[ExpenseResponse])
def get_expense(
    expense_id: UUID, actor: CurrentActor, expenses: ExpenseServiceDep
) -> Envelope[ExpenseResponse]:
    expense = expenses.get(actor, expense_id)
    owners = expenses.owner_summaries([expense])
    return Envelope(data=expense_to_response(expense, owners.get(expense.user_id)))


@expense_router.put("/{expense_id}", response_model=Envelope[ExpenseResponse])
def update_expense(
    expense_id: UUID,
    payload: ExpenseUpdate,
    actor: CurrentActor,
    expenses: ExpenseServiceDep,
) -> Envelope[ExpenseResponse]:
    expense = expenses.update(actor, expense_id, payload.changes())
    owners = expenses.owner_summaries([expense])
    return Envelope(
        data=expense_to_response(expense, owners.get(expense.user_id)),
        message="Expense updated successfully",
    )


@expense_router.delete("/{expense_id}", response_model=MessageResponse)
def delete_expense(
    expense_id: UUID, actor: CurrentActor, expenses: ExpenseServiceDep
) -> MessageResponse:
    expenses.delete(actor, expense_id)
    return MessageResponse(message="Expense deleted successfully")


@expense_router.put(
    "/{expense_id}/approve-reject", response_model=Envelope[ExpenseResponse]
)
def approve_reject_expense(
    expense_id: UUID,
    payload: StatusUpdateRequest,
    actor: CurrentActor,
    expenses: ExpenseServiceDep,
) -> Envelope[ExpenseResponse]:
    expense = expenses.transition(
        actor, expense_id, payload.status, payload.rejection_reason
    )
    owners = expenses.owner_summaries([expense])
    return Envelope(
        data=expense_to_response(expense, owners.get(expense.user_id)),
        message=f"Expense {expense.status.value.lower()} successfully",
    )


# Analytics endpoints
@analytics_router.get("/expenses", response_model=Envelope[AnalyticsResponse])
def expense_analytics(
    actor: CurrentActor,
    analytics: AnalyticsServiceDep,
    date_from: DateFrom = None,
    date_to: DateTo = None,
    user_id: UserIdParam = None,
) -> Envelope[AnalyticsResponse]:
    result = analytics.get_analytics(actor, date_from, date_to, user_id)
    return Envelope(data=analytics_to_response(result))


# Admin endpoints
@admin_router.get("/expenses", response_model=ExpenseListResponse)
def admin_list_expenses(
    actor: AdminActor,
    queries: QueryServiceDep,
    expenses: ExpenseServiceDep,
    status_: Annotated[str | None, Query(alias="status")] = None,
    category: str | None = None,
    user_id: UserIdParam = None,
    date_from: DateFrom = None,
    date_to: DateTo = None,
    page: str | None = None,
    limit: str | None = None,
) -> ExpenseListResponse:
    query = ExpenseQuery(
        status=status_,
        category=category,
        user_id=user_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return _list_expenses(actor, queries, expenses, query)


@admin_router.get("/analytics", response_model=Envelope[AnalyticsResponse])
def admin_analytics(
    actor: AdminActor,
    analytics: AnalyticsServiceDep,
    date_from: DateFrom = None,
    date_to: DateTo = None,
    user_id: UserIdParam = None,
) -> Envelope[AnalyticsResponse]:
    result = analytics.get_analytics(actor, date_from, date_to, user_id)
    return Envelope(data=analytics_to_response(result))
