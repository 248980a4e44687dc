"""FastAPI dependency functions.

Tests swap the whole object graph by overriding ``get_app_container``:

    app.dependency_overrides[get_app_container] = lambda: test_container
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from expense_tracker.container import Container, get_container
from expense_tracker.domain.users import Actor
from expense_tracker.logging_config import bind_context
from expense_tracker.services.analytics import AnalyticsService
from expense_tracker.services.auth import AuthService
from expense_tracker.services.expenses import ExpenseService
from expense_tracker.services.query import ExpenseQueryService

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_container() -> Container:
    return get_container()


ContainerDep = Annotated[Container, Depends(get_app_container)]


def get_expense_service(container: ContainerDep) -> ExpenseService:
    return container.expense_service


def get_query_service(container: ContainerDep) -> ExpenseQueryService:
    return container.query_service


def get_analytics_service(container: ContainerDep) -> AnalyticsService:
    return container.analytics_service


def get_auth_service(container: ContainerDep) -> AuthService:
    return container.auth_service


def get_current_actor(
    container: ContainerDep,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> Actor | None:
    """Resolve the bearer token into an Actor.

    A missing header yields None and the service raises
    AuthenticationError. A present but bad or expired token raises
    AuthenticationError here.
    """
    if credentials is None:
        return None
    actor = container.token_service.decode(credentials.credentials)
    bind_context(actor_id=str(actor.id))
    return actor


def get_admin_actor(
    container: ContainerDep,
    actor: Annotated[Actor | None, Depends(get_current_actor)],
) -> Actor:
    policy = container.policy
    actor = policy.require_actor(actor)
    if not policy.can_view_all(actor):
        raise policy.deny(actor, "access", "admin resources")
    return actor


CurrentActor = Annotated[Actor | None, Depends(get_current_actor)]
AdminActor = Annotated[Actor, Depends(get_admin_actor)]
ExpenseServiceDep = Annotated[ExpenseService, Depends(get_expense_service)]
QueryServiceDep = Annotated[ExpenseQueryService, Depends(get_query_service)]
AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
