"""Authorization policy for expenses.

Every permission decision in the application goes through
``AuthorizationPolicy``. The predicates are pure: they look only at the
actor's role and id and at the expense's owner and status, and never touch
the store.
"""

from expense_tracker.domain.expenses import Expense
from expense_tracker.domain.users import Actor
from expense_tracker.exceptions import AuthenticationError, PermissionDeniedError
from expense_tracker.logging_config import get_logger

logger = get_logger(__name__)


class AuthorizationPolicy:
    """Two-role (EMPLOYEE / ADMIN) ownership policy.

    Args:
        allow_self_approval: When False, an admin may not approve or reject
            an expense they submitted themselves.
    """

    def __init__(self, allow_self_approval: bool = True) -> None:
        self.allow_self_approval = allow_self_approval

    @staticmethod
    def require_actor(actor: Actor | None) -> Actor:
        if actor is None:
            raise AuthenticationError()
        return actor

    @staticmethod
    def is_owner(actor: Actor, expense: Expense) -> bool:
        return expense.user_id == actor.id

    def can_view_all(self, actor: Actor) -> bool:
        return actor.is_admin

    def can_view_expense(self, actor: Actor, expense: Expense) -> bool:
        return actor.is_admin or self.is_owner(actor, expense)

    def can_mutate_expense(self, actor: Actor, expense: Expense) -> bool:
        return self.is_owner(actor, expense) and not expense.status.is_terminal

    def can_transition_status(
        self, actor: Actor, expense: Expense | None = None
    ) -> bool:
        if not actor.is_admin:
            return False
        if expense is not None and not self.allow_self_approval:
            return not self.is_owner(actor, expense)
        return True

    def can_view_analytics(self, actor: Actor) -> bool:
        # Scope (own vs. all) is applied by the query builder.
        return True

    def deny(self, actor: Actor, action: str, resource: str) -> PermissionDeniedError:
        logger.info(
            "permission_denied",
            actor_id=str(actor.id),
            role=actor.role.value,
            action=action,
            resource=resource,
        )
        return PermissionDeniedError(action=action, resource=resource)
