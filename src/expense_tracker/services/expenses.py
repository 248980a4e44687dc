"""Expense lifecycle: create, read, edit, delete and approve/reject."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from expense_tracker.config import Settings
from expense_tracker.domain.expenses import Expense, ExpenseStatus
from expense_tracker.domain.users import Actor
from expense_tracker.exceptions import (
    ExpenseAlreadyProcessedError,
    ExpenseNotFoundError,
    ExpenseNotPendingError,
)
from expense_tracker.logging_config import get_logger
from expense_tracker.repositories.interfaces import ExpenseRepository, UserRepository
from expense_tracker.services.authorization import AuthorizationPolicy
from expense_tracker.services.validation import (
    validate_expense_fields,
    validate_rejection_reason,
    validate_target_status,
)

logger = get_logger(__name__)


class ExpenseService:
    """Owns every state change of an expense.

    Edits, deletes and status transitions are written with compare-and-set
    repository calls, so a concurrent change between the read and the write
    surfaces as an InvalidState error instead of a lost update.
    """

    def __init__(
        self,
        expense_repo: ExpenseRepository,
        user_repo: UserRepository,
        policy: AuthorizationPolicy,
        settings: Settings,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._expense_repo = expense_repo
        self._user_repo = user_repo
        self._policy = policy
        self._settings = settings
        self._today = today

    def create(self, actor: Actor | None, data: Mapping[str, Any]) -> Expense:
        actor = self._policy.require_actor(actor)
        fields = validate_expense_fields(
            data,
            max_amount=self._settings.max_expense_amount,
            today=self._today(),
        )
        expense = Expense(user_id=actor.id, **fields)
        self._expense_repo.add(expense)
        logger.info(
            "expense_created",
            expense_id=str(expense.id),
            user_id=str(actor.id),
            amount=str(expense.amount),
            category=expense.category.value,
        )
        return expense

    def get(self, actor: Actor | None, expense_id: UUID) -> Expense:
        actor = self._policy.require_actor(actor)
        expense = self._load(expense_id)
        if not self._policy.can_view_expense(actor, expense):
            raise self._policy.deny(actor, "view", "expense")
        return expense

    def update(
        self, actor: Actor | None, expense_id: UUID, changes: Mapping[str, Any]
    ) -> Expense:
        actor = self._policy.require_actor(actor)
        expense = self._load(expense_id)
        self._check_mutable(actor, expense, "updated")

        fields = validate_expense_fields(
            changes,
            max_amount=self._settings.max_expense_amount,
            today=self._today(),
            partial=True,
        )
        updated = dataclasses.replace(expense)
        updated.apply_changes(fields)

        if not self._expense_repo.update_if_pending(updated):
            raise self._lost_race(expense_id, "updated")

        logger.info(
            "expense_updated",
            expense_id=str(expense_id),
            user_id=str(actor.id),
            fields=sorted(fields),
        )
        return updated

    def delete(self, actor: Actor | None, expense_id: UUID) -> None:
        actor = self._policy.require_actor(actor)
        expense = self._load(expense_id)
        self._check_mutable(actor, expense, "deleted")

        if not self._expense_repo.delete_if_pending(expense_id, actor.id):
            raise self._lost_race(expense_id, "deleted")

        logger.info("expense_deleted", expense_id=str(expense_id), user_id=str(actor.id))

    def transition(
        self,
        actor: Actor | None,
        expense_id: UUID,
        target_status: ExpenseStatus | str,
        rejection_reason: str | None = None,
    ) -> Expense:
        """Approve or reject a pending expense.

        Raises:
            AuthenticationError: No actor.
            PermissionDeniedError: Actor is not an admin, or is approving
                their own expense while self-approval is disabled.
            ValidationError: Bad target status or rejection reason.
            ExpenseNotFoundError: Unknown expense.
            ExpenseAlreadyProcessedError: Expense already left PENDING.
        """
        actor = self._policy.require_actor(actor)
        if not self._policy.can_transition_status(actor):
            raise self._policy.deny(actor, "approve or reject", "expense")
        status = validate_target_status(target_status)

        expense = self._load(expense_id)
        if not self._policy.can_transition_status(actor, expense):
            raise self._policy.deny(actor, "approve or reject", "own expense")
        if expense.status.is_terminal:
            raise ExpenseAlreadyProcessedError(expense_id, expense.status.value)

        if status == ExpenseStatus.REJECTED:
            reason: str | None = validate_rejection_reason(rejection_reason)
        else:
            reason = None

        processed_at = datetime.now(UTC)
        written = self._expense_repo.transition_status(
            expense_id,
            status,
            rejection_reason=reason,
            processed_by=actor.id,
            processed_at=processed_at,
        )
        if not written:
            current = self._expense_repo.get(expense_id)
            if current is None:
                raise ExpenseNotFoundError(expense_id)
            logger.info(
                "expense_transition_conflict",
                expense_id=str(expense_id),
                status=current.status.value,
            )
            raise ExpenseAlreadyProcessedError(expense_id, current.status.value)

        expense.mark_processed(
            status,
            processed_by=actor.id,
            rejection_reason=reason,
            processed_at=processed_at,
        )
        logger.info(
            "expense_transitioned",
            expense_id=str(expense_id),
            status=status.value,
            processed_by=str(actor.id),
        )
        return expense

    def owner_summaries(self, expenses: Iterable[Expense]) -> dict[UUID, dict[str, Any]]:
        users = self._user_repo.get_many({e.user_id for e in expenses})
        return {user_id: user.summary() for user_id, user in users.items()}

    def _load(self, expense_id: UUID) -> Expense:
        expense = self._expense_repo.get(expense_id)
        if expense is None:
            raise ExpenseNotFoundError(expense_id)
        return expense

    def _check_mutable(self, actor: Actor, expense: Expense, action: str) -> None:
        if self._policy.can_mutate_expense(actor, expense):
            return
        # Ownership is reported before status.
        if not self._policy.is_owner(actor, expense):
            verb = "update" if action == "updated" else "delete"
            raise self._policy.deny(actor, verb, "expense")
        raise ExpenseNotPendingError(expense.id, action, expense.status.value)

    def _lost_race(self, expense_id: UUID, action: str) -> Exception:
        current = self._expense_repo.get(expense_id)
        if current is None:
            return ExpenseNotFoundError(expense_id)
        logger.info(
            "expense_write_conflict",
            expense_id=str(expense_id),
            action=action,
            status=current.status.value,
        )
        return ExpenseNotPendingError(expense_id, action, current.status.value)
