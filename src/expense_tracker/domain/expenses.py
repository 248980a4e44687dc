from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ExpenseCategory(str, Enum):
    FOOD = "FOOD"
    TRANSPORT = "TRANSPORT"
    ACCOMMODATION = "ACCOMMODATION"
    OFFICE_SUPPLIES = "OFFICE_SUPPLIES"
    SOFTWARE = "SOFTWARE"
    TRAINING = "TRAINING"
    MARKETING = "MARKETING"
    TRAVEL = "TRAVEL"
    ENTERTAINMENT = "ENTERTAINMENT"
    UTILITIES = "UTILITIES"
    OTHER = "OTHER"


class ExpenseStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not ExpenseStatus.PENDING


# Fields an owner may change while the expense is pending.
EDITABLE_FIELDS = frozenset(
    {"amount", "category", "description", "date", "receipt_url"}
)


@dataclass
class Expense:
    user_id: UUID
    amount: Decimal
    category: ExpenseCategory
    date: date
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    receipt_url: str | None = None
    status: ExpenseStatus = ExpenseStatus.PENDING
    rejection_reason: str | None = None
    processed_at: datetime | None = None
    processed_by: UUID | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))

    @property
    def is_pending(self) -> bool:
        return self.status == ExpenseStatus.PENDING

    def apply_changes(self, changes: dict[str, object]) -> None:
        """Apply already-validated field changes.

        Only EDITABLE_FIELDS are touched; user_id and status never change here.
        """
        for name, value in changes.items():
            if name in EDITABLE_FIELDS:
                setattr(self, name, value)
        self.updated_at = _utc_now()

    def mark_processed(
        self,
        status: ExpenseStatus,
        processed_by: UUID,
        rejection_reason: str | None = None,
        processed_at: datetime | None = None,
    ) -> None:
        self.status = status
        self.rejection_reason = (
            rejection_reason if status == ExpenseStatus.REJECTED else None
        )
        self.processed_by = processed_by
        self.processed_at = processed_at or _utc_now()
        self.updated_at = self.processed_at
