"""
Expense ledger models.

Design principles:
- Amounts are integers in the minor unit of the expense currency
- Shares are an ordered set: one entry per participant
- Records are owned by the expense store; the engine only reads them
- The shares-sum-to-amount rule is checked by the engine, not here, so a bad
  record surfaces as MalformedExpenseError instead of a parse failure
"""

from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from pydantic import Field, field_validator

from tripsplit.models.base import ValueModel, utcnow
from tripsplit.utils.currency import normalize_code


class ExpenseShare(ValueModel):
    """What one participant owes for an expense."""
    participant_id: str
    amount_minor: int


class ExpenseRecord(ValueModel):
    """
    One expense: ``payer_id`` paid ``amount_minor`` of ``currency``.

    Invariant (checked by the engine):
    - sum(share.amount_minor for share in shares) == amount_minor
    """
    id: str
    trip_id: str
    payer_id: str
    amount_minor: int
    currency: str
    shares: Tuple[ExpenseShare, ...] = ()

    description: Optional[str] = None
    category_id: Optional[str] = None

    # Lifecycle
    is_deleted: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, value: str) -> str:
        return normalize_code(value)

    def shares_total(self) -> int:
        return sum(share.amount_minor for share in self.shares)

    def share_of(self, participant_id: str) -> int:
        """Share owed by ``participant_id`` (0 if not part of the split)."""
        for share in self.shares:
            if share.participant_id == participant_id:
                return share.amount_minor
        return 0


class ExpenseLedgerView(ValueModel):
    """Read-only snapshot of one trip's expense records at a ledger version."""
    trip_id: str
    version: int
    expenses: Tuple[ExpenseRecord, ...] = ()

    def active_expenses(self) -> Iterator[ExpenseRecord]:
        """Non-deleted records, in ledger order."""
        return (expense for expense in self.expenses if not expense.is_deleted)

    def currencies(self) -> List[str]:
        return sorted({expense.currency for expense in self.active_expenses()})

    def participant_ids(self) -> List[str]:
        """Everyone who paid or owes in an active record."""
        ids = set()
        for expense in self.active_expenses():
            ids.add(expense.payer_id)
            ids.update(share.participant_id for share in expense.shares)
        return sorted(ids)
