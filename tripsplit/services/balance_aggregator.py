"""
BalanceAggregator - reduces a ledger to per-(participant, currency) balances.

Algorithm:
1. Skip deleted records
2. Validate each record (shares sum exactly to amount, known participants)
3. Credit the payer with the full amount
4. Debit every share participant with their share

Records are processed independently, so the result does not depend on ledger
order and recomputing the same view gives the same balances.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, Optional, Set, Tuple

from tripsplit.core.exceptions import MalformedExpenseError, UnknownParticipantError
from tripsplit.models.expense import ExpenseLedgerView, ExpenseRecord

logger = logging.getLogger(__name__)

# (participant_id, currency) -> signed minor units
BalanceKey = Tuple[str, str]
Balances = Dict[BalanceKey, int]


def validate_expense(
    expense: ExpenseRecord,
    trip_id: Optional[str] = None,
    participant_ids: Optional[Set[str]] = None
) -> None:
    """
    Re-check an expense record before it touches any balance.

    Rules:
    - Record belongs to the trip being settled
    - Amount and shares are non-negative
    - Each participant appears at most once in the split
    - Shares sum exactly to the amount (integers, no tolerance)
    - Payer and share participants belong to the trip, when the trip roster is given
    """
    if trip_id is not None and expense.trip_id != trip_id:
        raise MalformedExpenseError(expense.id, f"belongs to trip {expense.trip_id}, not {trip_id}")

    if expense.amount_minor < 0:
        raise MalformedExpenseError(expense.id, f"negative amount {expense.amount_minor}")

    seen = set()
    for share in expense.shares:
        if share.amount_minor < 0:
            raise MalformedExpenseError(
                expense.id, f"negative share {share.amount_minor} for {share.participant_id}"
            )
        if share.participant_id in seen:
            raise MalformedExpenseError(expense.id, f"duplicate share for {share.participant_id}")
        seen.add(share.participant_id)

    shares_total = expense.shares_total()
    if shares_total != expense.amount_minor:
        raise MalformedExpenseError(
            expense.id,
            f"shares sum to {shares_total} but amount is {expense.amount_minor}"
        )

    if participant_ids is not None:
        if expense.payer_id not in participant_ids:
            raise UnknownParticipantError(expense.payer_id, expense.id)
        for share in expense.shares:
            if share.participant_id not in participant_ids:
                raise UnknownParticipantError(share.participant_id, expense.id)


class BalanceAggregator:
    """Per-(participant, currency) balances for one ledger view."""

    def __init__(self, participant_ids: Optional[Iterable[str]] = None):
        self.participant_ids = set(participant_ids) if participant_ids is not None else None

    def aggregate(self, ledger: ExpenseLedgerView) -> Balances:
        """
        Returns: { (participant_id, currency): balance_minor }

        Positive = is owed, negative = owes. Keys are sorted.
        """
        balances: Balances = defaultdict(int)
        processed = 0

        for expense in ledger.active_expenses():
            validate_expense(expense, ledger.trip_id, self.participant_ids)

            balances[(expense.payer_id, expense.currency)] += expense.amount_minor
            for share in expense.shares:
                balances[(share.participant_id, expense.currency)] -= share.amount_minor
            processed += 1

        logger.debug(
            "Aggregated balances",
            extra={"trip_id": ledger.trip_id, "expenses": processed, "entries": len(balances)}
        )
        return dict(sorted(balances.items()))

    def tally_paid_and_owed(self, ledger: ExpenseLedgerView) -> Tuple[Balances, Balances]:
        """
        Gross totals behind the balances, for person summaries.

        Returns (paid, owed), both keyed by (participant_id, currency) and
        holding non-negative minor units.
        """
        paid: Balances = defaultdict(int)
        owed: Balances = defaultdict(int)

        for expense in ledger.active_expenses():
            validate_expense(expense, ledger.trip_id, self.participant_ids)
            paid[(expense.payer_id, expense.currency)] += expense.amount_minor
            for share in expense.shares:
                owed[(share.participant_id, expense.currency)] += share.amount_minor

        return dict(sorted(paid.items())), dict(sorted(owed.items()))
