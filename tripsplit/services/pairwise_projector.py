"""
PairwiseDebtProjector - the raw "who owes whom directly" view.

Works on the ledger itself rather than on net balances: every share owed by
someone other than the payer is a direct debt to the payer, kept in the
expense currency. Debts running both ways between the same two people in the
same currency collapse into one net entry (A owes B 30, B owes A 10 -> A owes
B 20). Nothing is simplified across third parties or currencies.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

from tripsplit.models.expense import ExpenseLedgerView
from tripsplit.models.settlement import PairwiseDebt
from tripsplit.services.balance_aggregator import validate_expense

logger = logging.getLogger(__name__)


class PairwiseDebtProjector:
    """Audit view of direct debts, independent of the simplified transfers."""

    def __init__(self, participant_ids: Optional[Set[str]] = None):
        self.participant_ids = set(participant_ids) if participant_ids is not None else None

    def project(self, ledger: ExpenseLedgerView) -> List[PairwiseDebt]:
        """Returns net directional debts sorted by (currency, debtor, creditor)."""
        # (low_id, high_id, currency) -> amount low owes high (negative: high owes low)
        pair_totals: Dict[Tuple[str, str, str], int] = defaultdict(int)

        for expense in ledger.active_expenses():
            validate_expense(expense, ledger.trip_id, self.participant_ids)

            for share in expense.shares:
                if share.participant_id == expense.payer_id or share.amount_minor == 0:
                    continue
                debtor, creditor = share.participant_id, expense.payer_id
                if debtor < creditor:
                    pair_totals[(debtor, creditor, expense.currency)] += share.amount_minor
                else:
                    pair_totals[(creditor, debtor, expense.currency)] -= share.amount_minor

        debts = []
        for (low, high, currency), amount in pair_totals.items():
            if amount > 0:
                debts.append(PairwiseDebt(debtor_id=low, creditor_id=high, currency=currency, amount_minor=amount))
            elif amount < 0:
                debts.append(PairwiseDebt(debtor_id=high, creditor_id=low, currency=currency, amount_minor=-amount))

        debts.sort(key=lambda d: (d.currency, d.debtor_id, d.creditor_id))
        logger.debug("Projected pairwise debts", extra={"trip_id": ledger.trip_id, "debts": len(debts)})
        return debts
