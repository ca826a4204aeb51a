"""
DebtSimplifier - turns zero-sum net balances into settling transfers.

Greedy largest-magnitude matching:
1. Split participants into debtors (< 0) and creditors (> 0); zeros drop out
2. Pair the largest outstanding debt with the largest outstanding credit
3. Transfer min(debt, credit) between them
4. Put back whoever still has something outstanding, repeat

Each round settles at least one participant and the last round settles two,
so n participants never need more than n-1 transfers. Equal magnitudes are
ordered by participant id, which makes the output reproducible.

The result is near-minimal, not guaranteed minimal: finding the true minimum
number of transfers is NP-hard.
"""

import heapq
import logging
from typing import Dict, Iterable, List, Tuple

from tripsplit.core.exceptions import ImbalancedLedgerError
from tripsplit.models.settlement import NetBalance, Transfer

logger = logging.getLogger(__name__)


class DebtSimplifier:
    """Greedy settlement of NetBalances."""

    def simplify(self, net_balances: Iterable[NetBalance]) -> List[Transfer]:
        balances = self._to_map(net_balances)

        outstanding = {pid: amount for pid, amount in balances.items() if amount != 0}
        if len(outstanding) == 1:
            (participant_id, amount), = outstanding.items()
            raise ImbalancedLedgerError(
                f"Only {participant_id} has a non-zero balance ({amount})",
                residual_minor=amount
            )

        total = sum(outstanding.values())
        if total != 0:
            raise ImbalancedLedgerError(
                f"Net balances sum to {total}, expected 0",
                residual_minor=total
            )

        # Min-heaps on (-magnitude, participant_id): largest first, lowest id on ties
        debtors: List[Tuple[int, str]] = [(amount, pid) for pid, amount in outstanding.items() if amount < 0]
        creditors: List[Tuple[int, str]] = [(-amount, pid) for pid, amount in outstanding.items() if amount > 0]
        heapq.heapify(debtors)
        heapq.heapify(creditors)

        transfers: List[Transfer] = []
        while debtors and creditors:
            neg_debt, debtor_id = heapq.heappop(debtors)
            neg_credit, creditor_id = heapq.heappop(creditors)

            amount = min(-neg_debt, -neg_credit)
            transfers.append(Transfer(
                from_participant_id=debtor_id,
                to_participant_id=creditor_id,
                amount_minor=amount
            ))

            if -neg_debt > amount:
                heapq.heappush(debtors, (neg_debt + amount, debtor_id))
            if -neg_credit > amount:
                heapq.heappush(creditors, (neg_credit + amount, creditor_id))

        logger.debug(
            "Simplified debts",
            extra={"participants": len(outstanding), "transfers": len(transfers)}
        )
        return transfers

    @staticmethod
    def _to_map(net_balances: Iterable[NetBalance]) -> Dict[str, int]:
        balances: Dict[str, int] = {}
        for balance in net_balances:
            if balance.participant_id in balances:
                raise ValueError(f"Duplicate net balance for {balance.participant_id}")
            balances[balance.participant_id] = balance.amount_minor
        return balances


def apply_transfers(balances: Dict[str, int], transfers: Iterable[Transfer]) -> Dict[str, int]:
    """
    Balances after the transfers are paid.

    The payer's debt shrinks (+amount), the receiver's credit shrinks (-amount).
    """
    result = dict(balances)
    for transfer in transfers:
        result[transfer.from_participant_id] = result.get(transfer.from_participant_id, 0) + transfer.amount_minor
        result[transfer.to_participant_id] = result.get(transfer.to_participant_id, 0) - transfer.amount_minor
    return result
