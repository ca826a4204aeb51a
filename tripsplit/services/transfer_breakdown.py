"""Per-expense explanation of the direct debt between two participants."""

from typing import List

from pydantic import computed_field

from tripsplit.models.base import ValueModel
from tripsplit.models.expense import ExpenseLedgerView, ExpenseRecord


class ExpenseContribution(ValueModel):
    """
    How one expense moves the debt from ``from_id`` to ``to_id``.

    net_contribution_minor > 0: from owes to more
    net_contribution_minor < 0: to owes from (reduces the debt)
    """
    expense_id: str
    description: str | None = None
    currency: str
    from_paid_minor: int
    from_owes_minor: int
    to_paid_minor: int
    to_owes_minor: int
    net_contribution_minor: int


class TransferBreakdown(ValueModel):
    from_id: str
    to_id: str
    contributions: List[ExpenseContribution] = []

    @computed_field
    @property
    def net_by_currency(self) -> dict:
        """Net debt from ``from_id`` to ``to_id`` per currency."""
        totals = {}
        for contribution in self.contributions:
            totals[contribution.currency] = totals.get(contribution.currency, 0) + contribution.net_contribution_minor
        return dict(sorted(totals.items()))

    def relevant(self) -> List[ExpenseContribution]:
        """Contributions that actually move the debt."""
        return [c for c in self.contributions if c.net_contribution_minor != 0]


class TransferBreakdownCalculator:
    def calculate(self, ledger: ExpenseLedgerView, from_id: str, to_id: str) -> TransferBreakdown:
        contributions = [
            self._contribution(expense, from_id, to_id)
            for expense in ledger.active_expenses()
        ]
        return TransferBreakdown(from_id=from_id, to_id=to_id, contributions=contributions)

    @staticmethod
    def _contribution(expense: ExpenseRecord, from_id: str, to_id: str) -> ExpenseContribution:
        from_owes = expense.share_of(from_id)
        to_owes = expense.share_of(to_id)

        # Only a debt between these two counts; a third-party payer adds nothing
        if expense.payer_id == to_id and from_id != to_id:
            net = from_owes
        elif expense.payer_id == from_id and from_id != to_id:
            net = -to_owes
        else:
            net = 0

        return ExpenseContribution(
            expense_id=expense.id,
            description=expense.description,
            currency=expense.currency,
            from_paid_minor=expense.amount_minor if expense.payer_id == from_id else 0,
            from_owes_minor=from_owes,
            to_paid_minor=expense.amount_minor if expense.payer_id == to_id else 0,
            to_owes_minor=to_owes,
            net_contribution_minor=net
        )
