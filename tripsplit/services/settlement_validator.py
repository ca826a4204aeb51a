"""
SettlementValidator - checks a snapshot is mathematically sound before it
leaves the engine.

Checks:
1. Conservation of money: net balances sum to exactly zero
2. Every transfer has known, distinct payer and receiver
3. No two transfers share the same (payer, receiver) pair
4. Paying every transfer brings every balance to zero
5. No more than (participants with a balance - 1) transfers
6. Person summaries agree with net balances
"""

from collections import Counter
from typing import List

from tripsplit.models.base import ValueModel
from tripsplit.models.settlement import SettlementSnapshot
from tripsplit.services.debt_simplifier import apply_transfers


class ValidationResult(ValueModel):
    is_valid: bool
    issues: List[str] = []

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(is_valid=True, issues=[])

    @classmethod
    def failure(cls, issues: List[str]) -> "ValidationResult":
        return cls(is_valid=False, issues=issues)


class SettlementValidator:

    def validate(self, snapshot: SettlementSnapshot) -> ValidationResult:
        issues: List[str] = []
        issues.extend(self._conservation_of_money(snapshot))
        issues.extend(self._transfer_participants(snapshot))
        issues.extend(self._no_duplicate_pairs(snapshot))
        issues.extend(self._transfers_settle_balances(snapshot))
        issues.extend(self._transfer_count(snapshot))
        issues.extend(self._summaries_match_balances(snapshot))

        if issues:
            return ValidationResult.failure(issues)
        return ValidationResult.success()

    @staticmethod
    def _conservation_of_money(snapshot: SettlementSnapshot) -> List[str]:
        total = sum(b.amount_minor for b in snapshot.net_balances)
        if total != 0:
            return [f"Conservation of money violated: balances sum to {total}"]
        return []

    @staticmethod
    def _transfer_participants(snapshot: SettlementSnapshot) -> List[str]:
        known = set(snapshot.balance_map())
        issues = []
        for transfer in snapshot.transfers:
            if transfer.from_participant_id not in known:
                issues.append(f"Transfer has unknown payer: {transfer.from_participant_id}")
            if transfer.to_participant_id not in known:
                issues.append(f"Transfer has unknown receiver: {transfer.to_participant_id}")
            if transfer.from_participant_id == transfer.to_participant_id:
                issues.append(f"Transfer has same payer and receiver: {transfer.from_participant_id}")
        return issues

    @staticmethod
    def _no_duplicate_pairs(snapshot: SettlementSnapshot) -> List[str]:
        pairs = Counter((t.from_participant_id, t.to_participant_id) for t in snapshot.transfers)
        return [
            f"Duplicate transfers for pair {payer}->{receiver}: {count} found"
            for (payer, receiver), count in sorted(pairs.items())
            if count > 1
        ]

    @staticmethod
    def _transfers_settle_balances(snapshot: SettlementSnapshot) -> List[str]:
        remaining = apply_transfers(snapshot.balance_map(), snapshot.transfers)
        return [
            f"Balance mismatch for {participant_id}: {amount} left after transfers"
            for participant_id, amount in sorted(remaining.items())
            if amount != 0
        ]

    @staticmethod
    def _transfer_count(snapshot: SettlementSnapshot) -> List[str]:
        active = sum(1 for b in snapshot.net_balances if b.amount_minor != 0)
        limit = max(active - 1, 0)
        if len(snapshot.transfers) > limit:
            return [f"{len(snapshot.transfers)} transfers for {active} participants (limit {limit})"]
        return []

    @staticmethod
    def _summaries_match_balances(snapshot: SettlementSnapshot) -> List[str]:
        if not snapshot.person_summaries:
            return []
        balances = snapshot.balance_map()
        issues = []
        for summary in snapshot.person_summaries:
            expected = balances.get(summary.participant_id)
            if expected != summary.net_minor:
                issues.append(
                    f"Summary for {summary.participant_id} shows net {summary.net_minor}, "
                    f"balance is {expected}"
                )
        return issues
