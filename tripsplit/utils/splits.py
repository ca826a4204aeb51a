"""
Split helpers for expense producers.

The engine only accepts shares that already sum to the expense amount in
minor units. These helpers build such share lists: the integer part is
divided first and the leftover minor units go one each to the first
participants in the given order, so the result is exact and deterministic.
"""
from typing import Dict, List, Sequence

from tripsplit.models.expense import ExpenseShare


def split_equally(amount_minor: int, participant_ids: Sequence[str]) -> List[ExpenseShare]:
    """Divide ``amount_minor`` evenly, remainder to the first participants."""
    if not participant_ids:
        raise ValueError("At least one participant is required to split an expense")
    if amount_minor < 0:
        raise ValueError("Amount must be non-negative")
    if len(set(participant_ids)) != len(participant_ids):
        raise ValueError("Participants must be unique")

    count = len(participant_ids)
    per_user = amount_minor // count
    remainder = amount_minor % count

    shares = []
    for i, participant_id in enumerate(participant_ids):
        extra = 1 if i < remainder else 0
        shares.append(ExpenseShare(participant_id=participant_id, amount_minor=per_user + extra))
    return shares


def split_by_weight(amount_minor: int, weights: Dict[str, int]) -> List[ExpenseShare]:
    """
    Divide ``amount_minor`` proportionally to integer ``weights``.

    Uses largest-remainder allocation: each participant gets the floor of their
    exact share, then leftover units go to the largest fractional remainders
    (ties keep the insertion order of ``weights``).
    """
    if not weights:
        raise ValueError("At least one participant is required to split an expense")
    if amount_minor < 0:
        raise ValueError("Amount must be non-negative")
    if any(w < 0 for w in weights.values()):
        raise ValueError("Weights must be non-negative")
    total_weight = sum(weights.values())
    if total_weight == 0:
        raise ValueError("Total weight must be positive")

    floors = {}
    remainders = []
    for order, (participant_id, weight) in enumerate(weights.items()):
        quotient, remainder = divmod(amount_minor * weight, total_weight)
        floors[participant_id] = quotient
        remainders.append((-remainder, order, participant_id))

    leftover = amount_minor - sum(floors.values())
    for _, _, participant_id in sorted(remainders)[:leftover]:
        floors[participant_id] += 1

    return [
        ExpenseShare(participant_id=participant_id, amount_minor=floors[participant_id])
        for participant_id in weights
    ]
