"""
Settlement models - everything the engine derives from a ledger.

All amounts are signed integers in minor units. Net balances, transfers and
person summaries are in the trip's base currency; pairwise debts keep the
currency of the expenses they come from.
"""

import hashlib
import json
from datetime import datetime
from typing import Dict, Tuple

from pydantic import Field, PositiveInt, model_validator

from tripsplit.models.base import ValueModel, utcnow


class NetBalance(ValueModel):
    """Positive = is owed money, negative = owes money."""
    participant_id: str
    amount_minor: int


class Transfer(ValueModel):
    """One settling payment: ``from_participant_id`` pays ``to_participant_id``."""
    from_participant_id: str
    to_participant_id: str
    amount_minor: PositiveInt


class PairwiseDebt(ValueModel):
    """Direct, unsimplified debt between two participants in one currency."""
    debtor_id: str
    creditor_id: str
    currency: str
    amount_minor: PositiveInt


class RecordedPayment(ValueModel):
    """A settle-up payment already made between two participants."""
    id: str
    from_participant_id: str
    to_participant_id: str
    amount_minor: PositiveInt
    paid_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _distinct_parties(self) -> "RecordedPayment":
        if self.from_participant_id == self.to_participant_id:
            raise ValueError("A payment needs two different participants")
        return self


class PersonSummary(ValueModel):
    """
    A participant's totals in base currency.

    net_minor = total_paid - total_owed + payments_sent - payments_received,
    up to the rounding residual absorbed by the largest balance. net_minor is
    the authoritative figure.
    """
    participant_id: str
    total_paid_minor: int = 0
    total_owed_minor: int = 0
    payments_sent_minor: int = 0
    payments_received_minor: int = 0
    net_minor: int = 0


class SettlementSnapshot(ValueModel):
    """
    Immutable output of one settlement computation.

    ``source_ledger_version`` lets the persistence layer refuse to overwrite a
    snapshot computed from a newer ledger.
    """
    trip_id: str
    base_currency: str
    source_ledger_version: int
    rates_as_of: datetime

    net_balances: Tuple[NetBalance, ...] = ()
    person_summaries: Tuple[PersonSummary, ...] = ()
    pairwise_debts: Tuple[PairwiseDebt, ...] = ()
    transfers: Tuple[Transfer, ...] = ()

    computed_at: datetime = Field(default_factory=utcnow)

    def balance_map(self) -> Dict[str, int]:
        return {b.participant_id: b.amount_minor for b in self.net_balances}

    def is_settled(self) -> bool:
        return not self.transfers

    def content_hash(self) -> str:
        """SHA-256 of the canonical JSON of everything except ``computed_at``."""
        payload = self.model_dump(mode="json", exclude={"computed_at"})
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
