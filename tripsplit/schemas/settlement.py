from pydantic import BaseModel
from datetime import datetime
from typing import List

class NetBalanceResponse(BaseModel):
    participant_id: str
    amount_minor: int

class TransferResponse(BaseModel):
    from_participant_id: str
    to_participant_id: str
    amount_minor: int

class PairwiseDebtResponse(BaseModel):
    debtor_id: str
    creditor_id: str
    currency: str
    amount_minor: int

class PersonSummaryResponse(BaseModel):
    participant_id: str
    total_paid_minor: int
    total_owed_minor: int
    payments_sent_minor: int
    payments_received_minor: int
    net_minor: int

class SettlementResponse(BaseModel):
    trip_id: str
    base_currency: str
    source_ledger_version: int
    rates_as_of: datetime
    computed_at: datetime
    content_hash: str
    net_balances: List[NetBalanceResponse]
    person_summaries: List[PersonSummaryResponse]
    pairwise_debts: List[PairwiseDebtResponse]
    transfers: List[TransferResponse]

class RecomputeResponse(BaseModel):
    stored: bool
    settlement: SettlementResponse
