"""
SettlementEngine - the pure pipeline from ledger to SettlementSnapshot.

ledger -> BalanceAggregator -> CurrencyNormalizer -> recorded payments
       -> DebtSimplifier
       -> PairwiseDebtProjector (independently, from the raw ledger)
       -> SettlementValidator -> SettlementSnapshot

No I/O and no state kept between calls: the same inputs always give a
snapshot with the same content_hash(). Any error aborts the whole computation.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from tripsplit.core.config import settings
from tripsplit.core.exceptions import (
    ImbalancedLedgerError,
    MissingExchangeRateError,
    UnknownParticipantError,
)
from tripsplit.models.base import utcnow
from tripsplit.models.expense import ExpenseLedgerView
from tripsplit.models.rates import ExchangeRateSnapshot
from tripsplit.models.settlement import NetBalance, PersonSummary, RecordedPayment, SettlementSnapshot
from tripsplit.models.trip import TripContext
from tripsplit.services.balance_aggregator import BalanceAggregator
from tripsplit.services.currency_normalizer import CurrencyNormalizer, check_rate_freshness
from tripsplit.services.debt_simplifier import DebtSimplifier
from tripsplit.services.pairwise_projector import PairwiseDebtProjector
from tripsplit.services.settlement_validator import SettlementValidator

logger = logging.getLogger(__name__)


class SettlementEngine:
    def __init__(
        self,
        rate_max_age_hours: int = settings.RATE_MAX_AGE_HOURS,
        rounding: str = settings.SETTLEMENT_ROUNDING,
        residual_units_per_participant: int = settings.SETTLEMENT_RESIDUAL_UNITS_PER_PARTICIPANT
    ):
        self.rate_max_age_hours = rate_max_age_hours
        self.rounding = rounding
        self.residual_units_per_participant = residual_units_per_participant
        self.simplifier = DebtSimplifier()
        self.validator = SettlementValidator()

    def compute(
        self,
        trip: TripContext,
        ledger: ExpenseLedgerView,
        rates: ExchangeRateSnapshot,
        payments: Iterable[RecordedPayment] = (),
        computed_at: Optional[datetime] = None
    ) -> SettlementSnapshot:
        """
        Build a complete SettlementSnapshot for ``trip``.

        Raises MalformedExpenseError, MissingExchangeRateError,
        UnknownParticipantError, StaleExchangeRateError or ImbalancedLedgerError.
        """
        computed_at = computed_at or utcnow()

        if ledger.trip_id != trip.trip_id:
            raise ValueError(f"Ledger for trip {ledger.trip_id} passed for trip {trip.trip_id}")
        if rates.base_currency != trip.base_currency:
            raise MissingExchangeRateError(trip.base_currency, rates.base_currency)
        # Rate age only matters when the ledger actually converts something
        if any(currency != trip.base_currency for currency in ledger.currencies()):
            check_rate_freshness(rates, computed_at, self.rate_max_age_hours)

        participant_ids = set(trip.participant_ids)
        payments = sorted(payments, key=lambda p: (p.paid_at, p.id))
        self._check_payments(payments, participant_ids)

        aggregator = BalanceAggregator(participant_ids)
        normalizer = CurrencyNormalizer(rates, self.rounding, self.residual_units_per_participant)

        balances = aggregator.aggregate(ledger)
        net = normalizer.normalize(balances, participant_ids)
        net = self._apply_payments(net, payments)

        transfers = self.simplifier.simplify(net)
        pairwise = PairwiseDebtProjector(participant_ids).project(ledger)
        summaries = self._person_summaries(aggregator, normalizer, ledger, net, payments)

        snapshot = SettlementSnapshot(
            trip_id=trip.trip_id,
            base_currency=trip.base_currency,
            source_ledger_version=ledger.version,
            rates_as_of=rates.as_of,
            net_balances=tuple(net),
            person_summaries=tuple(summaries),
            pairwise_debts=tuple(pairwise),
            transfers=tuple(transfers),
            computed_at=computed_at
        )

        result = self.validator.validate(snapshot)
        if not result.is_valid:
            raise ImbalancedLedgerError(
                f"Settlement for trip {trip.trip_id} failed validation",
                issues=result.issues
            )

        logger.info(
            "Computed settlement",
            extra={
                "trip_id": trip.trip_id,
                "ledger_version": ledger.version,
                "participants": len(net),
                "transfers": len(transfers),
                "pairwise_debts": len(pairwise),
            }
        )
        return snapshot

    @staticmethod
    def _check_payments(payments: List[RecordedPayment], participant_ids: set) -> None:
        for payment in payments:
            for participant_id in (payment.from_participant_id, payment.to_participant_id):
                if participant_id not in participant_ids:
                    raise UnknownParticipantError(participant_id)

    @staticmethod
    def _apply_payments(net: List[NetBalance], payments: List[RecordedPayment]) -> List[NetBalance]:
        """A payment already made moves the payer toward zero and the receiver too."""
        if not payments:
            return net
        amounts: Dict[str, int] = {b.participant_id: b.amount_minor for b in net}
        for payment in payments:
            amounts[payment.from_participant_id] = amounts.get(payment.from_participant_id, 0) + payment.amount_minor
            amounts[payment.to_participant_id] = amounts.get(payment.to_participant_id, 0) - payment.amount_minor
        return [
            NetBalance(participant_id=participant_id, amount_minor=amount)
            for participant_id, amount in sorted(amounts.items())
        ]

    @staticmethod
    def _person_summaries(
        aggregator: BalanceAggregator,
        normalizer: CurrencyNormalizer,
        ledger: ExpenseLedgerView,
        net: List[NetBalance],
        payments: List[RecordedPayment]
    ) -> List[PersonSummary]:
        paid, owed = aggregator.tally_paid_and_owed(ledger)
        paid_base = normalizer.convert(paid)
        owed_base = normalizer.convert(owed)

        sent: Dict[str, int] = {}
        received: Dict[str, int] = {}
        for payment in payments:
            sent[payment.from_participant_id] = sent.get(payment.from_participant_id, 0) + payment.amount_minor
            received[payment.to_participant_id] = received.get(payment.to_participant_id, 0) + payment.amount_minor

        return [
            PersonSummary(
                participant_id=balance.participant_id,
                total_paid_minor=paid_base.get(balance.participant_id, 0),
                total_owed_minor=owed_base.get(balance.participant_id, 0),
                payments_sent_minor=sent.get(balance.participant_id, 0),
                payments_received_minor=received.get(balance.participant_id, 0),
                net_minor=balance.amount_minor
            )
            for balance in net
        ]
