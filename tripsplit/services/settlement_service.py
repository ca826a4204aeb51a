"""
SettlementService - recomputes and stores a trip's settlement.

The collaborators are injected: repositories supply the inputs, the pure
SettlementEngine computes, the SettlementRepository decides whether the
result is new enough to store. Concurrent recomputes for the same trip are
not serialized here; the version check on write keeps the newest one.
"""

import logging
from typing import Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from tripsplit.core.exceptions import SettlementError, TripNotFoundError
from tripsplit.models.base import utcnow
from tripsplit.models.rates import ExchangeRateSnapshot
from tripsplit.models.settlement import SettlementSnapshot
from tripsplit.repositories.expense_repo import ExpenseRepository
from tripsplit.repositories.payment_repo import PaymentRepository
from tripsplit.repositories.rates_repo import ExchangeRateRepository
from tripsplit.repositories.settlement_repo import SettlementRepository
from tripsplit.repositories.trip_repo import TripRepository
from tripsplit.services.settlement_engine import SettlementEngine
from tripsplit.services.transfer_breakdown import TransferBreakdown, TransferBreakdownCalculator

logger = logging.getLogger(__name__)


class SettlementService:
    def __init__(
        self,
        trips: TripRepository,
        expenses: ExpenseRepository,
        rates: ExchangeRateRepository,
        payments: PaymentRepository,
        settlements: SettlementRepository,
        engine: Optional[SettlementEngine] = None
    ):
        self.trips = trips
        self.expenses = expenses
        self.rates = rates
        self.payments = payments
        self.settlements = settlements
        self.engine = engine or SettlementEngine()

    @classmethod
    def from_db(cls, db: AsyncIOMotorDatabase) -> "SettlementService":
        return cls(
            trips=TripRepository(db),
            expenses=ExpenseRepository(db),
            rates=ExchangeRateRepository(db),
            payments=PaymentRepository(db),
            settlements=SettlementRepository(db)
        )

    async def recompute(self, trip_id: str) -> Tuple[SettlementSnapshot, bool]:
        """
        Recompute the trip's settlement from its current ledger.

        Returns (snapshot, stored). ``stored`` is False when a snapshot from a
        newer ledger version was already in place. Settlement errors propagate
        and leave the stored snapshot untouched.
        """
        trip = await self.trips.get_trip(trip_id)
        if not trip:
            raise TripNotFoundError(trip_id)

        # Version first: if the ledger moves while we read, the snapshot is
        # tagged older than its data and the next recompute replaces it
        version = await self.trips.get_ledger_version(trip_id)
        ledger = await self.expenses.get_ledger_view(trip_id, version)

        now = utcnow()
        rates = await self.rates.get_latest(trip.base_currency)
        if rates is None:
            # Base currency alone needs no rates; any foreign currency in the
            # ledger still fails in the normalizer, naming that currency
            rates = ExchangeRateSnapshot(base_currency=trip.base_currency, rates={}, as_of=now)
        payments = await self.payments.list_for_trip(trip_id)

        try:
            snapshot = self.engine.compute(trip, ledger, rates, payments, computed_at=now)
        except SettlementError as exc:
            logger.warning(
                "Settlement rejected",
                extra={"trip_id": trip_id, "ledger_version": version, "error_code": exc.error_code}
            )
            raise

        stored = await self.settlements.save_snapshot(snapshot)
        logger.info(
            "Settlement recomputed",
            extra={"trip_id": trip_id, "ledger_version": version, "stored": stored}
        )
        return snapshot, stored

    async def get_latest(self, trip_id: str) -> Optional[SettlementSnapshot]:
        return await self.settlements.get_latest(trip_id)

    async def breakdown(self, trip_id: str, from_id: str, to_id: str) -> TransferBreakdown:
        """Which expenses make ``from_id`` owe ``to_id``, expense by expense."""
        trip = await self.trips.get_trip(trip_id)
        if not trip:
            raise TripNotFoundError(trip_id)
        version = await self.trips.get_ledger_version(trip_id)
        ledger = await self.expenses.get_ledger_view(trip_id, version)
        return TransferBreakdownCalculator().calculate(ledger, from_id, to_id)
