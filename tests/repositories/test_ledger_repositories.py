"""Tests for the repositories that feed the settlement engine."""
from decimal import Decimal

import pytest
from bson import ObjectId

from tripsplit.repositories.expense_repo import ExpenseRepository
from tripsplit.repositories.payment_repo import PaymentRepository
from tripsplit.repositories.rates_repo import ExchangeRateRepository
from tripsplit.repositories.trip_repo import TripRepository, trip_filter


def test_trip_filter_accepts_object_ids_and_strings():
    oid = ObjectId()

    assert trip_filter(str(oid)) == {"_id": {"$in": [oid, str(oid)]}}
    assert trip_filter("lisbon-2026") == {"_id": "lisbon-2026"}


@pytest.mark.asyncio
class TestTripRepository:

    async def test_get_trip(self, mock_db):
        mock_db["trips"].find_one.return_value = {
            "_id": "trip-1",
            "base_currency": "eur",
            "participant_ids": ["alice", "bob"]
        }

        trip = await TripRepository(mock_db).get_trip("trip-1")

        assert trip.trip_id == "trip-1"
        assert trip.base_currency == "EUR"
        assert trip.participant_ids == frozenset({"alice", "bob"})

    async def test_get_trip_not_found(self, mock_db):
        assert await TripRepository(mock_db).get_trip("trip-1") is None

    async def test_ledger_version_defaults_to_zero(self, mock_db):
        mock_db["trips"].find_one.return_value = {"_id": "trip-1"}

        assert await TripRepository(mock_db).get_ledger_version("trip-1") == 0

    async def test_ledger_version(self, mock_db):
        mock_db["trips"].find_one.return_value = {"_id": "trip-1", "ledger_version": 12}

        assert await TripRepository(mock_db).get_ledger_version("trip-1") == 12


@pytest.mark.asyncio
class TestExpenseRepository:

    async def test_get_ledger_view(self, mock_db, make_cursor, now):
        expense_oid = ObjectId()
        mock_db["expenses"].find.return_value = make_cursor([
            {
                "_id": expense_oid,
                "trip_id": "trip-1",
                "payer_id": "alice",
                "amount_minor": 10000,
                "currency": "usd",
                "shares": [
                    {"participant_id": "alice", "amount_minor": 5000},
                    {"participant_id": "bob", "amount_minor": 5000}
                ],
                "description": "Dinner",
                "created_at": now
            }
        ])

        ledger = await ExpenseRepository(mock_db).get_ledger_view("trip-1", 7)

        assert ledger.trip_id == "trip-1"
        assert ledger.version == 7
        expense = ledger.expenses[0]
        assert expense.id == str(expense_oid)
        assert expense.currency == "USD"
        assert expense.share_of("bob") == 5000
        assert expense.is_deleted is False
        query = mock_db["expenses"].find.call_args[0][0]
        assert query == {"trip_id": "trip-1", "is_deleted": {"$ne": True}}


@pytest.mark.asyncio
class TestExchangeRateRepository:

    async def test_rates_are_parsed_as_decimals(self, mock_db, now):
        mock_db["exchange_rates"].find_one.return_value = {
            "base_currency": "USD",
            "rates": {"EUR": "1.0835", "JPY": 0.0067},
            "as_of": now
        }

        rates = await ExchangeRateRepository(mock_db).get_latest("usd")

        assert rates.rate_for("EUR") == Decimal("1.0835")
        assert rates.rate_for("JPY") == Decimal("0.0067")
        assert rates.rate_for("USD") == Decimal(1)
        query = mock_db["exchange_rates"].find_one.call_args
        assert query[0][0] == {"base_currency": "USD"}
        assert query[1]["sort"] == [("as_of", -1)]

    async def test_no_rates(self, mock_db):
        assert await ExchangeRateRepository(mock_db).get_latest("USD") is None


@pytest.mark.asyncio
class TestPaymentRepository:

    async def test_list_for_trip(self, mock_db, make_cursor, now):
        mock_db["payments"].find.return_value = make_cursor([
            {
                "_id": "p1",
                "trip_id": "trip-1",
                "from_participant_id": "bob",
                "to_participant_id": "alice",
                "amount_minor": 2500,
                "paid_at": now
            }
        ])

        payments = await PaymentRepository(mock_db).list_for_trip("trip-1")

        assert len(payments) == 1
        assert payments[0].amount_minor == 2500
        assert payments[0].from_participant_id == "bob"
