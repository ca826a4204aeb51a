from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from tripsplit.models.expense import ExpenseLedgerView, ExpenseRecord, ExpenseShare
from tripsplit.models.rates import ExchangeRateSnapshot
from tripsplit.models.trip import TripContext
from tripsplit.services.settlement_engine import SettlementEngine

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TRIP_ID = "trip-1"


def _make_expense(expense_id, payer, amount, shares, currency="USD", trip_id=TRIP_ID, **kwargs):
    return ExpenseRecord(
        id=expense_id,
        trip_id=trip_id,
        payer_id=payer,
        amount_minor=amount,
        currency=currency,
        shares=tuple(ExpenseShare(participant_id=p, amount_minor=a) for p, a in shares.items()),
        created_at=kwargs.pop("created_at", NOW),
        **kwargs
    )


def _make_ledger(*expenses, version=1, trip_id=TRIP_ID):
    return ExpenseLedgerView(trip_id=trip_id, version=version, expenses=tuple(expenses))


def _make_trip(*participants, base_currency="USD", trip_id=TRIP_ID):
    return TripContext(trip_id=trip_id, base_currency=base_currency, participant_ids=frozenset(participants))


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_expense():
    return _make_expense


@pytest.fixture
def make_ledger():
    return _make_ledger


@pytest.fixture
def make_trip():
    return _make_trip


@pytest.fixture
def trip():
    """Four-person trip in USD."""
    return _make_trip("alice", "bob", "carol", "dave")


@pytest.fixture
def usd_rates():
    return ExchangeRateSnapshot(
        base_currency="USD",
        rates={"EUR": Decimal("1.10"), "JPY": Decimal("0.0067")},
        as_of=NOW
    )


@pytest.fixture
def engine():
    return SettlementEngine(rate_max_age_hours=24)


@pytest.fixture
def mock_db():
    """Database double: db["name"] returns one MagicMock collection per name."""
    collections = {}

    def collection(name):
        if name not in collections:
            coll = MagicMock()
            coll.find_one = AsyncMock(return_value=None)
            coll.find_one_and_update = AsyncMock(return_value=None)
            coll.insert_one = AsyncMock()
            collections[name] = coll
        return collections[name]

    db = MagicMock()
    db.__getitem__.side_effect = collection
    return db


def cursor_returning(docs):
    """find() double supporting .sort(...).to_list(None)."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


@pytest.fixture
def make_cursor():
    return cursor_returning


@pytest.fixture
def client():
    """FastAPI test client; no lifespan, so no MongoDB connection is opened."""
    from tripsplit.main import app
    return TestClient(app)
