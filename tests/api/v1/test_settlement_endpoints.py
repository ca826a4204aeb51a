from unittest.mock import AsyncMock, MagicMock

import pytest

from tripsplit.api.v1.endpoints.settlements import get_settlement_service
from tripsplit.core.exceptions import MalformedExpenseError, TripNotFoundError
from tripsplit.main import app
from tripsplit.services.transfer_breakdown import TransferBreakdownCalculator


@pytest.fixture
def service():
    mock_service = MagicMock()
    mock_service.recompute = AsyncMock()
    mock_service.get_latest = AsyncMock(return_value=None)
    mock_service.breakdown = AsyncMock()

    # Override the dependency
    app.dependency_overrides[get_settlement_service] = lambda: mock_service
    try:
        yield mock_service
    finally:
        # Clean up override
        app.dependency_overrides.clear()


@pytest.fixture
def snapshot(engine, make_expense, make_ledger, make_trip, usd_rates, now):
    ledger = make_ledger(make_expense("e1", "alice", 10000, {"alice": 5000, "bob": 5000}), version=2)
    return engine.compute(make_trip("alice", "bob"), ledger, usd_rates, computed_at=now)


def test_recompute_settlement(client, service, snapshot):
    service.recompute.return_value = (snapshot, True)

    response = client.post("/api/v1/trips/trip-1/settlement")

    assert response.status_code == 200
    data = response.json()
    assert data["stored"] is True
    assert data["settlement"]["source_ledger_version"] == 2
    assert data["settlement"]["content_hash"] == snapshot.content_hash()
    assert data["settlement"]["transfers"] == [
        {"from_participant_id": "bob", "to_participant_id": "alice", "amount_minor": 5000}
    ]
    service.recompute.assert_called_once_with("trip-1")


def test_recompute_malformed_expense(client, service):
    service.recompute.side_effect = MalformedExpenseError("e9", "shares sum to 95 but amount is 100")

    response = client.post("/api/v1/trips/trip-1/settlement")

    assert response.status_code == 422
    data = response.json()
    assert data["error_code"] == "ERR_SETTLE_MALFORMED"
    assert data["details"]["expense_id"] == "e9"


def test_recompute_unknown_trip(client, service):
    service.recompute.side_effect = TripNotFoundError("trip-404")

    response = client.post("/api/v1/trips/trip-404/settlement")

    assert response.status_code == 404


def test_get_settlement(client, service, snapshot):
    service.get_latest.return_value = snapshot

    response = client.get("/api/v1/trips/trip-1/settlement")

    assert response.status_code == 200
    data = response.json()
    assert data["net_balances"] == [
        {"participant_id": "alice", "amount_minor": 5000},
        {"participant_id": "bob", "amount_minor": -5000},
    ]
    assert data["pairwise_debts"][0]["debtor_id"] == "bob"


def test_get_settlement_not_found(client, service):
    response = client.get("/api/v1/trips/trip-1/settlement")

    assert response.status_code == 404


def test_get_breakdown(client, service, make_expense, make_ledger):
    ledger = make_ledger(make_expense("e1", "alice", 10000, {"alice": 5000, "bob": 5000}, description="Dinner"))
    service.breakdown.return_value = TransferBreakdownCalculator().calculate(ledger, "bob", "alice")

    response = client.get("/api/v1/trips/trip-1/settlement/breakdown", params={"from_id": "bob", "to_id": "alice"})

    assert response.status_code == 200
    data = response.json()
    assert data["net_by_currency"] == {"USD": 5000}
    assert data["contributions"][0]["description"] == "Dinner"
    service.breakdown.assert_called_once_with("trip-1", "bob", "alice")


def test_get_breakdown_requires_both_participants(client, service):
    response = client.get("/api/v1/trips/trip-1/settlement/breakdown", params={"from_id": "bob"})

    assert response.status_code == 422
