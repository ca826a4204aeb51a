import pytest
from unittest.mock import AsyncMock, MagicMock

from tripsplit.core.exceptions import MalformedExpenseError, MissingExchangeRateError, TripNotFoundError
from tripsplit.services.settlement_engine import SettlementEngine
from tripsplit.services.settlement_service import SettlementService


@pytest.fixture
def repos(make_trip, make_ledger, make_expense, usd_rates):
    trips = MagicMock()
    trips.get_trip = AsyncMock(return_value=make_trip("alice", "bob"))
    trips.get_ledger_version = AsyncMock(return_value=3)

    expenses = MagicMock()
    expenses.get_ledger_view = AsyncMock(return_value=make_ledger(
        make_expense("e1", "alice", 10000, {"alice": 5000, "bob": 5000}),
        version=3
    ))

    rates = MagicMock()
    rates.get_latest = AsyncMock(return_value=usd_rates)

    payments = MagicMock()
    payments.list_for_trip = AsyncMock(return_value=[])

    settlements = MagicMock()
    settlements.save_snapshot = AsyncMock(return_value=True)
    settlements.get_latest = AsyncMock(return_value=None)

    return {"trips": trips, "expenses": expenses, "rates": rates, "payments": payments, "settlements": settlements}


@pytest.fixture
def service(repos):
    # Fixed rate timestamps in fixtures, so no freshness check here
    return SettlementService(**repos, engine=SettlementEngine(rate_max_age_hours=0))


@pytest.mark.asyncio
async def test_recompute_stores_new_snapshot(service, repos):
    snapshot, stored = await service.recompute("trip-1")

    assert stored is True
    assert snapshot.source_ledger_version == 3
    assert snapshot.balance_map() == {"alice": 5000, "bob": -5000}
    repos["expenses"].get_ledger_view.assert_called_once_with("trip-1", 3)
    repos["rates"].get_latest.assert_called_once_with("USD")
    repos["settlements"].save_snapshot.assert_called_once_with(snapshot)


@pytest.mark.asyncio
async def test_recompute_reports_stale_write(service, repos):
    repos["settlements"].save_snapshot.return_value = False

    _, stored = await service.recompute("trip-1")

    assert stored is False


@pytest.mark.asyncio
async def test_unknown_trip_raises(service, repos):
    repos["trips"].get_trip.return_value = None

    with pytest.raises(TripNotFoundError):
        await service.recompute("nope")

    repos["settlements"].save_snapshot.assert_not_called()


@pytest.mark.asyncio
async def test_base_currency_trip_settles_without_rates(repos):
    repos["rates"].get_latest.return_value = None
    # Default engine: rate age is checked when rates are used
    service = SettlementService(**repos, engine=SettlementEngine())

    snapshot, stored = await service.recompute("trip-1")

    assert stored is True
    assert snapshot.balance_map() == {"alice": 5000, "bob": -5000}
    assert snapshot.rates_as_of == snapshot.computed_at


@pytest.mark.asyncio
async def test_old_rates_do_not_block_base_currency_trip(repos, usd_rates):
    # usd_rates is dated in the past, well beyond the default max age
    service = SettlementService(**repos, engine=SettlementEngine(rate_max_age_hours=24))

    snapshot, _ = await service.recompute("trip-1")

    assert snapshot.rates_as_of == usd_rates.as_of
    assert snapshot.balance_map() == {"alice": 5000, "bob": -5000}


@pytest.mark.asyncio
async def test_foreign_currency_without_rates_names_that_currency(service, repos, make_ledger, make_expense):
    repos["rates"].get_latest.return_value = None
    repos["expenses"].get_ledger_view.return_value = make_ledger(
        make_expense("e1", "alice", 10000, {"alice": 5000, "bob": 5000}),
        make_expense("e2", "bob", 3000, {"alice": 3000}, currency="JPY"),
        version=3
    )

    with pytest.raises(MissingExchangeRateError) as exc_info:
        await service.recompute("trip-1")

    assert exc_info.value.currency == "JPY"
    repos["settlements"].save_snapshot.assert_not_called()


@pytest.mark.asyncio
async def test_settlement_error_keeps_previous_snapshot(service, repos, make_ledger, make_expense):
    repos["expenses"].get_ledger_view.return_value = make_ledger(
        make_expense("e1", "alice", 100, {"bob": 95}),
        version=4
    )

    with pytest.raises(MalformedExpenseError):
        await service.recompute("trip-1")

    repos["settlements"].save_snapshot.assert_not_called()


@pytest.mark.asyncio
async def test_breakdown_reads_current_ledger(service, repos):
    breakdown = await service.breakdown("trip-1", "bob", "alice")

    assert breakdown.net_by_currency == {"USD": 5000}


@pytest.mark.asyncio
async def test_from_db_wires_repositories(mock_db):
    service = SettlementService.from_db(mock_db)

    assert service.settlements.collection is mock_db["settlements"]
    assert service.expenses.collection is mock_db["expenses"]
    assert isinstance(service.engine, SettlementEngine)
