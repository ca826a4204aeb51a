from fastapi import APIRouter, Depends, HTTPException, Query, status

from tripsplit.db.mongo import get_db
from tripsplit.models.settlement import SettlementSnapshot
from tripsplit.schemas.settlement import RecomputeResponse, SettlementResponse
from tripsplit.services.settlement_service import SettlementService
from tripsplit.services.transfer_breakdown import TransferBreakdown

router = APIRouter()


def get_settlement_service(db = Depends(get_db)) -> SettlementService:
    return SettlementService.from_db(db)


def to_response(snapshot: SettlementSnapshot) -> SettlementResponse:
    return SettlementResponse(**snapshot.model_dump(), content_hash=snapshot.content_hash())


@router.post("/{trip_id}/settlement", response_model=RecomputeResponse)
async def recompute_settlement(
    trip_id: str,
    service: SettlementService = Depends(get_settlement_service)
):
    """Recompute the trip's settlement from its current expenses and store it"""
    snapshot, stored = await service.recompute(trip_id)
    return RecomputeResponse(stored=stored, settlement=to_response(snapshot))


@router.get("/{trip_id}/settlement", response_model=SettlementResponse)
async def get_settlement(
    trip_id: str,
    service: SettlementService = Depends(get_settlement_service)
):
    """Get the latest stored settlement for a trip"""
    snapshot = await service.get_latest(trip_id)
    if not snapshot:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Settlement not found"
        )
    return to_response(snapshot)


@router.get("/{trip_id}/settlement/breakdown", response_model=TransferBreakdown)
async def get_breakdown(
    trip_id: str,
    from_id: str = Query(...),
    to_id: str = Query(...),
    service: SettlementService = Depends(get_settlement_service)
):
    """Per-expense contributions to what from_id owes to_id"""
    return await service.breakdown(trip_id, from_id, to_id)
