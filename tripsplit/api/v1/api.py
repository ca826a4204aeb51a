from fastapi import APIRouter
from tripsplit.api.v1.endpoints import settlements

api_router = APIRouter()

api_router.include_router(settlements.router, prefix="/trips", tags=["settlements"])
