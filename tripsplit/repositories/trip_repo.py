from typing import Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from tripsplit.models.trip import TripContext


def trip_filter(trip_id: str) -> dict:
    """Trips created by the app use ObjectId keys; imported ones may use plain strings."""
    if ObjectId.is_valid(trip_id):
        return {"_id": {"$in": [ObjectId(trip_id), trip_id]}}
    return {"_id": trip_id}


class TripRepository:
    """Read-only access to trip metadata."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["trips"]

    async def get_trip(self, trip_id: str) -> Optional[TripContext]:
        """Base currency and participant roster, or None if the trip does not exist."""
        doc = await self.collection.find_one(
            {**trip_filter(trip_id), "is_deleted": {"$ne": True}},
            {"base_currency": 1, "participant_ids": 1}
        )
        if not doc:
            return None
        return TripContext(
            trip_id=trip_id,
            base_currency=doc["base_currency"],
            participant_ids=frozenset(str(pid) for pid in doc.get("participant_ids", []))
        )

    async def get_ledger_version(self, trip_id: str) -> int:
        """
        Monotonic ledger version of the trip.

        The expense store bumps ``ledger_version`` on every expense create, edit
        or delete. A trip that never had one is at version 0.
        """
        doc = await self.collection.find_one(trip_filter(trip_id), {"ledger_version": 1})
        if not doc:
            return 0
        return int(doc.get("ledger_version", 0))
