from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from tripsplit.models.settlement import RecordedPayment


class PaymentRepository:
    """Settle-up payments participants have already made to each other."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["payments"]

    async def list_for_trip(self, trip_id: str) -> List[RecordedPayment]:
        docs = await self.collection.find({
            "trip_id": trip_id,
            "is_deleted": {"$ne": True}
        }).sort([("paid_at", 1), ("_id", 1)]).to_list(None)

        return [
            RecordedPayment(
                id=str(doc["_id"]),
                from_participant_id=str(doc["from_participant_id"]),
                to_participant_id=str(doc["to_participant_id"]),
                amount_minor=int(doc["amount_minor"]),
                paid_at=doc["paid_at"]
            )
            for doc in docs
        ]
