"""
ExpenseRepository - builds ExpenseLedgerView snapshots from the expense store.

Expense documents:
{
    "_id": ObjectId,
    "trip_id": str,
    "payer_id": str,
    "amount_minor": int,
    "currency": "EUR",
    "shares": [{"participant_id": str, "amount_minor": int}, ...],
    "description": str | None,
    "category_id": str | None,
    "is_deleted": bool,
    "created_at": datetime
}
"""

from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from tripsplit.models.expense import ExpenseLedgerView, ExpenseRecord, ExpenseShare


class ExpenseRepository:
    """Read-only access to a trip's expense records."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["expenses"]

    async def get_ledger_view(self, trip_id: str, version: int) -> ExpenseLedgerView:
        """All non-deleted expenses of the trip, oldest first, tagged with ``version``."""
        docs = await self.collection.find({
            "trip_id": trip_id,
            "is_deleted": {"$ne": True}
        }).sort([("created_at", 1), ("_id", 1)]).to_list(None)

        return ExpenseLedgerView(
            trip_id=trip_id,
            version=version,
            expenses=tuple(self._to_record(doc) for doc in docs)
        )

    @staticmethod
    def _to_record(doc: dict) -> ExpenseRecord:
        shares: List[ExpenseShare] = [
            ExpenseShare(participant_id=str(s["participant_id"]), amount_minor=int(s["amount_minor"]))
            for s in doc.get("shares", [])
        ]
        record = {
            "id": str(doc["_id"]),
            "trip_id": str(doc["trip_id"]),
            "payer_id": str(doc["payer_id"]),
            "amount_minor": int(doc["amount_minor"]),
            "currency": doc["currency"],
            "shares": tuple(shares),
            "description": doc.get("description"),
            "category_id": doc.get("category_id"),
            "is_deleted": doc.get("is_deleted", False),
        }
        if doc.get("created_at"):
            record["created_at"] = doc["created_at"]
        return ExpenseRecord(**record)
