"""
SettlementRepository - stores the current SettlementSnapshot per trip.

Design principles:
- One document per trip holds net balances, pairwise debts and transfers
  together, so the three views are always written as one unit
- A snapshot only replaces the stored one when its source_ledger_version is
  the same or newer; the version check and the write are a single atomic
  find_one_and_update
- The replaced snapshot is then appended to settlement_history. That archive
  write is best-effort: it cannot be part of the atomic replace, so a failure
  is logged with the lost snapshot's version and hash, and the new snapshot
  stays stored
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from tripsplit.models.settlement import SettlementSnapshot

logger = logging.getLogger(__name__)


class SettlementRepository:

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["settlements"]
        self.history = db["settlement_history"]

    async def save_snapshot(self, snapshot: SettlementSnapshot) -> bool:
        """
        Store ``snapshot`` as the trip's current settlement.

        Returns False (and writes nothing) when the stored snapshot was computed
        from a newer ledger version.
        """
        doc = self._to_document(snapshot)

        try:
            previous = await self.collection.find_one_and_update(
                {
                    "_id": snapshot.trip_id,
                    "source_ledger_version": {"$lte": snapshot.source_ledger_version}
                },
                {"$set": doc},
                upsert=True,
                return_document=ReturnDocument.BEFORE
            )
        except DuplicateKeyError:
            # The filter missed because a newer version is stored, so the upsert
            # collided with the existing _id
            logger.info(
                "Skipped stale settlement snapshot",
                extra={"trip_id": snapshot.trip_id, "ledger_version": snapshot.source_ledger_version}
            )
            return False

        if previous:
            await self._archive(previous)

        return True

    async def _archive(self, previous: dict) -> None:
        previous["trip_id"] = previous.pop("_id")
        previous["superseded_at"] = datetime.now(timezone.utc)
        try:
            await self.history.insert_one(previous)
        except PyMongoError:
            logger.exception(
                "Failed to archive superseded settlement snapshot",
                extra={
                    "trip_id": previous["trip_id"],
                    "ledger_version": previous.get("source_ledger_version"),
                    "content_hash": previous.get("content_hash")
                }
            )

    async def get_latest(self, trip_id: str) -> Optional[SettlementSnapshot]:
        doc = await self.collection.find_one({"_id": trip_id})
        if not doc:
            return None
        return self._from_document(doc)

    @staticmethod
    def _to_document(snapshot: SettlementSnapshot) -> dict:
        doc = snapshot.model_dump(mode="python")
        doc["content_hash"] = snapshot.content_hash()
        return doc

    @staticmethod
    def _from_document(doc: dict) -> SettlementSnapshot:
        data = {k: v for k, v in doc.items() if k not in ("_id", "content_hash")}
        data.setdefault("trip_id", doc["_id"])
        return SettlementSnapshot(**data)
