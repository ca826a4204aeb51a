from decimal import Decimal
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from tripsplit.models.rates import ExchangeRateSnapshot


class ExchangeRateRepository:
    """
    Rate snapshots written by the rates collaborator.

    Rates are stored as decimal strings ({"EUR": "1.0835"}) so no precision is
    lost to floating point.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["exchange_rates"]

    async def get_latest(self, base_currency: str) -> Optional[ExchangeRateSnapshot]:
        doc = await self.collection.find_one(
            {"base_currency": base_currency.upper()},
            sort=[("as_of", -1)]
        )
        if not doc:
            return None
        return ExchangeRateSnapshot(
            base_currency=doc["base_currency"],
            rates={code: Decimal(str(rate)) for code, rate in doc.get("rates", {}).items()},
            as_of=doc["as_of"]
        )
