import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from tripsplit.core.config import settings

logger = logging.getLogger(__name__)

class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    # Create indexes
    await create_indexes()
    logger.info("Connected to MongoDB", extra={"database": settings.DATABASE_NAME})

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes():
    """Create database indexes."""
    # Expense ledger reads are per trip, in creation order
    await mongodb.db["expenses"].create_index([("trip_id", 1), ("created_at", 1)])

    # Latest rates per base currency
    await mongodb.db["exchange_rates"].create_index([("base_currency", 1), ("as_of", -1)])

    # Recorded settle-up payments
    await mongodb.db["payments"].create_index("trip_id")

    # Snapshot history
    await mongodb.db["settlement_history"].create_index([("trip_id", 1), ("source_ledger_version", -1)])

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
