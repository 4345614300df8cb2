import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from portal_chat.core.config import Settings, get_settings
from portal_chat.database.store import DocumentStore, MemoryStore, MongoStore


logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo(settings: Optional[Settings] = None) -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is not None:
        return _db
    settings = settings or get_settings()
    # tz_aware keeps message timestamps comparable with the engine's UTC clock
    _client = AsyncIOMotorClient(settings.mongo_url, tz_aware=True)
    _db = _client[settings.mongo_db_name]
    try:
        await _db.command("ping")
    except PyMongoError:
        logger.exception("MongoDB at %s is unreachable", settings.mongo_url)
        _client.close()
        _client, _db = None, None
        raise
    logger.info("Connected to MongoDB database %s", settings.mongo_db_name)
    return _db


async def close_mongo_connection() -> None:
    global _client, _db
    if _client is None:
        return
    _client.close()
    _client, _db = None, None
    logger.info("MongoDB connection closed")


async def build_store(settings: Optional[Settings] = None) -> DocumentStore:
    settings = settings or get_settings()
    if settings.storage_backend == "mongo":
        db = await connect_to_mongo(settings)
        return MongoStore(db, settings.state_collection)
    logger.info("Using in-memory store; chat state will not survive a restart")
    return MemoryStore()
