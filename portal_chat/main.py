import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from portal_chat.core.config import get_settings
from portal_chat.core.logging_config import configure_logging
from portal_chat.database.connection import build_store, close_mongo_connection
from portal_chat.engine import build_engine
from portal_chat.routers.conversations import router as conversations_router
from portal_chat.routers.events import router as events_router
from portal_chat.routers.notifications import router as notifications_router
from portal_chat.utils.websocket_manager import ConnectionManager, EventForwarder


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    settings = get_settings()
    configure_logging(settings.log_level)
    store = await build_store(settings)
    engine = build_engine(store, settings)
    await engine.load()

    connections = ConnectionManager()
    forwarder = EventForwarder(engine.hub, connections)
    forwarder.start()
    app.state.engine = engine
    app.state.connections = connections
    logger.info("%s ready (%s store)", settings.app_name, settings.storage_backend)
    try:
        yield
    finally:
        forwarder.stop()
        await close_mongo_connection()


app = FastAPI(title="Portal Chat", lifespan=lifespan)


app.include_router(conversations_router)
app.include_router(notifications_router)
app.include_router(events_router)


@app.get("/")
async def root():

    settings = get_settings()
    return {"message": f"{settings.app_name} is running", "storage": settings.storage_backend}
