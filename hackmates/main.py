from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase

from hackmates.config import Settings, load_settings
from hackmates.database.blob_store import BlobStore
from hackmates.database.connection import close_mongo_connection, connect_to_mongo
from hackmates.database.document_store import DocumentStore
from hackmates.errors import HackmatesError, ValidationError
from hackmates.repositories.message_repository import MessageRepository
from hackmates.repositories.user_repository import UserRepository
from hackmates.routers.auth import router as auth_router
from hackmates.routers.chat import router as chat_router
from hackmates.routers.conversations import router as conversations_router
from hackmates.routers.files import router as files_router
from hackmates.routers.profiles import router as profiles_router
from hackmates.services.auth_service import AuthContext, IdentityProvider
from hackmates.utils.logging_config import configure_logging
from hackmates.utils.realtime_bus import create_bus
from hackmates.utils.websocket_manager import ConnectionManager


async def handle_hackmates_error(request: Request, exc: HackmatesError) -> JSONResponse:
    body = {"detail": exc.detail}
    if isinstance(exc, ValidationError) and exc.fields:
        body["fields"] = exc.fields
    if exc.status_code >= 500:
        logger.warning("{} {} failed: {}", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(settings: Optional[Settings] = None, database: Optional[AsyncIOMotorDatabase] = None) -> FastAPI:
    """Build the application. ``database`` replaces the Motor connection, for tests."""
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        conn = None
        db = database
        if db is None:
            conn = connect_to_mongo(settings.mongo_url, settings.mongo_db)
            db = conn.db
        bus = create_bus(settings.redis_url)
        store = DocumentStore(db, bus)
        users = UserRepository(store)
        identity = IdentityProvider(users, store, settings)
        auth = AuthContext(identity, ConnectionManager())

        await users.ensure_indexes()
        await MessageRepository(store).ensure_indexes()
        await identity.ensure_indexes()
        await auth.init()

        app.state.settings = settings
        app.state.db = db
        app.state.store = store
        app.state.blobs = BlobStore(db, settings.public_base_url)
        app.state.auth = auth
        try:
            yield
        finally:
            await auth.close()
            await bus.close()
            if conn is not None:
                close_mongo_connection(conn)

    app = FastAPI(title="Hackmates", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(HackmatesError, handle_hackmates_error)

    app.include_router(auth_router)
    app.include_router(profiles_router)
    app.include_router(files_router)
    app.include_router(conversations_router)
    app.include_router(chat_router)

    @app.get("/")
    async def root():
        return {"message": "Hackmates API"}

    return app


app = create_app()
