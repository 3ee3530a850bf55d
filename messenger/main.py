import logging
import sys
from contextlib import asynccontextmanager

import stripe
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from messenger.config import settings
from messenger.database.connection import close_mongo_connection, connect_to_mongo
from messenger.exceptions import AppError
from messenger.repositories.conversation_repository import ConversationRepository
from messenger.repositories.customer_repository import CustomerRepository
from messenger.repositories.message_repository import MessageRepository
from messenger.repositories.notification_repository import NotificationRepository
from messenger.routers.chat import router as chat_router
from messenger.routers.chat import ws_router
from messenger.routers.conversations import router as conversations_router
from messenger.routers.customers import router as customers_router
from messenger.routers.devices import router as devices_router
from messenger.routers.notifications import router as notifications_router
from messenger.routers.payments import router as payments_router
from messenger.utils.files_deleter import FilesDeleter
from messenger.utils.notifications import build_push
from messenger.utils.realtime_bus import build_bus
from messenger.utils.socket_emitter import SocketEmitter
from messenger.utils.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    db = await connect_to_mongo()
    for repo in (
        ConversationRepository(db),
        MessageRepository(db),
        NotificationRepository(db),
        CustomerRepository(db),
    ):
        await repo.ensure_indexes()

    # provider clients live for the whole application
    app.state.settings = settings
    app.state.db = db
    app.state.connection_manager = ConnectionManager()
    app.state.bus = build_bus(settings.redis_url)
    app.state.emitter = SocketEmitter(app.state.bus, app.state.connection_manager)
    app.state.push = build_push(settings.fcm_service_account_file, settings.fcm_project_id)
    app.state.stripe = stripe.StripeClient(settings.stripe_secret_key) if settings.stripe_secret_key else None
    if app.state.stripe is None:
        logger.warning("STRIPE_SECRET_KEY not set, payment routes are disabled")
    app.state.files_deleter = FilesDeleter(settings.images_directory, settings.attachments_directory)
    logger.info("Messenger backend started")
    try:
        yield
    finally:
        await app.state.bus.close()
        await close_mongo_connection()


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app() -> FastAPI:
    app = FastAPI(title="Messenger backend", lifespan=lifespan)
    register_exception_handlers(app)

    app.include_router(customers_router)
    app.include_router(notifications_router)
    app.include_router(chat_router)
    app.include_router(ws_router)
    app.include_router(conversations_router)
    app.include_router(devices_router)
    app.include_router(payments_router)

    @app.get("/")
    async def root():
        collections = await app.state.db.list_collection_names()
        return {"message": "Connected to MongoDB!", "collections": collections}

    return app


app = create_app()
