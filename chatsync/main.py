import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from chatsync.config import Settings, settings as default_settings
from chatsync.core.errors import register_exception_handlers
from chatsync.core.logging import configure_logging
from chatsync.database import AsyncSessionLocal, async_engine, create_tables
from chatsync.services.chat_service import ChatSyncService
from chatsync.services.feed import ChangeFeed
from chatsync.services.friend_service import FriendService
from chatsync.services.notification_relay import NotificationRelay
from chatsync.services.push_gateway import FirebasePushGateway
from chatsync.services.relay_client import RelayClient
from chatsync.services.triggers import MessageCreatedTrigger
from chatsync.services.user_service import UserService
from chatsync.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[AsyncEngine] = None,
    session_factory: Optional[async_sessionmaker] = None,
    gateway: Optional[FirebasePushGateway] = None,
    relay_client: Optional[RelayClient] = None,
) -> FastAPI:
    settings = settings or default_settings
    engine = engine or async_engine
    session_factory = session_factory or AsyncSessionLocal

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await create_tables(engine)

        state = app.state
        if state.notification_relay is None:
            push_gateway = FirebasePushGateway.from_service_account(
                settings.FIREBASE_SERVICE_ACCOUNT_KEY, settings.ANDROID_CHANNEL_ID
            )
            state.notification_relay = NotificationRelay(
                session_factory, push_gateway, click_action=settings.NOTIFICATION_CLICK_ACTION
            )

        trigger = MessageCreatedTrigger(
            state.feed, session_factory, state.notification_relay, settings.DEFAULT_SENDER_NAME
        )
        if settings.NOTIFY_ON_MESSAGE_CREATED:
            trigger.start()
        state.trigger = trigger

        logger.info("%s %s started", settings.APP_NAME, settings.VERSION)
        yield

        trigger.stop()
        await state.feed.drain()
        logger.info("%s stopped", settings.APP_NAME)

    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        description="Chat synchronization and push notification relay",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    feed = ChangeFeed()
    user_service = UserService(session_factory)
    chat_service = ChatSyncService(session_factory, feed, deterministic_room_ids=settings.DETERMINISTIC_ROOM_IDS)

    app.state.settings = settings
    app.state.feed = feed
    app.state.user_service = user_service
    app.state.chat_service = chat_service
    app.state.friend_service = FriendService(session_factory, chat_service)
    app.state.connection_manager = ConnectionManager(user_service)
    app.state.notification_relay = (
        NotificationRelay(session_factory, gateway, click_action=settings.NOTIFICATION_CLICK_ACTION)
        if gateway is not None
        else None
    )
    if relay_client is None and settings.NOTIFICATION_RELAY_URL:
        relay_client = RelayClient(settings.NOTIFICATION_RELAY_URL)
    app.state.relay_client = relay_client

    from chatsync.api import relay
    from chatsync.api.v1 import auth, chats, friends, messages, users, websocket

    app.include_router(relay.router, tags=["relay"])
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/v1/users", tags=["users"])
    app.include_router(chats.router, prefix="/api/v1/chats", tags=["chats"])
    app.include_router(messages.router, prefix="/api/v1/messages", tags=["messages"])
    app.include_router(friends.router, prefix="/api/v1/friends", tags=["friends"])
    app.include_router(websocket.router, prefix="/api/v1/ws", tags=["websocket"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("chatsync.main:app", host="0.0.0.0", port=default_settings.PORT, reload=default_settings.DEBUG)
