"""
Shared fixtures.

Every test gets a fresh sqlite database file, its own change feed and a
push gateway that records what it was asked to deliver instead of calling
Firebase.

Usage:
    async def test_example(chat_service, alice, bob):
        result = await chat_service.send_message(alice.id, bob.id, "hi")
        assert result.ok
"""
import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from chatsync.auth import create_access_token
from chatsync.config import Settings
from chatsync.database import build_session_factory
from chatsync.main import create_app
from chatsync.models import Base
from chatsync.repositories.user_repository import UserRepository
from chatsync.services.chat_service import ChatSyncService
from chatsync.services.feed import ChangeFeed
from chatsync.services.friend_service import FriendService
from chatsync.services.notification_relay import NotificationRelay
from chatsync.services.push_gateway import PushGatewayError
from chatsync.services.user_service import UserService


class RecordingGateway:
    """Stands in for FCM. Set ``fail_with`` to make every send fail."""

    def __init__(self):
        self.sent = []
        self.fail_with = None

    @property
    def configured(self):
        return True

    async def send(self, notification):
        if self.fail_with is not None:
            raise PushGatewayError(self.fail_with)
        self.sent.append(notification)
        return f"projects/test/messages/{len(self.sent)}"


def sqlite_engine(path):
    # One file per test. Sessions get their own connections, so a live query
    # reading in the background never shares a transaction with a writer.
    return create_async_engine(f"sqlite+aiosqlite:///{path}")


# =============================================================================
# Store and services
# =============================================================================


@pytest.fixture
async def engine(tmp_path):
    engine = sqlite_engine(tmp_path / "chatsync.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def feed():
    feed = ChangeFeed()
    yield feed
    await feed.drain()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def relay(session_factory, gateway):
    return NotificationRelay(session_factory, gateway)


@pytest.fixture
def chat_service(session_factory, feed):
    return ChatSyncService(session_factory, feed)


@pytest.fixture
def friend_service(session_factory, chat_service):
    return FriendService(session_factory, chat_service)


@pytest.fixture
def user_service(session_factory):
    return UserService(session_factory)


# =============================================================================
# Users
# =============================================================================


async def make_user(session_factory, username, user_id=None, token=None):
    async with session_factory() as db:
        repo = UserRepository(db)
        user = await repo.create(username, user_id=user_id)
        if token:
            await repo.set_token(user, token)
        return user


@pytest.fixture
async def alice(session_factory):
    return await make_user(session_factory, "alice", user_id="alice")


@pytest.fixture
async def bob(session_factory):
    return await make_user(session_factory, "bob", user_id="bob")


@pytest.fixture
async def carol(session_factory):
    return await make_user(session_factory, "carol", user_id="carol")


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        NOTIFY_ON_MESSAGE_CREATED=False,
        NOTIFICATION_RELAY_URL="",
        FIREBASE_SERVICE_ACCOUNT_KEY="",
    )


@pytest.fixture
async def app(test_settings, engine, session_factory, gateway):
    app = create_app(settings=test_settings, engine=engine, session_factory=session_factory, gateway=gateway)
    async with app.router.lifespan_context(app):
        yield app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def alice_headers(alice):
    return auth_headers(alice.id)


@pytest.fixture
def bob_headers(bob):
    return auth_headers(bob.id)
