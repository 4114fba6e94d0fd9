import logging
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from chatsync.models.message import Message
from chatsync.repositories.user_repository import UserRepository
from chatsync.services.feed import MESSAGE_CREATED, ChangeFeed
from chatsync.services.notification_relay import NotificationRelay

logger = logging.getLogger(__name__)


class MessageCreatedTrigger:
    """Dispatches a push for every new message record, without an HTTP hop."""

    def __init__(
        self,
        feed: ChangeFeed,
        session_factory: async_sessionmaker,
        relay: NotificationRelay,
        default_sender_name: str = "Kullanıcı",
    ):
        self._feed = feed
        self._session_factory = session_factory
        self._relay = relay
        self._default_sender_name = default_sender_name
        self._remove: Optional[Callable[[], None]] = None

    @property
    def running(self) -> bool:
        return self._remove is not None

    def start(self) -> None:
        if self._remove is None:
            self._remove = self._feed.listen(MESSAGE_CREATED, self.on_message_created)
            logger.info("Message created trigger started")

    def stop(self) -> None:
        if self._remove is not None:
            self._remove()
            self._remove = None
            logger.info("Message created trigger stopped")

    async def sender_name(self, sender_id: str) -> str:
        async with self._session_factory() as db:
            try:
                sender = await UserRepository(db).get_by_id(sender_id)
            except SQLAlchemyError:
                logger.exception("Failed to load sender %s", sender_id)
                sender = None
        if sender is None or not sender.username:
            return self._default_sender_name
        return sender.username

    async def on_message_created(self, message: Message) -> None:
        logger.info("New message created: %s in room %s", message.id, message.chat_room_id)

        result = await self._relay.dispatch(
            receiver_id=message.receiver_id,
            sender_id=message.sender_id,
            sender_name=await self.sender_name(message.sender_id),
            content=message.content,
            chat_room_id=message.chat_room_id,
        )
        if not result.ok:
            logger.warning("Notification for message %s not sent: %s", message.id, result.message)
