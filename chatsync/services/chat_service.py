import hashlib
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatsync.core.result import Err, Ok, Result
from chatsync.models.chat_room import ChatRoom
from chatsync.models.message import ATTACHMENT_TYPES, Message
from chatsync.repositories.chat_room_repository import ChatRoomRepository
from chatsync.repositories.message_repository import MessageRepository
from chatsync.repositories.user_repository import UserRepository
from chatsync.services.feed import MESSAGE_CREATED, ChangeFeed, LiveQuery, messages_topic, rooms_topic

logger = logging.getLogger(__name__)


def pair_room_id(user_id1: str, user_id2: str) -> str:
    """Stable room id for an unordered pair of users."""
    joined = "\x1f".join(sorted((user_id1, user_id2)))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()[:40]


def is_party(message: Message, user_id: Optional[str]) -> bool:
    return user_id in (message.sender_id, message.receiver_id)


class ChatSyncService:
    """
    Resolves the room shared by two users and keeps its summary in step with
    the latest message.

    Every operation opens its own session and returns ``Ok``/``Err``. Writes are
    committed one at a time: a message can be stored even when the summary
    update that follows it fails.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        feed: ChangeFeed,
        deterministic_room_ids: bool = False,
    ):
        self._session_factory = session_factory
        self._feed = feed
        self._deterministic_room_ids = deterministic_room_ids

    async def resolve_room(self, db: AsyncSession, user_id1: str, user_id2: str) -> ChatRoom:
        """Find the pair's room or create it."""
        chat_repo = ChatRoomRepository(db)

        room = await chat_repo.find_between_users(user_id1, user_id2)
        if room:
            return room

        if not self._deterministic_room_ids:
            # Two first messages racing here can both create a room
            room = await chat_repo.create([user_id1, user_id2])
        else:
            room_id = pair_room_id(user_id1, user_id2)
            try:
                room = await chat_repo.create([user_id1, user_id2], room_id=room_id)
            except IntegrityError:
                await db.rollback()
                logger.info("Room %s created concurrently, reusing it", room_id)
                return await chat_repo.get_by_id(room_id, refresh=True)

        logger.info("Created chat room %s for %s and %s", room.id, user_id1, user_id2)
        self._feed.publish(rooms_topic(user_id1))
        self._feed.publish(rooms_topic(user_id2))
        return room

    async def send_message(
        self,
        sender_id: Optional[str],
        receiver_id: str,
        content: str,
        reply_to_id: Optional[str] = None,
        attachment_url: Optional[str] = None,
        attachment_type: Optional[str] = None,
    ) -> Result[Message]:
        if not sender_id:
            return Err.not_authenticated()
        if content is None or not content.strip():
            return Err.invalid("Message content must not be empty")
        if sender_id == receiver_id:
            return Err.invalid("Cannot send a message to yourself")
        if attachment_type is not None and attachment_type not in ATTACHMENT_TYPES:
            return Err.invalid(f"Unsupported attachment type: {attachment_type}")

        async with self._session_factory() as db:
            try:
                if not await UserRepository(db).get_by_id(receiver_id):
                    return Err.not_found("Receiver not found")

                room = await self.resolve_room(db, sender_id, receiver_id)

                message_repo = MessageRepository(db)
                if reply_to_id:
                    replied = await message_repo.get_by_id(reply_to_id)
                    if not replied or replied.chat_room_id != room.id:
                        return Err.not_found("Replied message not found in this chat room")

                message = await message_repo.create(
                    chat_room_id=room.id,
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    content=content,
                    reply_to_id=reply_to_id,
                    attachment_url=attachment_url,
                    attachment_type=attachment_type,
                )
                logger.info("Message %s saved in room %s", message.id, room.id)
                self._feed.publish(messages_topic(room.id))
                self._feed.publish(MESSAGE_CREATED, message)

                chat_repo = ChatRoomRepository(db)
                await chat_repo.update_summary(room.id, message.content, message.timestamp, sender_id)
                await chat_repo.increment_unread(room.id, receiver_id)
            except SQLAlchemyError as exc:
                logger.exception("Failed to send message from %s to %s", sender_id, receiver_id)
                return Err.remote(exc)

        self._feed.publish(rooms_topic(sender_id))
        self._feed.publish(rooms_topic(receiver_id))

        return Ok(message)

    async def mark_message_as_read(self, message_id: str, viewer_id: Optional[str] = None) -> Result[None]:
        """Flip one message to read. With a viewer, only its receiver may do so."""
        async with self._session_factory() as db:
            try:
                message_repo = MessageRepository(db)
                message = await message_repo.get_by_id(message_id)
                if not message or (viewer_id is not None and not is_party(message, viewer_id)):
                    return Err.not_found("Message not found")
                if viewer_id is not None and viewer_id != message.receiver_id:
                    return Err.invalid("Only the receiver can mark a message as read")

                if await message_repo.mark_read(message):
                    await ChatRoomRepository(db).increment_unread(message.chat_room_id, message.receiver_id, by=-1)
                    self._feed.publish(messages_topic(message.chat_room_id))
                    self._feed.publish(rooms_topic(message.receiver_id))
            except SQLAlchemyError as exc:
                logger.exception("Failed to mark message %s as read", message_id)
                return Err.remote(exc)
        return Ok(None)

    async def mark_all_messages_as_read(self, chat_room_id: str, viewer_id: Optional[str]) -> Result[int]:
        """Mark every unread message addressed to the viewer. Not atomic across messages."""
        if not viewer_id:
            return Err.not_authenticated()

        marked = 0
        async with self._session_factory() as db:
            try:
                chat_repo = ChatRoomRepository(db)
                if not await chat_repo.get_by_id(chat_room_id):
                    return Err.not_found("Chat room not found")

                message_repo = MessageRepository(db)
                for message in await message_repo.get_unread_for_receiver(chat_room_id, viewer_id):
                    if await message_repo.mark_read(message):
                        marked += 1

                await chat_repo.reset_unread(chat_room_id, viewer_id)
            except SQLAlchemyError as exc:
                logger.exception("Failed to mark room %s as read for %s", chat_room_id, viewer_id)
                return Err.remote(exc)
            finally:
                if marked:
                    self._feed.publish(messages_topic(chat_room_id))

        self._feed.publish(rooms_topic(viewer_id))
        return Ok(marked)

    async def get_chat_rooms_for_user(self, user_id: str) -> Result[List[ChatRoom]]:
        async with self._session_factory() as db:
            try:
                return Ok(await ChatRoomRepository(db).get_user_rooms(user_id))
            except SQLAlchemyError as exc:
                logger.exception("Failed to load chat rooms for %s", user_id)
                return Err.remote(exc)

    async def get_messages_for_room(self, chat_room_id: str) -> Result[List[Message]]:
        async with self._session_factory() as db:
            try:
                return Ok(await MessageRepository(db).get_room_messages(chat_room_id))
            except SQLAlchemyError as exc:
                logger.exception("Failed to load messages for room %s", chat_room_id)
                return Err.remote(exc)

    def watch_chat_rooms(self, user_id: str) -> LiveQuery[ChatRoom]:
        return LiveQuery(self._feed, rooms_topic(user_id), lambda: self.get_chat_rooms_for_user(user_id))

    def watch_messages(self, chat_room_id: str) -> LiveQuery[Message]:
        return LiveQuery(self._feed, messages_topic(chat_room_id), lambda: self.get_messages_for_room(chat_room_id))

    async def get_chat_room(self, chat_room_id: str) -> Result[ChatRoom]:
        async with self._session_factory() as db:
            try:
                room = await ChatRoomRepository(db).get_by_id(chat_room_id)
            except SQLAlchemyError as exc:
                return Err.remote(exc)
        if not room:
            return Err.not_found("Chat room not found")
        return Ok(room)

    async def are_friends(self, user_id1: str, user_id2: str) -> Result[bool]:
        async with self._session_factory() as db:
            try:
                room = await ChatRoomRepository(db).find_between_users(user_id1, user_id2)
            except SQLAlchemyError as exc:
                return Err.remote(exc)
        return Ok(room is not None)

    async def delete_chat_room(self, chat_room_id: str) -> Result[int]:
        """Delete the room's messages, then the room itself."""
        async with self._session_factory() as db:
            try:
                chat_repo = ChatRoomRepository(db)
                room = await chat_repo.get_by_id(chat_room_id)
                if not room:
                    return Err.not_found("Chat room not found")
                participant_ids = room.participant_ids

                deleted = await MessageRepository(db).delete_room_messages(chat_room_id)
                await chat_repo.delete(chat_room_id)
            except SQLAlchemyError as exc:
                logger.exception("Failed to delete chat room %s", chat_room_id)
                return Err.remote(exc)

        logger.info("Chat room %s deleted with %s messages", chat_room_id, deleted)
        self._feed.publish(messages_topic(chat_room_id))
        for user_id in participant_ids:
            self._feed.publish(rooms_topic(user_id))
        return Ok(deleted)

    async def delete_message(self, message_id: str, viewer_id: Optional[str]) -> Result[Message]:
        """Soft delete. Recomputes the room summary when the latest message goes away."""
        if not viewer_id:
            return Err.not_authenticated()

        async with self._session_factory() as db:
            try:
                message_repo = MessageRepository(db)
                message = await message_repo.get_by_id(message_id)
                if not message or not is_party(message, viewer_id):
                    return Err.not_found("Message not found")
                if message.sender_id != viewer_id:
                    return Err.invalid("Only the sender can delete a message")

                if not message.is_deleted:
                    was_unread = not message.is_read
                    await message_repo.soft_delete(message)

                    chat_repo = ChatRoomRepository(db)
                    if was_unread:
                        await chat_repo.increment_unread(message.chat_room_id, message.receiver_id, by=-1)
                        self._feed.publish(rooms_topic(message.receiver_id))
                    room = await chat_repo.get_by_id(message.chat_room_id)
                    latest = await message_repo.get_latest_visible(message.chat_room_id)
                    if room and (latest is None or latest.timestamp != room.last_message_timestamp):
                        if latest is None:
                            await chat_repo.update_summary(room.id, "", None, None)
                        else:
                            await chat_repo.update_summary(room.id, latest.content, latest.timestamp, latest.sender_id)
                        for user_id in room.participant_ids:
                            self._feed.publish(rooms_topic(user_id))
            except SQLAlchemyError as exc:
                logger.exception("Failed to delete message %s", message_id)
                return Err.remote(exc)

        self._feed.publish(messages_topic(message.chat_room_id))
        return Ok(message)

    async def toggle_reaction(
        self, message_id: str, emoji: str, viewer_id: Optional[str] = None
    ) -> Result[List[str]]:
        if not emoji or not emoji.strip():
            return Err.invalid("Reaction must not be empty")

        async with self._session_factory() as db:
            try:
                message_repo = MessageRepository(db)
                message = await message_repo.get_by_id(message_id)
                if not message or (viewer_id is not None and not is_party(message, viewer_id)):
                    return Err.not_found("Message not found")
                if message.is_deleted:
                    return Err.invalid("Cannot react to a deleted message")

                reactions = list(message.reactions or [])
                if emoji in reactions:
                    reactions.remove(emoji)
                else:
                    reactions.append(emoji)
                await message_repo.set_reactions(message, reactions)
            except SQLAlchemyError as exc:
                logger.exception("Failed to toggle reaction on %s", message_id)
                return Err.remote(exc)

        self._feed.publish(messages_topic(message.chat_room_id))
        return Ok(reactions)
