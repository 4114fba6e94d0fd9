from typing import List, Optional

from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from chatsync.models.base import utcnow
from chatsync.models.message import Message


class MessageRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        chat_room_id: str,
        sender_id: str,
        receiver_id: str,
        content: str,
        reply_to_id: Optional[str] = None,
        attachment_url: Optional[str] = None,
        attachment_type: Optional[str] = None,
    ) -> Message:
        message = Message(
            chat_room_id=chat_room_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            timestamp=utcnow(),
            is_read=False,
            is_deleted=False,
            reply_to_id=reply_to_id,
            attachment_url=attachment_url,
            attachment_type=attachment_type,
            reactions=[],
        )
        self.db.add(message)
        await self.db.commit()
        return message

    async def get_by_id(self, message_id: str) -> Optional[Message]:
        result = await self.db.execute(
            select(Message).where(Message.id == message_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_room_messages(self, chat_room_id: str) -> List[Message]:
        """All messages of a room, oldest first."""
        result = await self.db.execute(
            select(Message)
            .where(Message.chat_room_id == chat_room_id)
            .order_by(Message.timestamp.asc(), Message.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_unread_for_receiver(self, chat_room_id: str, receiver_id: str) -> List[Message]:
        result = await self.db.execute(
            select(Message)
            .where(
                and_(
                    Message.chat_room_id == chat_room_id,
                    Message.receiver_id == receiver_id,
                    Message.is_read.is_(False),
                )
            )
            .order_by(Message.timestamp.asc())
        )
        return list(result.scalars().all())

    async def get_latest_visible(self, chat_room_id: str) -> Optional[Message]:
        """Newest message of a room that is not soft-deleted."""
        result = await self.db.execute(
            select(Message)
            .where(and_(Message.chat_room_id == chat_room_id, Message.is_deleted.is_(False)))
            .order_by(Message.timestamp.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def mark_read(self, message: Message) -> bool:
        """Flip a message to read. Returns False when it already was."""
        if message.is_read:
            return False

        message.is_read = True
        message.read_at = utcnow()
        await self.db.commit()
        return True

    async def soft_delete(self, message: Message) -> Message:
        """Keep the row in place but drop what it said."""
        message.is_deleted = True
        message.content = ""
        message.attachment_url = None
        message.attachment_type = None
        message.reactions = []
        await self.db.commit()
        return message

    async def set_reactions(self, message: Message, reactions: List[str]) -> Message:
        message.reactions = list(reactions)
        await self.db.commit()
        return message

    async def delete_room_messages(self, chat_room_id: str) -> int:
        # Newest first so replies go before the messages they reference
        ids = await self.db.execute(
            select(Message.id).where(Message.chat_room_id == chat_room_id).order_by(Message.timestamp.desc())
        )
        message_ids = [row[0] for row in ids.all()]
        for message_id in message_ids:
            await self.db.execute(delete(Message).where(Message.id == message_id))
            await self.db.commit()
        return len(message_ids)
