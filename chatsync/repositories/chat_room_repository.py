from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from chatsync.models.chat_participant import ChatParticipant
from chatsync.models.chat_room import ChatRoom


class ChatRoomRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, participant_ids: Iterable[str], room_id: Optional[str] = None) -> ChatRoom:
        """Create a room with exactly the given participants."""
        room = ChatRoom(
            participants=[ChatParticipant(user_id=user_id, unread_count=0) for user_id in sorted(set(participant_ids))]
        )
        if room_id:
            room.id = room_id
        self.db.add(room)
        await self.db.commit()
        return room

    async def get_by_id(self, room_id: str, refresh: bool = False) -> Optional[ChatRoom]:
        stmt = select(ChatRoom).where(ChatRoom.id == room_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_between_users(self, user_id1: str, user_id2: str) -> Optional[ChatRoom]:
        """First room (oldest) whose participants include both users."""
        user1_rooms = select(ChatParticipant.chat_room_id).where(ChatParticipant.user_id == user_id1)
        user2_rooms = select(ChatParticipant.chat_room_id).where(ChatParticipant.user_id == user_id2)

        result = await self.db.execute(
            select(ChatRoom)
            .where(and_(ChatRoom.id.in_(user1_rooms), ChatRoom.id.in_(user2_rooms)))
            .order_by(ChatRoom.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_user_rooms(self, user_id: str) -> List[ChatRoom]:
        """Rooms of a user, most recent activity first, rooms without messages last."""
        user_rooms = select(ChatParticipant.chat_room_id).where(ChatParticipant.user_id == user_id)
        result = await self.db.execute(
            select(ChatRoom)
            .where(ChatRoom.id.in_(user_rooms))
            .order_by(
                ChatRoom.last_message_timestamp.is_(None),
                ChatRoom.last_message_timestamp.desc(),
                ChatRoom.created_at.desc(),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def update_summary(
        self,
        room_id: str,
        last_message: str,
        last_message_timestamp: Optional[datetime],
        last_message_sender_id: Optional[str],
    ) -> Optional[ChatRoom]:
        room = await self.get_by_id(room_id)
        if not room:
            return None

        room.last_message = last_message
        room.last_message_timestamp = last_message_timestamp
        room.last_message_sender_id = last_message_sender_id

        await self.db.commit()
        return room

    async def increment_unread(self, room_id: str, user_id: str, by: int = 1) -> Optional[int]:
        participant = await self.db.get(ChatParticipant, (room_id, user_id), populate_existing=True)
        if not participant:
            return None

        participant.unread_count = max(0, participant.unread_count + by)
        await self.db.commit()
        return participant.unread_count

    async def reset_unread(self, room_id: str, user_id: str) -> bool:
        participant = await self.db.get(ChatParticipant, (room_id, user_id), populate_existing=True)
        if not participant:
            return False

        participant.unread_count = 0
        await self.db.commit()
        return True

    async def delete(self, room_id: str) -> bool:
        room = await self.get_by_id(room_id)
        if not room:
            return False

        await self.db.execute(delete(ChatParticipant).where(ChatParticipant.chat_room_id == room_id))
        await self.db.execute(delete(ChatRoom).where(ChatRoom.id == room_id))
        await self.db.commit()
        return True
