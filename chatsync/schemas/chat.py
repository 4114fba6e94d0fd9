from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime


class ChatRoomResponse(BaseModel):
    id: str
    participant_ids: List[str]
    last_message: str = ""
    last_message_timestamp: Optional[datetime] = None
    last_message_sender_id: Optional[str] = None
    unread_count: Dict[str, int] = {}
    created_at: datetime

    class Config:
        from_attributes = True


class MarkAllReadResponse(BaseModel):
    chat_room_id: str
    marked: int


class DeleteChatRoomResponse(BaseModel):
    chat_room_id: str
    deleted_messages: int


class FriendshipResponse(BaseModel):
    user_id: str
    are_friends: bool
