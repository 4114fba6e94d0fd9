from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime


class MessageCreate(BaseModel):
    receiver_id: str
    content: str
    reply_to_id: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_type: Optional[Literal["image", "audio", "video", "file"]] = None


class MessageResponse(BaseModel):
    id: str
    chat_room_id: str
    sender_id: str
    receiver_id: str
    content: str
    timestamp: datetime
    is_read: bool
    read_at: Optional[datetime] = None
    is_deleted: bool
    reply_to_id: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_type: Optional[str] = None
    reactions: List[str] = []

    class Config:
        from_attributes = True


class ReactionToggle(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=32)


class ReactionsResponse(BaseModel):
    message_id: str
    reactions: List[str]
