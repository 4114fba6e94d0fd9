from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import relationship

from .base import BaseModel, utcnow

ATTACHMENT_TYPES = ("image", "audio", "video", "file")


class Message(BaseModel):
    __tablename__ = "messages"

    chat_room_id = Column(String(64), ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)

    reply_to_id = Column(String(64), ForeignKey("messages.id"), nullable=True)
    attachment_url = Column(String(1024), nullable=True)
    attachment_type = Column(String(16), nullable=True)
    reactions = Column(MutableList.as_mutable(JSON), default=list, nullable=False)

    chat_room = relationship("ChatRoom", back_populates="messages")
    sender = relationship("User", foreign_keys=[sender_id], back_populates="sent_messages")
