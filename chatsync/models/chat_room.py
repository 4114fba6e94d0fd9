from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class ChatRoom(BaseModel):
    __tablename__ = "chat_rooms"

    last_message = Column(Text, default="", nullable=False)
    last_message_timestamp = Column(DateTime, nullable=True, index=True)
    last_message_sender_id = Column(String(64), nullable=True)

    participants = relationship(
        "ChatParticipant",
        back_populates="chat_room",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    messages = relationship("Message", back_populates="chat_room", cascade="all, delete-orphan")

    @property
    def participant_ids(self):
        return sorted(p.user_id for p in self.participants)

    @property
    def unread_count(self):
        return {p.user_id: p.unread_count for p in self.participants}
