from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import Base


class ChatParticipant(Base):
    __tablename__ = "chat_participants"

    chat_room_id = Column(String(64), ForeignKey("chat_rooms.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), primary_key=True, index=True)
    unread_count = Column(Integer, default=0, nullable=False)

    chat_room = relationship("ChatRoom", back_populates="participants")
    user = relationship("User", back_populates="room_memberships")
