from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from .base import BaseModel, utcnow


class User(BaseModel):
    __tablename__ = "users"

    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), nullable=True)
    is_online = Column(Boolean, default=False, nullable=False)
    last_seen = Column(DateTime, nullable=True)
    fcm_token = Column(String(512), nullable=True)
    avatar_url = Column(String(512), default="", nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    sent_messages = relationship("Message", foreign_keys="Message.sender_id", back_populates="sender")
    room_memberships = relationship("ChatParticipant", back_populates="user")
