from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String

from .base import BaseModel, utcnow


class RequestStatus(str, PyEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class FriendRequest(BaseModel):
    __tablename__ = "friend_requests"

    sender_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(Enum(RequestStatus), default=RequestStatus.PENDING, nullable=False, index=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
