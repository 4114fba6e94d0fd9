from pydantic import BaseModel
from datetime import datetime

from chatsync.models.friend_request import RequestStatus


class FriendRequestCreate(BaseModel):
    receiver_id: str


class FriendRequestResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    status: RequestStatus
    timestamp: datetime

    class Config:
        from_attributes = True
