from .base import Base
from .user import User
from .chat_room import ChatRoom
from .chat_participant import ChatParticipant
from .message import ATTACHMENT_TYPES, Message
from .friend_request import FriendRequest, RequestStatus

__all__ = [
    "Base",
    "User",
    "ChatRoom",
    "ChatParticipant",
    "Message",
    "ATTACHMENT_TYPES",
    "FriendRequest",
    "RequestStatus",
]
