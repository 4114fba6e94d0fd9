import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from chatsync.core.result import Err, Ok, Result
from chatsync.models.chat_room import ChatRoom
from chatsync.models.friend_request import FriendRequest, RequestStatus
from chatsync.repositories.friend_request_repository import FriendRequestRepository
from chatsync.repositories.user_repository import UserRepository
from chatsync.services.chat_service import ChatSyncService

logger = logging.getLogger(__name__)


class FriendService:
    """PENDING -> ACCEPTED | DECLINED. Both outcomes are final."""

    def __init__(self, session_factory: async_sessionmaker, chat_service: ChatSyncService):
        self._session_factory = session_factory
        self._chat_service = chat_service

    async def send_friend_request(self, sender_id: Optional[str], receiver_id: str) -> Result[FriendRequest]:
        # Duplicate requests between the same pair are not prevented
        if not sender_id:
            return Err.not_authenticated()
        if sender_id == receiver_id:
            return Err.invalid("Cannot send a friend request to yourself")

        async with self._session_factory() as db:
            try:
                if not await UserRepository(db).get_by_id(receiver_id):
                    return Err.not_found("User not found")
                request = await FriendRequestRepository(db).create(sender_id, receiver_id)
            except SQLAlchemyError as exc:
                logger.exception("Failed to send friend request %s -> %s", sender_id, receiver_id)
                return Err.remote(exc)

        logger.info("Friend request %s sent from %s to %s", request.id, sender_id, receiver_id)
        return Ok(request)

    async def get_pending_requests(self, user_id: Optional[str]) -> Result[List[FriendRequest]]:
        if not user_id:
            return Err.not_authenticated()

        async with self._session_factory() as db:
            try:
                return Ok(await FriendRequestRepository(db).get_pending_for_receiver(user_id))
            except SQLAlchemyError as exc:
                return Err.remote(exc)

    async def accept_friend_request(self, request_id: str) -> Result[ChatRoom]:
        """Mark the request accepted, then make sure the pair has a chat room.

        The two writes are separate: if the second fails the request stays
        accepted and the room is created lazily by the first message.
        """
        async with self._session_factory() as db:
            try:
                request_repo = FriendRequestRepository(db)
                request = await request_repo.get_by_id(request_id)
                if not request:
                    return Err.not_found("Request not found")
                if request.status != RequestStatus.PENDING:
                    return Err.invalid(f"Request is already {request.status.value.lower()}")

                await request_repo.set_status(request, RequestStatus.ACCEPTED)
                logger.info("Friend request %s accepted", request_id)

                room = await self._chat_service.resolve_room(db, request.sender_id, request.receiver_id)
            except SQLAlchemyError as exc:
                logger.exception("Failed to accept friend request %s", request_id)
                return Err.remote(exc)

        return Ok(room)

    async def decline_friend_request(self, request_id: str) -> Result[FriendRequest]:
        async with self._session_factory() as db:
            try:
                request_repo = FriendRequestRepository(db)
                request = await request_repo.get_by_id(request_id)
                if not request:
                    return Err.not_found("Request not found")
                if request.status != RequestStatus.PENDING:
                    return Err.invalid(f"Request is already {request.status.value.lower()}")

                await request_repo.set_status(request, RequestStatus.DECLINED)
            except SQLAlchemyError as exc:
                logger.exception("Failed to decline friend request %s", request_id)
                return Err.remote(exc)

        logger.info("Friend request %s declined", request_id)
        return Ok(request)

    async def get_request(self, request_id: str) -> Result[FriendRequest]:
        async with self._session_factory() as db:
            try:
                request = await FriendRequestRepository(db).get_by_id(request_id)
            except SQLAlchemyError as exc:
                return Err.remote(exc)
        if not request:
            return Err.not_found("Request not found")
        return Ok(request)
