from typing import List

from fastapi import APIRouter, Depends, status

from chatsync.api.deps import get_friend_service, unwrap_or_raise
from chatsync.auth import get_current_user
from chatsync.core.errors import AppError
from chatsync.core.result import Err
from chatsync.models.user import User
from chatsync.schemas.chat import ChatRoomResponse
from chatsync.schemas.friend import FriendRequestCreate, FriendRequestResponse
from chatsync.services.friend_service import FriendService

router = APIRouter()


async def get_incoming_request(friend_service: FriendService, request_id: str, user: User):
    request = unwrap_or_raise(await friend_service.get_request(request_id))
    if request.receiver_id != user.id:
        raise AppError.from_err(Err.not_found("Request not found"))
    return request


@router.post("/requests", response_model=FriendRequestResponse, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    request_data: FriendRequestCreate,
    current_user: User = Depends(get_current_user),
    friend_service: FriendService = Depends(get_friend_service),
):
    return unwrap_or_raise(await friend_service.send_friend_request(current_user.id, request_data.receiver_id))


@router.get("/requests", response_model=List[FriendRequestResponse])
async def get_pending_requests(
    current_user: User = Depends(get_current_user),
    friend_service: FriendService = Depends(get_friend_service),
):
    """Incoming requests still waiting for an answer, newest first"""
    return unwrap_or_raise(await friend_service.get_pending_requests(current_user.id))


@router.post("/requests/{request_id}/accept", response_model=ChatRoomResponse)
async def accept_friend_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    friend_service: FriendService = Depends(get_friend_service),
):
    await get_incoming_request(friend_service, request_id, current_user)
    return unwrap_or_raise(await friend_service.accept_friend_request(request_id))


@router.post("/requests/{request_id}/decline", response_model=FriendRequestResponse)
async def decline_friend_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    friend_service: FriendService = Depends(get_friend_service),
):
    await get_incoming_request(friend_service, request_id, current_user)
    return unwrap_or_raise(await friend_service.decline_friend_request(request_id))
