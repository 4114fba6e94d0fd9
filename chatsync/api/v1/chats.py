from typing import List

from fastapi import APIRouter, Depends

from chatsync.api.deps import get_chat_service, unwrap_or_raise
from chatsync.auth import get_current_user
from chatsync.core.errors import AppError
from chatsync.core.result import Err
from chatsync.models.chat_room import ChatRoom
from chatsync.models.user import User
from chatsync.schemas.chat import ChatRoomResponse, DeleteChatRoomResponse, FriendshipResponse, MarkAllReadResponse
from chatsync.schemas.message import MessageResponse
from chatsync.services.chat_service import ChatSyncService

router = APIRouter()


async def get_member_room(chat_service: ChatSyncService, chat_room_id: str, user: User) -> ChatRoom:
    room = unwrap_or_raise(await chat_service.get_chat_room(chat_room_id))
    # Rooms of other users are reported as missing
    if user.id not in room.participant_ids:
        raise AppError.from_err(Err.not_found("Chat room not found"))
    return room


@router.get("/", response_model=List[ChatRoomResponse])
async def get_user_chats(
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
):
    """Rooms of the current user, most recent activity first"""
    return unwrap_or_raise(await chat_service.get_chat_rooms_for_user(current_user.id))


@router.get("/friends/{user_id}", response_model=FriendshipResponse)
async def are_friends(
    user_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
):
    friends = unwrap_or_raise(await chat_service.are_friends(current_user.id, user_id))
    return FriendshipResponse(user_id=user_id, are_friends=friends)


@router.get("/{chat_room_id}", response_model=ChatRoomResponse)
async def get_chat(
    chat_room_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
):
    return await get_member_room(chat_service, chat_room_id, current_user)


@router.get("/{chat_room_id}/messages", response_model=List[MessageResponse])
async def get_chat_messages(
    chat_room_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
):
    """Full history, oldest first. Deleted messages stay in place, blanked, with is_deleted set."""
    await get_member_room(chat_service, chat_room_id, current_user)
    return unwrap_or_raise(await chat_service.get_messages_for_room(chat_room_id))


@router.post("/{chat_room_id}/read", response_model=MarkAllReadResponse)
async def mark_chat_as_read(
    chat_room_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
):
    await get_member_room(chat_service, chat_room_id, current_user)
    marked = unwrap_or_raise(await chat_service.mark_all_messages_as_read(chat_room_id, current_user.id))
    return MarkAllReadResponse(chat_room_id=chat_room_id, marked=marked)


@router.delete("/{chat_room_id}", response_model=DeleteChatRoomResponse)
async def delete_chat(
    chat_room_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
):
    await get_member_room(chat_service, chat_room_id, current_user)
    deleted = unwrap_or_raise(await chat_service.delete_chat_room(chat_room_id))
    return DeleteChatRoomResponse(chat_room_id=chat_room_id, deleted_messages=deleted)
