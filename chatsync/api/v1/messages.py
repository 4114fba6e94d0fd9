import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status

from chatsync.api.deps import get_chat_service, get_relay_client, unwrap_or_raise
from chatsync.auth import get_current_user
from chatsync.models.message import Message
from chatsync.models.user import User
from chatsync.schemas.message import MessageCreate, MessageResponse, ReactionsResponse, ReactionToggle
from chatsync.services.chat_service import ChatSyncService
from chatsync.services.relay_client import RelayClient

logger = logging.getLogger(__name__)

router = APIRouter()


async def notify_receiver(relay_client: RelayClient, message: Message, sender_name: str):
    result = await relay_client.send_notification(
        receiver_id=message.receiver_id,
        sender_id=message.sender_id,
        sender_name=sender_name,
        message=message.content,
        chat_room_id=message.chat_room_id,
    )
    if not result.ok:
        logger.warning("Relay notification for message %s failed: %s", message.id, result.message)


@router.post("/", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
    relay_client: Optional[RelayClient] = Depends(get_relay_client),
):
    """Send a message, creating the chat room on first contact"""
    message = unwrap_or_raise(
        await chat_service.send_message(
            current_user.id,
            message_data.receiver_id,
            message_data.content,
            reply_to_id=message_data.reply_to_id,
            attachment_url=message_data.attachment_url,
            attachment_type=message_data.attachment_type,
        )
    )

    if relay_client is not None:
        background_tasks.add_task(notify_receiver, relay_client, message, current_user.username)

    return message


@router.post("/{message_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_message_as_read(
    message_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
):
    unwrap_or_raise(await chat_service.mark_message_as_read(message_id, current_user.id))


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
):
    return unwrap_or_raise(await chat_service.delete_message(message_id, current_user.id))


@router.post("/{message_id}/reactions", response_model=ReactionsResponse)
async def toggle_reaction(
    message_id: str,
    reaction: ReactionToggle,
    current_user: User = Depends(get_current_user),
    chat_service: ChatSyncService = Depends(get_chat_service),
):
    reactions = unwrap_or_raise(await chat_service.toggle_reaction(message_id, reaction.emoji, current_user.id))
    return ReactionsResponse(message_id=message_id, reactions=reactions)
