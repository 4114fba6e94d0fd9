import json
import logging
from typing import Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from chatsync.api.deps import get_chat_service
from chatsync.auth import user_from_token
from chatsync.core.result import Err
from chatsync.models.chat_room import ChatRoom
from chatsync.models.message import Message
from chatsync.models.user import User
from chatsync.schemas.chat import ChatRoomResponse
from chatsync.schemas.message import MessageResponse
from chatsync.services.feed import LiveQuery
from chatsync.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter()


async def authenticate(websocket: WebSocket, token: Optional[str]) -> Optional[User]:
    if not token:
        await websocket.close(code=1008, reason="Token required")
        return None

    user = await user_from_token(token, websocket)
    if user is None:
        await websocket.close(code=1008, reason="Invalid token")
    return user


FrameHandler = Callable[[Dict], Awaitable[None]]


async def stream(
    websocket: WebSocket,
    user: User,
    query: LiveQuery,
    event_type: str,
    to_response,
    handlers: Optional[Dict[str, FrameHandler]] = None,
):
    """
    Push the query's full sequence on every change until the client disconnects.

    Clients may send a bare ``ping`` or JSON frames ``{"type": ..., ...}``;
    frame types other than ``ping`` are dispatched to ``handlers``.
    """
    manager: ConnectionManager = websocket.app.state.connection_manager
    await manager.connect(websocket, user)

    async def on_change(items):
        await manager.send(websocket, event_type, [to_response(item) for item in items])

    async def on_error(err: Err):
        await manager.send(websocket, "error", {"kind": err.kind.value, "message": err.message})

    manager.attach(websocket, query.subscribe(on_change, on_error=on_error))

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await manager.send(websocket, "pong", None)
                continue

            try:
                frame = json.loads(data)
            except ValueError:
                await on_error(Err.invalid("Invalid frame"))
                continue

            frame_type = frame.get("type") if isinstance(frame, dict) else None
            if frame_type == "ping":
                await manager.send(websocket, "pong", None)
            elif handlers and frame_type in handlers:
                await handlers[frame_type](frame)
            else:
                await on_error(Err.invalid(f"Unknown frame type: {frame_type}"))
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket, user)


def room_to_response(room: ChatRoom) -> ChatRoomResponse:
    return ChatRoomResponse.model_validate(room)


def message_to_response(message: Message) -> MessageResponse:
    return MessageResponse.model_validate(message)


@router.websocket("/rooms")
async def websocket_rooms(websocket: WebSocket, token: Optional[str] = None):
    user = await authenticate(websocket, token)
    if user is None:
        return

    query = get_chat_service(websocket).watch_chat_rooms(user.id)
    await stream(websocket, user, query, "rooms", room_to_response)


@router.websocket("/chats/{chat_room_id}/messages")
async def websocket_messages(websocket: WebSocket, chat_room_id: str, token: Optional[str] = None):
    user = await authenticate(websocket, token)
    if user is None:
        return

    chat_service = get_chat_service(websocket)
    room = await chat_service.get_chat_room(chat_room_id)
    if not room.ok or user.id not in room.value.participant_ids:
        await websocket.close(code=1008, reason="Chat room not found")
        return

    participant_ids = room.value.participant_ids
    manager: ConnectionManager = websocket.app.state.connection_manager

    async def on_typing(frame: Dict):
        await manager.set_typing(chat_room_id, participant_ids, user.id, bool(frame.get("is_typing")))

    await stream(
        websocket,
        user,
        chat_service.watch_messages(chat_room_id),
        "messages",
        message_to_response,
        handlers={"typing": on_typing},
    )
