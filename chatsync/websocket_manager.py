import logging
from typing import Any, Dict, List, Sequence, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocketDisconnect

from chatsync.models.user import User
from chatsync.services.feed import Subscription
from chatsync.services.user_service import UserService

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Bookkeeping for live-stream sockets.

    Every socket owns at most one live subscription, cancelled when the socket
    goes away. A user is marked online on their first socket and offline when
    the last one closes.

    Typing state is kept per room and pushed to the other participants' sockets.
    It clears when the typist's last socket closes.
    """

    def __init__(self, user_service: UserService):
        self.user_service = user_service
        self.active_connections: Dict[str, List[WebSocket]] = {}
        self.subscriptions: Dict[WebSocket, Subscription] = {}
        self.typing_users: Dict[str, Set[str]] = {}
        self.room_participants: Dict[str, List[str]] = {}

    async def connect(self, websocket: WebSocket, user: User):
        await websocket.accept()

        first = user.id not in self.active_connections
        self.active_connections.setdefault(user.id, []).append(websocket)

        if first:
            await self._set_presence(user.id, True)

    def attach(self, websocket: WebSocket, subscription: Subscription):
        previous = self.subscriptions.pop(websocket, None)
        if previous is not None:
            previous.cancel()
        self.subscriptions[websocket] = subscription

    async def disconnect(self, websocket: WebSocket, user: User):
        subscription = self.subscriptions.pop(websocket, None)
        if subscription is not None:
            subscription.cancel()

        connections = self.active_connections.get(user.id)
        if connections and websocket in connections:
            connections.remove(websocket)
            if not connections:
                del self.active_connections[user.id]
                await self._set_presence(user.id, False)

                for room_id in [r for r, users in self.typing_users.items() if user.id in users]:
                    await self.set_typing(room_id, self.room_participants[room_id], user.id, False)

    async def _set_presence(self, user_id: str, is_online: bool):
        result = await self.user_service.set_presence(user_id, is_online)
        if not result.ok:
            logger.warning("Presence update for %s failed: %s", user_id, result.message)

    async def send(self, websocket: WebSocket, event_type: str, data: Any):
        try:
            await websocket.send_json({"type": event_type, "data": jsonable_encoder(data)})
        except (WebSocketDisconnect, RuntimeError) as exc:
            # Socket closed under us; the receive loop will clean up
            logger.debug("Dropping %s event for closed socket: %s", event_type, exc)
            subscription = self.subscriptions.get(websocket)
            if subscription is not None:
                subscription.cancel()

    async def set_typing(self, room_id: str, participant_ids: Sequence[str], user_id: str, is_typing: bool):
        typists = self.typing_users.setdefault(room_id, set())
        if is_typing:
            typists.add(user_id)
            self.room_participants[room_id] = list(participant_ids)
        else:
            typists.discard(user_id)
        if not typists:
            self.typing_users.pop(room_id, None)
            self.room_participants.pop(room_id, None)

        event = {"chat_room_id": room_id, "user_id": user_id, "is_typing": is_typing}
        for participant_id in participant_ids:
            if participant_id == user_id:
                continue
            for websocket in list(self.active_connections.get(participant_id, [])):
                await self.send(websocket, "typing", event)

    def typing_in(self, room_id: str) -> Set[str]:
        return set(self.typing_users.get(room_id, ()))

    def is_user_online(self, user_id: str) -> bool:
        return user_id in self.active_connections
