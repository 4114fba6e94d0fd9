"""
Turns "a message was sent" into "a push is delivered to the receiver's device".

Both trigger paths end up here: the HTTP route that clients call after a send,
and the message-created listener in ``chatsync.services.triggers``. Neither
deduplicates, so a receiver can get the same notification twice when both
are enabled.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from chatsync.core.result import Err, Ok, Result
from chatsync.repositories.user_repository import UserRepository
from chatsync.services.push_gateway import FirebasePushGateway, PushGatewayError, PushNotification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchReceipt:
    success: bool
    dispatch_id: str


class NotificationRelay:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        gateway: FirebasePushGateway,
        click_action: str = "FLUTTER_NOTIFICATION_CLICK",
    ):
        self._session_factory = session_factory
        self._gateway = gateway
        self._click_action = click_action

    async def dispatch(
        self,
        receiver_id: str,
        sender_id: str,
        sender_name: str,
        content: str,
        chat_room_id: str,
    ) -> Result[DispatchReceipt]:
        token_result = await self.get_token(receiver_id)
        if not token_result.ok:
            return token_result

        token = token_result.value
        if not token:
            logger.warning("No FCM token found for user %s", receiver_id)
            return Err.not_found("FCM token not found")

        notification = PushNotification(
            token=token,
            title=sender_name,
            body=content,
            data={
                "chatRoomId": chat_room_id,
                "senderId": sender_id,
                "click_action": self._click_action,
            },
        )
        try:
            dispatch_id = await self._gateway.send(notification)
        except PushGatewayError as exc:
            logger.error("Error sending notification to %s: %s", receiver_id, exc)
            return Err.remote(exc)

        logger.info("Notification %s sent to %s for room %s", dispatch_id, receiver_id, chat_room_id)
        return Ok(DispatchReceipt(success=True, dispatch_id=dispatch_id))

    async def get_token(self, user_id: str) -> Result[Optional[str]]:
        async with self._session_factory() as db:
            try:
                user = await UserRepository(db).get_by_id(user_id)
            except SQLAlchemyError as exc:
                logger.exception("Failed to load token for %s", user_id)
                return Err.remote(exc)

        if not user:
            logger.warning("User not found: %s", user_id)
            return Err.not_found("User not found")
        return Ok(user.fcm_token or None)

    async def set_token(self, user_id: str, token: Optional[str]) -> Result[None]:
        """Last writer wins."""
        async with self._session_factory() as db:
            try:
                user_repo = UserRepository(db)
                user = await user_repo.get_by_id(user_id)
                if not user:
                    return Err.not_found("User not found")
                await user_repo.set_token(user, token)
            except SQLAlchemyError as exc:
                logger.exception("Failed to update token for %s", user_id)
                return Err.remote(exc)

        logger.info("FCM token updated for %s", user_id)
        return Ok(None)
