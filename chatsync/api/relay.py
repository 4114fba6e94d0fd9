"""
Notification relay routes.

Open to any caller and answered in camelCase JSON. Failures use the relay's own
body, ``{"success": false, "message": ..., "error": ...}``, rather than the
``detail`` body of the chat API.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from chatsync.api.deps import get_notification_relay
from chatsync.core.errors import status_for
from chatsync.core.result import Err, ErrorKind
from chatsync.schemas.relay import (
    AppVersionResponse,
    RelayFailure,
    SendNotificationRequest,
    SendNotificationResponse,
    TokenResponse,
    TokenUpdate,
    TokenUpdateResponse,
)
from chatsync.services.app_version import must_update, needs_update, version_manifest
from chatsync.services.notification_relay import NotificationRelay

logger = logging.getLogger(__name__)

router = APIRouter()


def failure(err: Err, summary: str) -> JSONResponse:
    # Not-found bodies carry the reason as the message
    if err.kind == ErrorKind.NOT_FOUND:
        body = RelayFailure(message=err.message)
    else:
        body = RelayFailure(message=summary, error=err.message)
    return JSONResponse(status_code=status_for(err.kind), content=body.model_dump(by_alias=True, exclude_none=True))


@router.get("/")
async def root(request: Request):
    return {
        "message": f"{request.app.title} is running!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/api/send-notification", response_model=SendNotificationResponse)
async def send_notification(
    payload: SendNotificationRequest,
    relay: NotificationRelay = Depends(get_notification_relay),
):
    logger.info("Received notification request for %s in room %s", payload.receiver_id, payload.chat_room_id)
    result = await relay.dispatch(
        receiver_id=payload.receiver_id,
        sender_id=payload.sender_id,
        sender_name=payload.sender_name,
        content=payload.message,
        chat_room_id=payload.chat_room_id,
    )
    if not result.ok:
        return failure(result, "Failed to send notification")
    return SendNotificationResponse(message_id=result.value.dispatch_id)


@router.get("/api/user/{user_id}/token", response_model=TokenResponse)
async def get_user_token(user_id: str, relay: NotificationRelay = Depends(get_notification_relay)):
    result = await relay.get_token(user_id)
    if not result.ok:
        return failure(result, "Failed to get user token")
    return TokenResponse(user_id=user_id, fcm_token=result.value)


@router.post("/api/user/{user_id}/token", response_model=TokenUpdateResponse)
async def update_user_token(
    user_id: str,
    token_data: TokenUpdate,
    relay: NotificationRelay = Depends(get_notification_relay),
):
    result = await relay.set_token(user_id, token_data.fcm_token)
    if not result.ok:
        return failure(result, "Failed to update user token")
    return TokenUpdateResponse()


@router.get("/api/app/version")
async def get_app_version(request: Request, installed: Optional[str] = None):
    """Release manifest. With ``installed`` the answer also says whether to update."""
    settings = request.app.state.settings
    body = AppVersionResponse.model_validate(version_manifest(settings)).model_dump(by_alias=True)
    if installed:
        body["updateAvailable"] = needs_update(installed, settings)
        body["forceUpdate"] = must_update(installed, settings)
    return body
