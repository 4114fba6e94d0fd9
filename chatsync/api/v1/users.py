from typing import List

from fastapi import APIRouter, Depends, Query

from chatsync.api.deps import get_notification_relay, get_user_service, unwrap_or_raise
from chatsync.auth import get_current_user
from chatsync.models.user import User
from chatsync.schemas.relay import TokenUpdate
from chatsync.schemas.user import PresenceUpdate, UserResponse
from chatsync.services.notification_relay import NotificationRelay
from chatsync.services.user_service import UserService

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/search", response_model=List[UserResponse])
async def search_users(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    return unwrap_or_raise(await user_service.search_users(q, exclude_id=current_user.id, limit=limit))


@router.put("/me/presence", response_model=UserResponse)
async def update_presence(
    presence: PresenceUpdate,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    return unwrap_or_raise(await user_service.set_presence(current_user.id, presence.is_online))


@router.put("/me/token")
async def update_push_token(
    token_data: TokenUpdate,
    current_user: User = Depends(get_current_user),
    relay: NotificationRelay = Depends(get_notification_relay),
):
    unwrap_or_raise(await relay.set_token(current_user.id, token_data.fcm_token))
    return {"success": True}


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    return unwrap_or_raise(await user_service.get_user(user_id))
