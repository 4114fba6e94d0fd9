from datetime import timedelta

from fastapi import APIRouter, Depends, status

from chatsync.api.deps import get_settings, get_user_service, unwrap_or_raise
from chatsync.auth import create_access_token
from chatsync.config import Settings
from chatsync.models.user import User
from chatsync.schemas.user import Token, UserCreate, UserResponse
from chatsync.services.user_service import UserService

router = APIRouter()


def issue_token(user: User, settings: Settings) -> Token:
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return Token(
        access_token=create_access_token(user.id, expires_delta=expires, settings=settings),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserCreate,
    user_service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
):
    user = unwrap_or_raise(await user_service.create_user(user_data.username, email=user_data.email))
    return issue_token(user, settings)


@router.post("/login", response_model=Token)
async def login_user(
    user_data: UserCreate,
    user_service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
):
    """Sign in by username. There are no passwords; the device keeps the token."""
    user = unwrap_or_raise(await user_service.get_by_username(user_data.username))
    return issue_token(user, settings)
