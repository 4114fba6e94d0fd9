from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from chatsync.api.deps import get_settings, get_user_service
from chatsync.config import Settings, settings as default_settings
from chatsync.core.errors import AppError
from chatsync.core.result import Err
from chatsync.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str, expires_delta: Optional[timedelta] = None, settings: Settings = default_settings
) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({"sub": user_id, "exp": expire}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, settings: Settings = default_settings) -> Optional[str]:
    """User id carried by the token, or None when it is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


async def user_from_token(token: Optional[str], connection: HTTPConnection) -> Optional[User]:
    """Resolve a bearer token against the settings and users of the connection's app."""
    if not token:
        return None
    user_id = decode_access_token(token, get_settings(connection))
    if not user_id:
        return None
    result = await get_user_service(connection).get_user(user_id)
    return result.value if result.ok else None


async def get_current_user(
    connection: HTTPConnection,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    user = await user_from_token(credentials.credentials if credentials else None, connection)
    if user is None:
        raise AppError.from_err(Err.not_authenticated())
    return user
