import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from chatsync.core.result import Err, Ok, Result
from chatsync.models.user import User
from chatsync.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def create_user(self, username: str, email: Optional[str] = None, user_id: Optional[str] = None) -> Result[User]:
        username = (username or "").strip()
        if not username:
            return Err.invalid("Username must not be empty")

        async with self._session_factory() as db:
            user_repo = UserRepository(db)
            try:
                if await user_repo.get_by_username(username):
                    return Err.invalid("Username is already taken")
                user = await user_repo.create(username, email=email, user_id=user_id)
            except IntegrityError:
                await db.rollback()
                return Err.invalid("User already exists")
            except SQLAlchemyError as exc:
                logger.exception("Failed to create user %s", username)
                return Err.remote(exc)

        logger.info("User %s registered as %s", user.id, username)
        return Ok(user)

    async def get_user(self, user_id: str) -> Result[User]:
        async with self._session_factory() as db:
            try:
                user = await UserRepository(db).get_by_id(user_id)
            except SQLAlchemyError as exc:
                return Err.remote(exc)
        if not user:
            return Err.not_found("User not found")
        return Ok(user)

    async def get_by_username(self, username: str) -> Result[User]:
        async with self._session_factory() as db:
            try:
                user = await UserRepository(db).get_by_username(username)
            except SQLAlchemyError as exc:
                return Err.remote(exc)
        if not user:
            return Err.not_found("User not found")
        return Ok(user)

    async def search_users(self, prefix: str, exclude_id: Optional[str] = None, limit: int = 20) -> Result[List[User]]:
        """Prefix match on username. An empty prefix matches nobody."""
        prefix = (prefix or "").strip()
        if not prefix:
            return Ok([])

        async with self._session_factory() as db:
            try:
                return Ok(await UserRepository(db).search_by_prefix(prefix, exclude_id=exclude_id, limit=limit))
            except SQLAlchemyError as exc:
                logger.exception("User search for %r failed", prefix)
                return Err.remote(exc)

    async def set_presence(self, user_id: Optional[str], is_online: bool) -> Result[User]:
        if not user_id:
            return Err.not_authenticated()

        async with self._session_factory() as db:
            try:
                user_repo = UserRepository(db)
                user = await user_repo.get_by_id(user_id)
                if not user:
                    return Err.not_found("User not found")
                await user_repo.set_presence(user, is_online)
            except SQLAlchemyError as exc:
                logger.exception("Failed to update presence for %s", user_id)
                return Err.remote(exc)

        logger.debug("User %s is now %s", user_id, "online" if is_online else "offline")
        return Ok(user)
