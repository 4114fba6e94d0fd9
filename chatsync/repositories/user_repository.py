from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chatsync.models.base import utcnow
from chatsync.models.user import User


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, username: str, email: Optional[str] = None, user_id: Optional[str] = None) -> User:
        db_user = User(
            username=username,
            email=email,
            is_online=True,
            last_seen=None,
        )
        if user_id:
            db_user.id = user_id
        self.db.add(db_user)
        await self.db.commit()
        return db_user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def search_by_prefix(self, prefix: str, exclude_id: Optional[str] = None, limit: int = 20) -> List[User]:
        conditions = [User.username.startswith(prefix, autoescape=True)]
        if exclude_id:
            conditions.append(User.id != exclude_id)

        result = await self.db.execute(
            select(User).where(and_(*conditions)).order_by(User.username.asc()).limit(limit)
        )
        return list(result.scalars().all())

    async def set_token(self, user: User, token: Optional[str]) -> User:
        user.fcm_token = token
        await self.db.commit()
        return user

    async def set_presence(self, user: User, is_online: bool) -> User:
        user.is_online = is_online
        user.last_seen = None if is_online else utcnow()
        await self.db.commit()
        return user
