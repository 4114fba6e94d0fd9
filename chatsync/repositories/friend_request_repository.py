from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chatsync.models.friend_request import FriendRequest, RequestStatus


class FriendRequestRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, sender_id: str, receiver_id: str) -> FriendRequest:
        request = FriendRequest(sender_id=sender_id, receiver_id=receiver_id, status=RequestStatus.PENDING)
        self.db.add(request)
        await self.db.commit()
        return request

    async def get_by_id(self, request_id: str) -> Optional[FriendRequest]:
        result = await self.db.execute(
            select(FriendRequest).where(FriendRequest.id == request_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_pending_for_receiver(self, receiver_id: str) -> List[FriendRequest]:
        result = await self.db.execute(
            select(FriendRequest)
            .where(
                and_(
                    FriendRequest.receiver_id == receiver_id,
                    FriendRequest.status == RequestStatus.PENDING,
                )
            )
            .order_by(FriendRequest.timestamp.desc())
        )
        return list(result.scalars().all())

    async def set_status(self, request: FriendRequest, status: RequestStatus) -> FriendRequest:
        request.status = status
        await self.db.commit()
        return request
