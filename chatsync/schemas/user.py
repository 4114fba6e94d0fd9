from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    is_online: bool
    last_seen: Optional[datetime] = None
    avatar_url: str = ""
    created_at: datetime

    class Config:
        from_attributes = True


class PresenceUpdate(BaseModel):
    is_online: bool


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
