import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    # Naive UTC, sqlite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


class BaseModel(Base):
    __abstract__ = True

    id = Column(String(64), primary_key=True, default=new_id)
    created_at = Column(DateTime, default=utcnow, nullable=False)
