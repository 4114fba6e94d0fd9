"""Services live on ``app.state``; ``create_app`` builds them once per application."""
from typing import Optional, TypeVar

from fastapi import Request
from fastapi.requests import HTTPConnection

from chatsync.config import Settings
from chatsync.core.errors import AppError
from chatsync.core.result import Err, Result
from chatsync.services.chat_service import ChatSyncService
from chatsync.services.friend_service import FriendService
from chatsync.services.notification_relay import NotificationRelay
from chatsync.services.relay_client import RelayClient
from chatsync.services.user_service import UserService

T = TypeVar("T")


def get_settings(connection: HTTPConnection) -> Settings:
    return connection.app.state.settings


def get_chat_service(connection: HTTPConnection) -> ChatSyncService:
    return connection.app.state.chat_service


def get_friend_service(connection: HTTPConnection) -> FriendService:
    return connection.app.state.friend_service


def get_user_service(connection: HTTPConnection) -> UserService:
    return connection.app.state.user_service


def get_notification_relay(request: Request) -> NotificationRelay:
    return request.app.state.notification_relay


def get_relay_client(request: Request) -> Optional[RelayClient]:
    return request.app.state.relay_client


def unwrap_or_raise(result: "Result[T]") -> T:
    if isinstance(result, Err):
        raise AppError.from_err(result)
    return result.value
