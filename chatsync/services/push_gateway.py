"""
Firebase Cloud Messaging gateway.

``firebase_admin.messaging.send`` is blocking, so every send runs in the
threadpool. Delivery failures are re-raised as ``PushGatewayError`` carrying
the underlying error text.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging
from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class PushGatewayError(Exception):
    pass


@dataclass
class PushNotification:
    token: str
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)


def load_credentials(service_account_key: str) -> credentials.Certificate:
    """Accept either the service account JSON itself or a path to it."""
    key = service_account_key.strip()
    if key.startswith("{"):
        return credentials.Certificate(json.loads(key))
    if os.path.exists(key):
        return credentials.Certificate(key)
    raise PushGatewayError("FIREBASE_SERVICE_ACCOUNT_KEY is neither JSON nor an existing file")


class FirebasePushGateway:
    def __init__(self, app: Optional[firebase_admin.App] = None, android_channel_id: str = "chat_messages"):
        self._app = app
        self._android_channel_id = android_channel_id

    @classmethod
    def from_service_account(cls, service_account_key: str, android_channel_id: str = "chat_messages") -> "FirebasePushGateway":
        """Initialise the Firebase app once. An empty key leaves the gateway unconfigured."""
        if not service_account_key:
            logger.warning("FIREBASE_SERVICE_ACCOUNT_KEY is not set, push notifications are disabled")
            return cls(None, android_channel_id)

        try:
            app = firebase_admin.get_app()
        except ValueError:
            try:
                app = firebase_admin.initialize_app(load_credentials(service_account_key))
            except (ValueError, PushGatewayError) as exc:
                logger.error("Error initializing Firebase Admin SDK: %s", exc)
                return cls(None, android_channel_id)
            logger.info("Firebase Admin SDK initialized successfully")
        return cls(app, android_channel_id)

    @property
    def configured(self) -> bool:
        return self._app is not None

    def build_message(self, notification: PushNotification) -> messaging.Message:
        return messaging.Message(
            notification=messaging.Notification(title=notification.title, body=notification.body),
            data={key: str(value) for key, value in notification.data.items()},
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(channel_id=self._android_channel_id),
            ),
            token=notification.token,
        )

    async def send(self, notification: PushNotification) -> str:
        """Deliver one notification and return the gateway's message id."""
        if not self.configured:
            raise PushGatewayError("Push gateway is not configured")

        message = self.build_message(notification)
        try:
            return await run_in_threadpool(messaging.send, message, app=self._app)
        except (exceptions.FirebaseError, ValueError) as exc:
            raise PushGatewayError(str(exc)) from exc
