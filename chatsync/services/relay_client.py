"""
HTTP client for the notification relay routes.

Used by the chat API to call a relay deployed elsewhere right after a
successful send. Failures come back as ``Err`` values, never raised.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from chatsync.core.result import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)


class RelayClient:
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Result[Dict[str, Any]]:
        try:
            async with self._client() as client:
                response = await client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Relay request %s %s failed: %s", method, path, exc)
            return Err.remote(exc)

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}

        if response.status_code == 404:
            return Err(ErrorKind.NOT_FOUND, body.get("message", "Not found"))
        if response.is_error:
            message = body.get("error") or body.get("message") or f"Relay returned {response.status_code}"
            return Err(ErrorKind.REMOTE_FAILURE, message)
        return Ok(body)

    async def send_notification(
        self,
        receiver_id: str,
        sender_id: str,
        sender_name: str,
        message: str,
        chat_room_id: str,
    ) -> Result[str]:
        result = await self._request(
            "POST",
            "/api/send-notification",
            {
                "receiverId": receiver_id,
                "senderId": sender_id,
                "senderName": sender_name,
                "message": message,
                "chatRoomId": chat_room_id,
            },
        )
        if not result.ok:
            logger.warning("Relay could not notify %s: %s", receiver_id, result.message)
            return result
        return Ok(result.value.get("messageId", ""))

    async def get_token(self, user_id: str) -> Result[Optional[str]]:
        result = await self._request("GET", f"/api/user/{user_id}/token")
        if not result.ok:
            return result
        return Ok(result.value.get("fcmToken"))

    async def set_token(self, user_id: str, token: Optional[str]) -> Result[None]:
        result = await self._request("POST", f"/api/user/{user_id}/token", {"fcmToken": token})
        if not result.ok:
            return result
        return Ok(None)

    async def get_app_version(self) -> Result[Dict[str, Any]]:
        return await self._request("GET", "/api/app/version")
