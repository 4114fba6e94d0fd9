"""Tests for the notification relay HTTP routes."""
from .conftest import make_user


class TestLiveness:
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "SnickersChat Backend is running!"
        assert "timestamp" in body

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.json() == {"status": "ok"}

    async def test_cors_is_open(self, client):
        response = await client.get("/", headers={"Origin": "https://anywhere.example"})

        assert response.headers["access-control-allow-origin"] in ("*", "https://anywhere.example")


class TestSendNotification:
    payload = {
        "receiverId": "bob",
        "senderId": "alice",
        "senderName": "Alice",
        "message": "hi",
        "chatRoomId": "room1",
    }

    async def test_sent(self, client, session_factory, gateway):
        await make_user(session_factory, "bob", user_id="bob", token="device-token-b")

        response = await client.post("/api/send-notification", json=self.payload)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "messageId": "projects/test/messages/1",
            "message": "Notification sent successfully",
        }
        assert gateway.sent[0].token == "device-token-b"

    async def test_user_not_found(self, client, gateway):
        response = await client.post("/api/send-notification", json=self.payload)

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "User not found"}

    async def test_token_not_found(self, client, gateway, bob):
        response = await client.post("/api/send-notification", json=self.payload)

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "FCM token not found"}
        assert gateway.sent == []

    async def test_gateway_failure(self, client, session_factory, gateway):
        await make_user(session_factory, "bob", user_id="bob", token="device-token-b")
        gateway.fail_with = "invalid registration token"

        response = await client.post("/api/send-notification", json=self.payload)

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "Failed to send notification",
            "error": "invalid registration token",
        }

    async def test_missing_fields(self, client):
        response = await client.post("/api/send-notification", json={"receiverId": "bob"})

        assert response.status_code == 422


class TestUserToken:
    async def test_round_trip(self, client, bob):
        update = await client.post("/api/user/bob/token", json={"fcmToken": "device-token-b"})
        fetched = await client.get("/api/user/bob/token")

        assert update.json() == {"success": True, "message": "FCM token updated successfully"}
        assert fetched.json() == {"userId": "bob", "fcmToken": "device-token-b"}

    async def test_no_token_is_null(self, client, bob):
        response = await client.get("/api/user/bob/token")

        assert response.status_code == 200
        assert response.json() == {"userId": "bob", "fcmToken": None}

    async def test_unknown_user(self, client):
        fetched = await client.get("/api/user/nobody/token")
        updated = await client.post("/api/user/nobody/token", json={"fcmToken": "t"})

        assert fetched.status_code == 404
        assert fetched.json() == {"success": False, "message": "User not found"}
        assert updated.status_code == 404


class TestAppVersion:
    async def test_manifest(self, client):
        response = await client.get("/api/app/version")

        body = response.json()
        assert body["success"] is True
        assert body["currentVersion"] == "1.0.0"
        latest = body["latestVersion"]
        assert latest["version"] == "1.0.1"
        assert latest["versionCode"] == 2
        assert latest["downloadUrl"].endswith("app-release.apk")
        assert latest["isForceUpdate"] is False
        assert latest["minVersion"] == "1.0.0"
        assert len(latest["releaseNotes"]) == 6
        assert "updateAvailable" not in body

    async def test_update_hint_for_installed_version(self, client):
        old = (await client.get("/api/app/version", params={"installed": "1.0.0"})).json()
        current = (await client.get("/api/app/version", params={"installed": "1.0.1"})).json()

        assert old["updateAvailable"] is True
        assert old["forceUpdate"] is False
        assert current["updateAvailable"] is False
