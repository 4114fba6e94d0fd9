"""
Tests for NotificationRelay, the Firebase gateway wrapper and the
message-created trigger.
"""
import pytest

from chatsync.core.result import ErrorKind, unwrap
from chatsync.models.message import Message
from chatsync.services.notification_relay import NotificationRelay
from chatsync.services.push_gateway import FirebasePushGateway, PushGatewayError, PushNotification
from chatsync.services.triggers import MessageCreatedTrigger

from .conftest import make_user


# =============================================================================
# dispatch
# =============================================================================


class TestDispatch:
    async def test_missing_token_makes_no_gateway_call(self, relay, gateway, alice, bob):
        """Scenario B."""
        result = await relay.dispatch("bob", "alice", "Alice", "hi", "room1")

        assert result.kind == ErrorKind.NOT_FOUND
        assert result.message == "FCM token not found"
        assert gateway.sent == []

    async def test_unknown_receiver(self, relay, gateway):
        result = await relay.dispatch("nobody", "alice", "Alice", "hi", "room1")

        assert result.kind == ErrorKind.NOT_FOUND
        assert result.message == "User not found"
        assert gateway.sent == []

    async def test_delivers_to_registered_token(self, session_factory, relay, gateway, alice):
        await make_user(session_factory, "bob", user_id="bob", token="device-token-b")

        receipt = unwrap(await relay.dispatch("bob", "alice", "Alice", "hi", "room1"))

        assert receipt.success is True
        assert receipt.dispatch_id == "projects/test/messages/1"
        [notification] = gateway.sent
        assert notification.token == "device-token-b"
        assert notification.title == "Alice"
        assert notification.body == "hi"
        assert notification.data == {
            "chatRoomId": "room1",
            "senderId": "alice",
            "click_action": "FLUTTER_NOTIFICATION_CLICK",
        }

    async def test_gateway_failure_is_remote_failure(self, session_factory, relay, gateway):
        await make_user(session_factory, "bob", user_id="bob", token="device-token-b")
        gateway.fail_with = "Requested entity was not found."

        result = await relay.dispatch("bob", "alice", "Alice", "hi", "room1")

        assert result.kind == ErrorKind.REMOTE_FAILURE
        assert result.message == "Requested entity was not found."

    async def test_unconfigured_gateway(self, session_factory):
        await make_user(session_factory, "bob", user_id="bob", token="device-token-b")
        relay = NotificationRelay(session_factory, FirebasePushGateway(None))

        result = await relay.dispatch("bob", "alice", "Alice", "hi", "room1")

        assert result.kind == ErrorKind.REMOTE_FAILURE
        assert result.message == "Push gateway is not configured"


# =============================================================================
# Tokens
# =============================================================================


class TestTokens:
    async def test_set_then_get(self, relay, bob):
        unwrap(await relay.set_token("bob", "token-1"))

        assert unwrap(await relay.get_token("bob")) == "token-1"

    async def test_last_writer_wins(self, relay, bob):
        unwrap(await relay.set_token("bob", "token-1"))
        unwrap(await relay.set_token("bob", "token-2"))

        assert unwrap(await relay.get_token("bob")) == "token-2"

    async def test_no_token_yet(self, relay, bob):
        assert unwrap(await relay.get_token("bob")) is None

    async def test_unknown_user(self, relay):
        assert (await relay.get_token("nobody")).kind == ErrorKind.NOT_FOUND
        assert (await relay.set_token("nobody", "t")).kind == ErrorKind.NOT_FOUND


# =============================================================================
# Firebase message shape
# =============================================================================


class TestFirebasePushGateway:
    def test_builds_notification_with_data_and_channel(self):
        gateway = FirebasePushGateway(None, android_channel_id="chat_messages")

        message = gateway.build_message(
            PushNotification(token="t", title="Alice", body="hi", data={"chatRoomId": "r1", "senderId": "alice"})
        )

        assert message.token == "t"
        assert message.notification.title == "Alice"
        assert message.notification.body == "hi"
        assert message.data == {"chatRoomId": "r1", "senderId": "alice"}
        assert message.android.notification.channel_id == "chat_messages"

    def test_empty_key_leaves_gateway_unconfigured(self):
        gateway = FirebasePushGateway.from_service_account("")

        assert gateway.configured is False

    async def test_unconfigured_send_raises(self):
        with pytest.raises(PushGatewayError, match="not configured"):
            await FirebasePushGateway(None).send(PushNotification(token="t", title="a", body="b"))


# =============================================================================
# Message-created trigger
# =============================================================================


class TestMessageCreatedTrigger:
    async def test_new_message_is_pushed_with_sender_name(self, session_factory, feed, relay, gateway, chat_service, alice):
        await make_user(session_factory, "bob", user_id="bob", token="device-token-b")
        trigger = MessageCreatedTrigger(feed, session_factory, relay)
        trigger.start()

        message = unwrap(await chat_service.send_message("alice", "bob", "hi"))
        await feed.drain()

        [notification] = gateway.sent
        assert notification.title == "alice"
        assert notification.body == "hi"
        assert notification.data["chatRoomId"] == message.chat_room_id
        assert notification.data["senderId"] == "alice"
        trigger.stop()

    async def test_stopped_trigger_sends_nothing(self, session_factory, feed, relay, gateway, chat_service, alice):
        await make_user(session_factory, "bob", user_id="bob", token="device-token-b")
        trigger = MessageCreatedTrigger(feed, session_factory, relay)
        trigger.start()
        trigger.stop()

        unwrap(await chat_service.send_message("alice", "bob", "hi"))
        await feed.drain()

        assert gateway.sent == []
        assert trigger.running is False

    async def test_receiver_without_token_is_skipped(self, session_factory, feed, relay, gateway, chat_service, alice, bob):
        trigger = MessageCreatedTrigger(feed, session_factory, relay)
        trigger.start()

        assert (await chat_service.send_message("alice", "bob", "hi")).ok
        await feed.drain()

        assert gateway.sent == []
        trigger.stop()

    async def test_unknown_sender_gets_default_name(self, session_factory, feed, relay, gateway):
        await make_user(session_factory, "bob", user_id="bob", token="device-token-b")
        trigger = MessageCreatedTrigger(feed, session_factory, relay, default_sender_name="Kullanıcı")

        await trigger.on_message_created(
            Message(id="m1", chat_room_id="r1", sender_id="ghost", receiver_id="bob", content="boo")
        )

        assert gateway.sent[0].title == "Kullanıcı"
