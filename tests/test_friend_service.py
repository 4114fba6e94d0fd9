"""Tests for FriendService: PENDING -> ACCEPTED | DECLINED."""
from chatsync.core.result import ErrorKind, unwrap
from chatsync.models.friend_request import RequestStatus


class TestSendFriendRequest:
    async def test_creates_pending_request(self, friend_service, alice, bob):
        request = unwrap(await friend_service.send_friend_request("alice", "bob"))

        assert request.status == RequestStatus.PENDING
        assert (request.sender_id, request.receiver_id) == ("alice", "bob")

    async def test_duplicates_are_not_prevented(self, friend_service, alice, bob):
        unwrap(await friend_service.send_friend_request("alice", "bob"))
        unwrap(await friend_service.send_friend_request("alice", "bob"))

        pending = unwrap(await friend_service.get_pending_requests("bob"))
        assert len(pending) == 2

    async def test_rejects_self_request(self, friend_service, alice):
        result = await friend_service.send_friend_request("alice", "alice")

        assert result.kind == ErrorKind.VALIDATION_FAILURE

    async def test_unknown_receiver(self, friend_service, alice):
        result = await friend_service.send_friend_request("alice", "nobody")

        assert result.kind == ErrorKind.NOT_FOUND

    async def test_requires_sender(self, friend_service, bob):
        result = await friend_service.send_friend_request(None, "bob")

        assert result.kind == ErrorKind.NOT_AUTHENTICATED


class TestPendingRequests:
    async def test_only_incoming_pending(self, friend_service, alice, bob, carol):
        from_alice = unwrap(await friend_service.send_friend_request("alice", "bob"))
        from_carol = unwrap(await friend_service.send_friend_request("carol", "bob"))
        unwrap(await friend_service.send_friend_request("bob", "alice"))
        unwrap(await friend_service.decline_friend_request(from_alice.id))

        pending = unwrap(await friend_service.get_pending_requests("bob"))

        assert [r.id for r in pending] == [from_carol.id]


class TestAcceptFriendRequest:
    async def test_accept_creates_exactly_one_room(self, friend_service, chat_service, alice, bob):
        """Scenario C."""
        request = unwrap(await friend_service.send_friend_request("alice", "bob"))

        room = unwrap(await friend_service.accept_friend_request(request.id))

        stored = unwrap(await friend_service.get_request(request.id))
        assert stored.status == RequestStatus.ACCEPTED
        assert room.participant_ids == ["alice", "bob"]
        rooms = unwrap(await chat_service.get_chat_rooms_for_user("alice"))
        assert [r.id for r in rooms] == [room.id]

    async def test_accept_reuses_existing_room(self, friend_service, chat_service, alice, bob):
        existing = unwrap(await chat_service.send_message("bob", "alice", "hi")).chat_room_id
        request = unwrap(await friend_service.send_friend_request("alice", "bob"))

        room = unwrap(await friend_service.accept_friend_request(request.id))

        assert room.id == existing
        assert len(unwrap(await chat_service.get_chat_rooms_for_user("bob"))) == 1

    async def test_first_message_after_accept_uses_the_room(self, friend_service, chat_service, alice, bob):
        request = unwrap(await friend_service.send_friend_request("alice", "bob"))
        room = unwrap(await friend_service.accept_friend_request(request.id))

        message = unwrap(await chat_service.send_message("bob", "alice", "thanks"))

        assert message.chat_room_id == room.id

    async def test_accepted_is_final(self, friend_service, alice, bob):
        request = unwrap(await friend_service.send_friend_request("alice", "bob"))
        unwrap(await friend_service.accept_friend_request(request.id))

        again = await friend_service.accept_friend_request(request.id)
        decline = await friend_service.decline_friend_request(request.id)

        assert again.kind == ErrorKind.VALIDATION_FAILURE
        assert decline.kind == ErrorKind.VALIDATION_FAILURE

    async def test_unknown_request(self, friend_service):
        assert (await friend_service.accept_friend_request("missing")).kind == ErrorKind.NOT_FOUND


class TestDeclineFriendRequest:
    async def test_decline_creates_no_room(self, friend_service, chat_service, alice, bob):
        request = unwrap(await friend_service.send_friend_request("alice", "bob"))

        declined = unwrap(await friend_service.decline_friend_request(request.id))

        assert declined.status == RequestStatus.DECLINED
        assert unwrap(await chat_service.get_chat_rooms_for_user("alice")) == []
        assert unwrap(await chat_service.are_friends("alice", "bob")) is False

    async def test_declined_is_final(self, friend_service, alice, bob):
        request = unwrap(await friend_service.send_friend_request("alice", "bob"))
        unwrap(await friend_service.decline_friend_request(request.id))

        assert (await friend_service.accept_friend_request(request.id)).kind == ErrorKind.VALIDATION_FAILURE
