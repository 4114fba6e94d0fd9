"""
Tests for the change feed and live queries.

Every emission is the full ordered sequence; after cancel() nothing more
arrives and the listener is gone from the feed.
"""
from chatsync.core.result import ErrorKind, unwrap
from chatsync.database import build_session_factory
from chatsync.services.chat_service import ChatSyncService
from chatsync.services.feed import ChangeFeed, messages_topic, rooms_topic

from .conftest import sqlite_engine


class TestChangeFeed:
    async def test_publish_reaches_listeners_until_removed(self):
        feed = ChangeFeed()
        received = []
        remove = feed.listen("topic", received.append)

        feed.publish("topic", 1)
        remove()
        feed.publish("topic", 2)

        assert received == [1]
        assert feed.listener_count("topic") == 0

    async def test_async_listeners_are_scheduled(self):
        feed = ChangeFeed()
        received = []

        async def listener(payload):
            received.append(payload)

        feed.listen("topic", listener)
        feed.publish("topic", "x")
        assert received == []

        await feed.drain()
        assert received == ["x"]

    async def test_failing_listener_does_not_break_others(self):
        feed = ChangeFeed()
        received = []

        async def broken(_payload):
            raise RuntimeError("boom")

        feed.listen("topic", broken)
        feed.listen("topic", received.append)
        feed.publish("topic", "x")
        await feed.drain()

        assert received == ["x"]


class TestWatchMessages:
    async def test_snapshot_matches_plain_read(self, chat_service, alice, bob):
        room_id = unwrap(await chat_service.send_message("alice", "bob", "one")).chat_room_id

        snapshot = unwrap(await chat_service.watch_messages(room_id).snapshot())

        assert [m.content for m in snapshot] == ["one"]

    async def test_emits_initial_then_full_sequence_per_change(self, chat_service, feed, alice, bob):
        room_id = unwrap(await chat_service.send_message("alice", "bob", "one")).chat_room_id
        emissions = []

        subscription = chat_service.watch_messages(room_id).subscribe(
            lambda messages: emissions.append([m.content for m in messages])
        )
        await feed.drain()
        assert emissions == [["one"]]

        unwrap(await chat_service.send_message("bob", "alice", "two"))
        await feed.drain()
        assert emissions[-1] == ["one", "two"]

        subscription.cancel()

    async def test_no_callbacks_after_cancel(self, chat_service, feed, alice, bob):
        room_id = unwrap(await chat_service.send_message("alice", "bob", "one")).chat_room_id
        emissions = []

        subscription = chat_service.watch_messages(room_id).subscribe(emissions.append)
        await feed.drain()
        subscription.cancel()
        count = len(emissions)

        unwrap(await chat_service.send_message("alice", "bob", "two"))
        await feed.drain()

        assert len(emissions) == count
        assert subscription.cancelled
        assert feed.listener_count(messages_topic(room_id)) == 0

    async def test_cancel_before_first_emission(self, chat_service, feed, alice, bob):
        room_id = unwrap(await chat_service.send_message("alice", "bob", "one")).chat_room_id
        emissions = []

        subscription = chat_service.watch_messages(room_id).subscribe(emissions.append)
        subscription.cancel()
        await feed.drain()

        assert emissions == []

    async def test_async_callback(self, chat_service, feed, alice, bob):
        room_id = unwrap(await chat_service.send_message("alice", "bob", "one")).chat_room_id
        emissions = []

        async def on_change(messages):
            emissions.append(len(messages))

        subscription = chat_service.watch_messages(room_id).subscribe(on_change)
        await feed.drain()
        unwrap(await chat_service.toggle_reaction(
            unwrap(await chat_service.get_messages_for_room(room_id))[0].id, "👍"
        ))
        await feed.drain()

        assert emissions == [1, 1]
        subscription.cancel()


class TestWatchChatRooms:
    async def test_room_list_follows_new_rooms(self, chat_service, feed, alice, bob, carol):
        emissions = []
        subscription = chat_service.watch_chat_rooms("alice").subscribe(
            lambda rooms: emissions.append([(r.participant_ids, r.last_message) for r in rooms])
        )
        await feed.drain()
        assert emissions == [[]]

        unwrap(await chat_service.send_message("bob", "alice", "hi"))
        await feed.drain()
        assert emissions[-1] == [(["alice", "bob"], "hi")]

        unwrap(await chat_service.send_message("carol", "alice", "yo"))
        await feed.drain()
        assert emissions[-1] == [(["alice", "carol"], "yo"), (["alice", "bob"], "hi")]

        subscription.cancel()
        assert feed.listener_count(rooms_topic("alice")) == 0

    async def test_read_state_changes_reach_the_room_list(self, chat_service, feed, alice, bob):
        room_id = unwrap(await chat_service.send_message("bob", "alice", "hi")).chat_room_id
        counts = []
        subscription = chat_service.watch_chat_rooms("alice").subscribe(
            lambda rooms: counts.append(rooms[0].unread_count["alice"])
        )
        await feed.drain()

        unwrap(await chat_service.mark_all_messages_as_read(room_id, "alice"))
        await feed.drain()

        assert counts[0] == 1
        assert counts[-1] == 0
        subscription.cancel()

    async def test_errors_go_to_on_error(self, tmp_path):
        feed = ChangeFeed()
        engine = sqlite_engine(tmp_path / "empty.db")
        service = ChatSyncService(build_session_factory(engine), feed)
        emissions, errors = [], []

        subscription = service.watch_chat_rooms("alice").subscribe(emissions.append, on_error=errors.append)
        await feed.drain()

        assert emissions == []
        assert [e.kind for e in errors] == [ErrorKind.REMOTE_FAILURE]
        subscription.cancel()
        await engine.dispose()
